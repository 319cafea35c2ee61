"""UpgradeStore implementations."""

from upshift.upgrade.stores.inmemory import InMemoryUpgradeStore

__all__ = ["InMemoryUpgradeStore"]
