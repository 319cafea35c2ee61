"""Test factories for creating test data."""

from tests.factories.upgrade import CallLog, StepFactory

__all__ = [
    "CallLog",
    "StepFactory",
]
