"""Upshift: staged upgrade orchestration.

Moves a running system between versions through dependency-ordered,
reversible steps with pause/resume and a write guard.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
