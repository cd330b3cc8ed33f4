"""Pivot prediction dashboard service."""

__version__ = "1.0.0"
__author__ = "Pivot Dashboard Team"
__description__ = "FastAPI service that polls pivot predictions on a market-aware schedule"

__all__ = [
    "__version__",
    "__author__",
    "__description__",
]
