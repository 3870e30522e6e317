"""Public I/O helpers for the chart backend."""

from .xrpl_data import XrplDataClient

__all__ = ["XrplDataClient"]
