"""
Coordinate-only browser control: the ScreenSense session and its tab bookkeeping.
"""

from .client import ScreenSense
from .tabs import TabRegistry

__all__ = [
    "ScreenSense",
    "TabRegistry",
]
