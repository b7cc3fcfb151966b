"""Utility helpers shared across ScreenSense."""

from screensense.utils.keys import KEY_ALIASES, normalize_key
from screensense.utils.logging_setup import TabLogFilter, init_logging

__all__ = [
    "KEY_ALIASES",
    "normalize_key",
    "TabLogFilter",
    "init_logging",
]
