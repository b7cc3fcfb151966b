"""
ScreenSense - coordinate-based browser automation

Drives a Playwright browser purely through mouse and keyboard input at screen
coordinates, and asks a pluggable vision model where on the screenshot those
coordinates are.
"""

__version__ = "0.1.0"

# Session
from .browser import ScreenSense, TabRegistry

# Errors
from .exceptions import (
    ActionValidationError,
    BrowserError,
    BrowserNotInitializedError,
    NoActivePageError,
    ScreenSenseError,
    TabNotFoundError,
    VisionProcessorError,
)

# Types and configuration
from .types import (
    LocalBrowserSettings,
    RemoteBrowserSettings,
    ScreenElement,
    ScreenSenseConfig,
    Tab,
)

# Vision
from .vision import (
    ClaudeProcessorConfig,
    ClaudeScreenProcessor,
    ScreenProcessor,
    ScreenProcessorRegistry,
)

from .utils import init_logging

__all__ = [
    # Version
    "__version__",
    # Session
    "ScreenSense",
    "TabRegistry",
    # Errors
    "ScreenSenseError",
    "BrowserError",
    "BrowserNotInitializedError",
    "NoActivePageError",
    "TabNotFoundError",
    "ActionValidationError",
    "VisionProcessorError",
    # Types
    "ScreenSenseConfig",
    "RemoteBrowserSettings",
    "LocalBrowserSettings",
    "ScreenElement",
    "Tab",
    # Vision
    "ScreenProcessor",
    "ScreenProcessorRegistry",
    "ClaudeProcessorConfig",
    "ClaudeScreenProcessor",
    # Logging
    "init_logging",
]
