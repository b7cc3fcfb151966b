"""Screen processors: map (screenshot, instruction) to on-screen elements."""

from screensense.vision.base import ScreenProcessor
from screensense.vision.cache import ResultCache, make_cache_key
from screensense.vision.claude import ClaudeProcessorConfig, ClaudeScreenProcessor
from screensense.vision.registry import ScreenProcessorRegistry

__all__ = [
    "ScreenProcessor",
    "ResultCache",
    "make_cache_key",
    "ClaudeProcessorConfig",
    "ClaudeScreenProcessor",
    "ScreenProcessorRegistry",
]
