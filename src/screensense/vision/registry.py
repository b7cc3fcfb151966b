import logging
from typing import Callable, Dict, List, Optional

from screensense.vision.base import ScreenProcessor
from screensense.vision.claude import ClaudeScreenProcessor

logger = logging.getLogger(__name__)


class ScreenProcessorRegistry:
    """
    Named lookup of screen processor instances.

    Each registry owns its own map, so sessions (and tests) that use separate
    registries never see each other's processors. Names are case-sensitive.

    Unresolved lookups build a brand-new processor from ``default_factory``
    every time. That instance has an empty cache; callers who want a shared
    default processor should register one or hold on to it themselves.
    """

    def __init__(
        self,
        default_factory: Callable[[], ScreenProcessor] = ClaudeScreenProcessor,
    ) -> None:
        self._processors: Dict[str, ScreenProcessor] = {}
        self.default_factory = default_factory

    def register(self, name: str, processor: ScreenProcessor) -> None:
        """
        Register a screen processor under ``name``.

        An existing entry with the same name is replaced.

        Args:
            name: Unique identifier for the processor
            processor: Screen processor implementation
        """
        if name in self._processors and self._processors[name] is not processor:
            logger.debug(f"Replacing screen processor registered as '{name}'")
        self._processors[name] = processor
        logger.info(
            f"Screen processor registered: {name} (Class: {processor.__class__.__name__})"
        )

    def unregister(self, name: str) -> None:
        if self._processors.pop(name, None) is None:
            logger.warning(f"Cannot unregister '{name}': not found in registry")
            return
        logger.info(f"Screen processor '{name}' unregistered")

    def get(self, name: str) -> Optional[ScreenProcessor]:
        """Return the processor registered under ``name`` or None, without falling back."""
        return self._processors.get(name)

    def resolve(self, name: Optional[str] = None) -> ScreenProcessor:
        """
        Retrieve a processor by name, or a new default processor.

        Args:
            name: Optional name of the processor to retrieve

        Returns:
            The registered processor on an exact match, otherwise a freshly
            constructed default processor.
        """
        if name is not None and name in self._processors:
            return self._processors[name]
        if name is not None:
            logger.debug(f"No screen processor named '{name}'; using a new default processor")
        return self.default_factory()

    def names(self) -> List[str]:
        return list(self._processors)

    def clear(self) -> None:
        self._processors.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._processors

    def __len__(self) -> int:
        return len(self._processors)
