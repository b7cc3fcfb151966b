"""Base class for screen processors."""

from abc import ABC, abstractmethod
from typing import List

from screensense.types import ScreenElement


class ScreenProcessor(ABC):
    """
    Interface that all screen processors must implement.

    A screen processor looks at a screenshot and a natural language instruction
    and returns the on-screen elements relevant to the instruction, each with a
    description and an (x, y) coordinate.

    Processors are expected to degrade gracefully: a misconfigured or failing
    backend should return an empty list rather than raise, so that the calling
    agent keeps running.
    """

    @abstractmethod
    async def process(self, screenshot: str, instruction: str) -> List[ScreenElement]:
        """
        Process a screenshot and instruction to identify elements.

        Args:
            screenshot: Base64 encoded PNG screenshot
            instruction: Natural language description of what to look for

        Returns:
            Elements with coordinates and descriptions (possibly empty)
        """
        pass
