"""
Claude computer-use screen processor.

Claude is used for the narrow task of locating elements on a screenshot, so an
agent can run its general reasoning on any other model. The request replays a
single computer-use turn: the user states the task, a synthetic assistant turn
asks for a screenshot, and the screenshot comes back as the tool result. Claude
then answers with a JSON array of ``{"description", "coordinate"}`` objects.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from screensense.exceptions import VisionProcessorError
from screensense.types import ScreenElement, ScreenElementList
from screensense.vision.base import ScreenProcessor
from screensense.vision.cache import ResultCache, make_cache_key

logger = logging.getLogger(__name__)

ANTHROPIC_API_KEY_ENV = "ANTHROPIC_API_KEY"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_BASE_URL = "https://api.anthropic.com/v1"

COMPUTER_USE_BETA_2025 = "computer-use-2025-01-24"
COMPUTER_USE_BETA_2024 = "computer-use-2024-10-22"

SCREENSHOT_TOOL_USE_ID = "1"

DEFAULT_PROMPT_TEMPLATE = (
    "You are an AI that analyzes a task and a screenshot of the current state of a web "
    "browser, and generates coordinates of all relevant elements needed to complete the "
    "task. Based on the task, output in JSON format an array of objects, where each object "
    'has a "description" of the UI element and its "coordinate" as an array with x and y '
    "values.\n\n"
    "Your current task: {instruction}. Output only the JSON array of objects, no additional "
    "text, thoughts, or explanations. You must not use any markdown formatting."
)


class ClaudeProcessorConfig(BaseModel):
    """
    Configuration for ClaudeScreenProcessor.

    Reads the API key from ``ANTHROPIC_API_KEY`` if not provided directly.
    """

    api_key: Optional[str] = Field(None, description="Anthropic API key (reads from env if None)")
    model: str = Field("claude-3-7-sonnet-20250219", description="Computer-use capable model")
    max_tokens: int = Field(4096, gt=0)
    tool_version: str = Field(
        "20250124", description="Computer tool version; selects the beta flag"
    )
    base_url: str = Field(DEFAULT_BASE_URL, description="Anthropic API base URL")
    timeout: float = Field(120.0, gt=0, description="Total request timeout in seconds")
    display_size: Optional[Tuple[int, int]] = Field(
        None, description="Viewport (width, height); when set the computer tool is declared"
    )
    prompt_template: str = Field(
        DEFAULT_PROMPT_TEMPLATE, description="User prompt; '{instruction}' is substituted"
    )
    cache_size: int = Field(256, ge=1, description="Maximum number of cached results")
    cache_ttl: Optional[float] = Field(None, gt=0, description="Cache entry lifetime in seconds")

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _read_api_key_from_env(self) -> "ClaudeProcessorConfig":
        """Reads the API key from the environment when it was not passed in."""
        if self.api_key is None:
            env_api_key = os.getenv(ANTHROPIC_API_KEY_ENV)
            if env_api_key:
                object.__setattr__(self, "api_key", env_api_key)
                logger.debug(f"Read Anthropic API key from env var '{ANTHROPIC_API_KEY_ENV}'.")
        return self


class ClaudeScreenProcessor(ScreenProcessor):
    """
    Screen processor backed by Claude computer use.

    Results are memoized per instance, keyed on the first 100 characters of the
    screenshot plus the instruction. Every failure (missing key, HTTP error,
    unparseable answer) yields an empty list; nothing is retried.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[ClaudeProcessorConfig] = None,
    ) -> None:
        if config is None:
            config = ClaudeProcessorConfig(api_key=api_key)
        elif api_key is not None:
            config = config.model_copy(update={"api_key": api_key})
        self.config = config

        if not self.config.api_key:
            logger.warning(
                "No Anthropic API key provided. ClaudeScreenProcessor will return no elements. "
                f"Pass api_key or set the {ANTHROPIC_API_KEY_ENV} environment variable."
            )

        self._cache: ResultCache[List[ScreenElement]] = ResultCache(
            max_size=self.config.cache_size, ttl=self.config.cache_ttl
        )

    @property
    def beta_flag(self) -> str:
        if "20250124" in self.config.tool_version:
            return COMPUTER_USE_BETA_2025
        return COMPUTER_USE_BETA_2024

    def get_headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.api_key or "",
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_VERSION,
            "anthropic-beta": self.beta_flag,
        }

    def get_endpoint_url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/messages"

    def build_messages(self, screenshot: str, instruction: str) -> List[Dict[str, Any]]:
        """
        Build the three-message computer-use exchange.

        Args:
            screenshot: Base64 encoded PNG screenshot
            instruction: Task the elements are needed for

        Returns:
            Messages in Anthropic format: user task, assistant screenshot
            tool call, user tool result carrying the image.
        """
        return [
            {
                "role": "user",
                "content": [
                    {
                        "type": "text",
                        "text": self.config.prompt_template.format(instruction=instruction),
                    }
                ],
            },
            {
                "role": "assistant",
                "content": [
                    {
                        "id": SCREENSHOT_TOOL_USE_ID,
                        "type": "tool_use",
                        "name": "computer",
                        "input": {"action": "screenshot"},
                    }
                ],
            },
            {
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": SCREENSHOT_TOOL_USE_ID,
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": "image/png",
                                    "data": screenshot,
                                },
                                "cache_control": {"type": "ephemeral"},
                            }
                        ],
                    }
                ],
            },
        ]

    def format_request_payload(self, screenshot: str, instruction: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "messages": self.build_messages(screenshot, instruction),
        }
        if self.config.display_size:
            width, height = self.config.display_size
            payload["tools"] = [
                {
                    "type": f"computer_{self.config.tool_version}",
                    "name": "computer",
                    "display_width_px": width,
                    "display_height_px": height,
                }
            ]
        return payload

    async def _send_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST the payload to the Messages API and return the decoded JSON body.

        Raises:
            VisionProcessorError: For any non-200 response
            aiohttp.ClientError: For connection level failures
        """
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(
                self.get_endpoint_url(), headers=self.get_headers(), json=payload
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    raise VisionProcessorError(
                        f"Anthropic API returned status {response.status}: {body[:500]}",
                        processor=self.__class__.__name__,
                        status_code=response.status,
                    )
                return await response.json()

    @staticmethod
    def _first_text_block(raw_response: Any) -> Optional[str]:
        """Return the text of the first text content block, if any."""
        if not isinstance(raw_response, dict):
            return None
        content = raw_response.get("content")
        if not isinstance(content, list):
            return None
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text")
                return text if isinstance(text, str) else None
        return None

    async def process(self, screenshot: str, instruction: str) -> List[ScreenElement]:
        """
        Locate the elements relevant to ``instruction`` on ``screenshot``.

        Args:
            screenshot: Base64 encoded PNG screenshot
            instruction: Natural language description of the task

        Returns:
            Validated elements, or an empty list on any failure.
        """
        if not self.config.api_key:
            return []

        cache_key = make_cache_key(screenshot, instruction)
        if cache_key in self._cache:
            return list(self._cache.get(cache_key) or [])

        try:
            payload = self.format_request_payload(screenshot, instruction)
            raw_response = await self._send_request(payload)
        except Exception as e:
            logger.error(f"Error calling Claude API: {e}")
            self._cache.set(cache_key, [])
            return []

        text = self._first_text_block(raw_response)
        if text is None:
            # Not remembered: a later call may get a proper answer
            logger.warning("Claude response contained no text block; returning no elements")
            return []

        try:
            elements = ScreenElementList.validate_json(text)
        except ValidationError as e:
            logger.error(f"Failed to parse and validate element information: {e}")
            self._cache.set(cache_key, [])
            return []

        self._cache.set(cache_key, elements)
        logger.debug(f"Claude located {len(elements)} element(s) for instruction: {instruction!r}")
        return list(elements)

    def clear_cache(self) -> None:
        self._cache.clear()
