"""
Tests for the screensense.vision.claude module.

The HTTP layer is mocked: either ``_send_request`` is replaced directly, or
``aiohttp.ClientSession`` is patched to return canned responses.

This module tests:
- Configuration and API key resolution
- Request headers and payload construction
- Response validation, caching and failure handling
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from screensense.exceptions import VisionProcessorError
from screensense.types import ScreenElement
from screensense.vision.claude import (
    COMPUTER_USE_BETA_2024,
    COMPUTER_USE_BETA_2025,
    ClaudeProcessorConfig,
    ClaudeScreenProcessor,
)

SCREENSHOT = "iVBORw0KGgo" + "A" * 200
ELEMENTS_JSON = json.dumps(
    [
        {"description": "Search box", "coordinate": [320, 110]},
        {"description": "Search button", "coordinate": [640.5, 110]},
    ]
)


def text_response(text: str) -> dict:
    return {"content": [{"type": "text", "text": text}]}


@pytest.fixture(autouse=True)
def no_env_key(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


@pytest.fixture
def processor():
    return ClaudeScreenProcessor(api_key="test-key")


# =============================================================================
# Configuration Tests
# =============================================================================

class TestClaudeProcessorConfig:
    """Tests for ClaudeProcessorConfig."""

    def test_defaults(self):
        config = ClaudeProcessorConfig()

        assert config.api_key is None
        assert config.model == "claude-3-7-sonnet-20250219"
        assert config.max_tokens == 4096
        assert config.tool_version == "20250124"
        assert config.display_size is None

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

        assert ClaudeProcessorConfig().api_key == "env-key"

    def test_explicit_key_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

        assert ClaudeProcessorConfig(api_key="explicit").api_key == "explicit"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            ClaudeProcessorConfig(temperature=0.2)

    def test_api_key_argument_overrides_config(self):
        config = ClaudeProcessorConfig(api_key="a", model="other-model")

        processor = ClaudeScreenProcessor(api_key="b", config=config)

        assert processor.config.api_key == "b"
        assert processor.config.model == "other-model"


# =============================================================================
# Request Construction Tests
# =============================================================================

class TestRequestConstruction:
    """Tests for headers and payload."""

    def test_headers(self, processor):
        headers = processor.get_headers()

        assert headers["x-api-key"] == "test-key"
        assert headers["anthropic-version"] == "2023-06-01"
        assert headers["anthropic-beta"] == COMPUTER_USE_BETA_2025

    def test_older_tool_version_uses_older_beta(self):
        processor = ClaudeScreenProcessor(
            config=ClaudeProcessorConfig(api_key="k", tool_version="20241022")
        )

        assert processor.beta_flag == COMPUTER_USE_BETA_2024

    def test_endpoint_url(self):
        processor = ClaudeScreenProcessor(
            config=ClaudeProcessorConfig(api_key="k", base_url="http://proxy.local/v1/")
        )

        assert processor.get_endpoint_url() == "http://proxy.local/v1/messages"

    def test_three_message_exchange(self, processor):
        messages = processor.build_messages(SCREENSHOT, "find the search box")

        assert [m["role"] for m in messages] == ["user", "assistant", "user"]
        assert "find the search box" in messages[0]["content"][0]["text"]

        tool_use = messages[1]["content"][0]
        assert tool_use["type"] == "tool_use"
        assert tool_use["name"] == "computer"
        assert tool_use["input"] == {"action": "screenshot"}

        tool_result = messages[2]["content"][0]
        assert tool_result["type"] == "tool_result"
        assert tool_result["tool_use_id"] == tool_use["id"]
        image = tool_result["content"][0]
        assert image["source"] == {
            "type": "base64",
            "media_type": "image/png",
            "data": SCREENSHOT,
        }

    def test_payload_without_display_size(self, processor):
        payload = processor.format_request_payload(SCREENSHOT, "x")

        assert payload["model"] == "claude-3-7-sonnet-20250219"
        assert payload["max_tokens"] == 4096
        assert "tools" not in payload

    def test_payload_declares_computer_tool(self):
        processor = ClaudeScreenProcessor(
            config=ClaudeProcessorConfig(api_key="k", display_size=(1280, 800))
        )

        payload = processor.format_request_payload(SCREENSHOT, "x")

        assert payload["tools"] == [
            {
                "type": "computer_20250124",
                "name": "computer",
                "display_width_px": 1280,
                "display_height_px": 800,
            }
        ]


# =============================================================================
# Process Tests
# =============================================================================

class TestProcess:
    """Tests for process()."""

    @pytest.mark.asyncio
    async def test_no_api_key_returns_empty(self):
        processor = ClaudeScreenProcessor()

        with patch.object(processor, "_send_request", new_callable=AsyncMock) as send:
            result = await processor.process(SCREENSHOT, "anything")

        assert result == []
        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_valid_response(self, processor):
        with patch.object(
            processor, "_send_request", new_callable=AsyncMock, return_value=text_response(ELEMENTS_JSON)
        ):
            result = await processor.process(SCREENSHOT, "search")

        assert result == [
            ScreenElement(description="Search box", coordinate=(320, 110)),
            ScreenElement(description="Search button", coordinate=(640.5, 110)),
        ]

    @pytest.mark.asyncio
    async def test_cache_hit_on_same_prefix_and_instruction(self, processor):
        with patch.object(
            processor, "_send_request", new_callable=AsyncMock, return_value=text_response(ELEMENTS_JSON)
        ) as send:
            first = await processor.process(SCREENSHOT, "search")
            second = await processor.process(SCREENSHOT[:100] + "different tail", "search")

        send.assert_awaited_once()
        assert first == second

    @pytest.mark.asyncio
    async def test_different_instruction_misses_cache(self, processor):
        with patch.object(
            processor, "_send_request", new_callable=AsyncMock, return_value=text_response("[]")
        ) as send:
            await processor.process(SCREENSHOT, "one")
            await processor.process(SCREENSHOT, "two")

        assert send.await_count == 2

    @pytest.mark.asyncio
    async def test_returned_list_does_not_alias_cache(self, processor):
        with patch.object(
            processor, "_send_request", new_callable=AsyncMock, return_value=text_response(ELEMENTS_JSON)
        ):
            first = await processor.process(SCREENSHOT, "search")
            first.clear()
            second = await processor.process(SCREENSHOT, "search")

        assert len(second) == 2

    @pytest.mark.asyncio
    async def test_skips_non_text_blocks(self, processor):
        response = {
            "content": [
                {"type": "tool_use", "id": "t", "name": "computer", "input": {}},
                {"type": "text", "text": ELEMENTS_JSON},
            ]
        }
        with patch.object(processor, "_send_request", new_callable=AsyncMock, return_value=response):
            result = await processor.process(SCREENSHOT, "search")

        assert len(result) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text",
        [
            "Sure! Here are the elements: [...]",
            '```json\n[{"description": "a", "coordinate": [1, 2]}]\n```',
            '{"description": "a", "coordinate": [1, 2]}',
            '[{"description": "a", "coordinate": [1, 2, 3]}]',
            '[{"description": "a", "coordinate": ["1", "2"]}]',
            '[{"coordinate": [1, 2]}]',
        ],
    )
    async def test_invalid_answer_is_cached_as_empty(self, processor, text):
        with patch.object(
            processor, "_send_request", new_callable=AsyncMock, return_value=text_response(text)
        ) as send:
            first = await processor.process(SCREENSHOT, "search")
            second = await processor.process(SCREENSHOT, "search")

        assert first == []
        assert second == []
        send.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            {"content": []},
            {"content": [{"type": "tool_use", "id": "t", "name": "computer", "input": {}}]},
            {"type": "error"},
            [],
        ],
    )
    async def test_no_text_block_is_not_cached(self, processor, response):
        with patch.object(
            processor, "_send_request", new_callable=AsyncMock, return_value=response
        ) as send:
            first = await processor.process(SCREENSHOT, "search")
            second = await processor.process(SCREENSHOT, "search")

        assert first == []
        assert second == []
        assert send.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            aiohttp.ClientConnectionError("connection refused"),
            VisionProcessorError("HTTP 529", status_code=529),
            TimeoutError(),
        ],
    )
    async def test_transport_error_is_cached_as_empty(self, processor, error):
        with patch.object(
            processor, "_send_request", new_callable=AsyncMock, side_effect=error
        ) as send:
            first = await processor.process(SCREENSHOT, "search")
            second = await processor.process(SCREENSHOT, "search")

        assert first == []
        assert second == []
        send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_clear_cache_forces_new_request(self, processor):
        with patch.object(
            processor, "_send_request", new_callable=AsyncMock, return_value=text_response("[]")
        ) as send:
            await processor.process(SCREENSHOT, "search")
            processor.clear_cache()
            await processor.process(SCREENSHOT, "search")

        assert send.await_count == 2


# =============================================================================
# HTTP Layer Tests
# =============================================================================

def mock_client_session(mocker, status: int, json_body=None, text_body: str = ""):
    """Patch aiohttp.ClientSession so that post() yields a canned response."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_body)
    response.text = AsyncMock(return_value=text_body)

    session = MagicMock()
    session.post.return_value.__aenter__.return_value = response

    client_session = mocker.patch("screensense.vision.claude.aiohttp.ClientSession")
    client_session.return_value.__aenter__.return_value = session
    return session


class TestSendRequest:
    """Tests for the aiohttp request path."""

    @pytest.mark.asyncio
    async def test_posts_payload_with_headers(self, processor, mocker):
        session = mock_client_session(mocker, 200, json_body=text_response(ELEMENTS_JSON))

        result = await processor.process(SCREENSHOT, "search")

        assert len(result) == 2
        args, kwargs = session.post.call_args
        assert args[0] == "https://api.anthropic.com/v1/messages"
        assert kwargs["headers"]["anthropic-beta"] == COMPUTER_USE_BETA_2025
        assert kwargs["json"]["model"] == "claude-3-7-sonnet-20250219"

    @pytest.mark.asyncio
    async def test_non_200_raises_vision_error(self, processor, mocker):
        mock_client_session(mocker, 401, text_body='{"error": "invalid x-api-key"}')

        with pytest.raises(VisionProcessorError) as exc_info:
            await processor._send_request({"model": "m"})

        assert exc_info.value.status_code == 401
        assert "invalid x-api-key" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_200_yields_empty_result(self, processor, mocker):
        mock_client_session(mocker, 500, text_body="overloaded")

        assert await processor.process(SCREENSHOT, "search") == []
