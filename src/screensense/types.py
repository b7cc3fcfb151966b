"""
Core type definitions for ScreenSense.

Configuration objects are pydantic models validated at construction time;
runtime records (tabs) are plain dataclasses.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, Strict, StrictStr, TypeAdapter

if TYPE_CHECKING:  # pragma: no cover
    from playwright.async_api import Page


MouseButton = Literal["left", "right", "middle"]
ClickType = Literal["down", "up", "click"]
Coordinate = Tuple[float, float]

# Untrusted model output: numbers must already be numbers, no "100" -> 100.0
StrictNumber = Annotated[float, Strict()]

MOUSE_BUTTONS = ("left", "right", "middle")
CLICK_TYPES = ("down", "up", "click")


# =============================================================================
# Browser Settings
# =============================================================================

class RemoteBrowserSettings(BaseModel):
    """Connect to an already running browser over WebSocket or CDP."""

    type: Literal["remote"] = "remote"
    wss_url: Optional[str] = Field(
        None, description="Playwright WebSocket endpoint (tried first)"
    )
    cdp_url: Optional[str] = Field(
        None, description="Chrome DevTools Protocol endpoint (tried when wss_url is unset)"
    )

    model_config = ConfigDict(extra="forbid", frozen=True)


class LocalBrowserSettings(BaseModel):
    """Launch a local Chromium process."""

    type: Literal["local"] = "local"
    executable_path: Optional[str] = Field(
        None, description="Path to a Chrome/Chromium executable"
    )
    proxy: Optional[str] = Field(None, description="Proxy server, e.g. 'http://host:3128'")

    model_config = ConfigDict(extra="forbid", frozen=True)


BrowserSettings = Annotated[
    Union[RemoteBrowserSettings, LocalBrowserSettings],
    Field(discriminator="type"),
]

_browser_settings_adapter = TypeAdapter(BrowserSettings)


def parse_browser_settings(data: Any) -> Union[RemoteBrowserSettings, LocalBrowserSettings]:
    """Validate a dict (or settings instance) into the matching settings variant."""
    if isinstance(data, (RemoteBrowserSettings, LocalBrowserSettings)):
        return data
    return _browser_settings_adapter.validate_python(data)


class ScreenSenseConfig(BaseModel):
    """
    Pydantic schema for a ScreenSense session.

    Example:
        ScreenSenseConfig(
            browser_settings={"type": "remote", "cdp_url": "http://localhost:9222"},
            user_agent="my-agent/1.0",
            processor_name="claude",
        )
    """

    browser_settings: Optional[BrowserSettings] = Field(
        None, description="Remote or local browser settings; default launch when omitted"
    )
    user_agent: Optional[str] = Field(
        None, description="User agent applied to the browser context"
    )
    processor_name: Optional[str] = Field(
        None, description="Name of the registered screen processor used by get_coordinates"
    )
    headless: bool = Field(True, description="Headless mode for launched browsers")

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# Vision Elements
# =============================================================================

class ScreenElement(BaseModel):
    """An actionable point on screen identified by a vision processor."""

    description: StrictStr
    coordinate: Tuple[StrictNumber, StrictNumber]

    model_config = ConfigDict(frozen=True)


ScreenElementList = TypeAdapter(List[ScreenElement])


# =============================================================================
# Tabs
# =============================================================================

@dataclass
class Tab:
    """A browser tab owned by a ScreenSense session."""

    id: int
    page: "Page"
    title: str = ""
