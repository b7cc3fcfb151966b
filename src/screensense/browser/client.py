import asyncio
import base64
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

from playwright.async_api import (
    Browser,
    BrowserContext,
    BrowserType,
    Page,
    Playwright,
    async_playwright,
)

from screensense.browser.tabs import TabRegistry
from screensense.exceptions import (
    ActionValidationError,
    BrowserNotInitializedError,
    NoActivePageError,
    TabNotFoundError,
)
from screensense.types import (
    CLICK_TYPES,
    MOUSE_BUTTONS,
    BrowserSettings,
    ClickType,
    Coordinate,
    LocalBrowserSettings,
    MouseButton,
    RemoteBrowserSettings,
    ScreenElement,
    ScreenSenseConfig,
    Tab,
    parse_browser_settings,
)
from screensense.utils.keys import normalize_key
from screensense.vision.registry import ScreenProcessorRegistry

logger = logging.getLogger(__name__)


class ScreenSense:
    """
    A browser session driven purely by screen coordinates.

    ScreenSense owns one Playwright browser, one context and the tabs opened in
    it. Input is dispatched with the mouse and keyboard at coordinates; finding
    *where* to click is delegated to a screen processor via ``get_coordinates``.

    Operations are coroutines and must be awaited one after another: nothing in
    the session locks tab state against concurrent ``open_tab``/``switch_tab``
    calls, and a key held by ``press_key`` is not protected from other input.

    Example:
        async with ScreenSense({"browser_settings": {"type": "local"}}) as screen:
            elements = await screen.get_coordinates("the search box")
            await screen.click_mouse("left", coordinates=elements[0].coordinate)
            await screen.type_text("hello")
    """

    def __init__(
        self,
        config: Optional[Union[ScreenSenseConfig, Dict[str, Any]]] = None,
        processor_registry: Optional[ScreenProcessorRegistry] = None,
    ) -> None:
        """
        Create a session. Nothing is launched until ``start()``.

        Parameters:
            config: Session configuration (a dict is validated into ScreenSenseConfig).
            processor_registry: Registry used by get_coordinates. A private
                registry is created when omitted.
        """
        if config is None:
            config = ScreenSenseConfig()
        elif isinstance(config, dict):
            config = ScreenSenseConfig.model_validate(config)
        self.config: ScreenSenseConfig = config
        self.processor_registry = processor_registry or ScreenProcessorRegistry()

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._tabs = TabRegistry()

    async def __aenter__(self) -> "ScreenSense":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ==================== Lifecycle ====================

    @property
    def is_started(self) -> bool:
        return self._browser is not None

    @property
    def browser(self) -> Optional[Browser]:
        return self._browser

    @property
    def context(self) -> Optional[BrowserContext]:
        return self._context

    @property
    def current_tab(self) -> Optional[Tab]:
        return self._tabs.current

    async def _acquire_browser(
        self, chromium: BrowserType, settings: Optional[BrowserSettings]
    ) -> Browser:
        """Connect or launch following the precedence: wss, cdp, local launch, default launch."""
        if isinstance(settings, RemoteBrowserSettings):
            if settings.wss_url:
                logger.info(f"Connecting to remote browser over WebSocket: {settings.wss_url}")
                return await chromium.connect(settings.wss_url)
            if settings.cdp_url:
                logger.info(f"Connecting to remote browser over CDP: {settings.cdp_url}")
                return await chromium.connect_over_cdp(settings.cdp_url)
            logger.warning("Remote browser settings without wss_url or cdp_url; launching default browser")
        elif isinstance(settings, LocalBrowserSettings):
            launch_kwargs: Dict[str, Any] = {"headless": self.config.headless}
            if settings.executable_path:
                launch_kwargs["executable_path"] = settings.executable_path
            if settings.proxy:
                launch_kwargs["proxy"] = {"server": settings.proxy}
            logger.info(f"Launching local browser (executable={settings.executable_path or 'bundled'})")
            return await chromium.launch(**launch_kwargs)

        return await chromium.launch(headless=self.config.headless)

    @staticmethod
    async def _release(playwright: Optional[Playwright], browser: Optional[Browser]) -> None:
        """Best-effort cleanup of resources acquired by a failed start."""
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"Failed to close browser during cleanup: {e}")
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning(f"Failed to stop Playwright during cleanup: {e}")

    async def start(
        self, browser_settings: Optional[Union[BrowserSettings, Dict[str, Any]]] = None
    ) -> Tab:
        """
        Acquire a browser, create a context and open the first tab.

        The first start of a session object yields tab id 0. Ids keep counting
        across close() and a later start(), so a tab id is never reissued.

        Parameters:
            browser_settings: Overrides ``config.browser_settings`` for this start.

        Returns:
            Tab: The initial, current tab.

        Raises:
            ActionValidationError: If the session is already started.
            Exception: Whatever Playwright raised while connecting or launching.
                The session is left unstarted.
        """
        if self.is_started:
            raise ActionValidationError("ScreenSense session is already started", action="start")

        settings = (
            parse_browser_settings(browser_settings)
            if browser_settings is not None
            else self.config.browser_settings
        )

        playwright: Optional[Playwright] = None
        browser: Optional[Browser] = None
        try:
            playwright = await async_playwright().start()
            browser = await self._acquire_browser(playwright.chromium, settings)

            context_kwargs: Dict[str, Any] = {}
            if self.config.user_agent:
                context_kwargs["user_agent"] = self.config.user_agent
            context = await browser.new_context(**context_kwargs)

            page = await context.new_page()
            title = await page.title()
        except Exception as e:
            logger.error(f"Failed to start browser: {e}")
            await self._release(playwright, browser)
            raise

        self._playwright = playwright
        self._browser = browser
        self._context = context
        tab = self._tabs.add(page, title)
        logger.info("Browser started", extra={"tab_id": tab.id})
        return tab

    async def close(self) -> None:
        """
        Close the browser and stop Playwright. Does nothing if not started.
        """
        if self._browser is None and self._playwright is None:
            return

        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._context = None
        self._playwright = None
        self._tabs.clear()

        try:
            if browser is not None:
                await browser.close()
        except Exception as e:
            logger.error(f"Failed to close browser: {e}")
            raise
        finally:
            if playwright is not None:
                try:
                    await playwright.stop()
                except Exception as e:
                    logger.warning(f"Failed to stop Playwright: {e}")
        logger.info("Browser closed")

    # ==================== Helpers ====================

    def _require_page(self, operation: str) -> Page:
        if self._tabs.current is None:
            raise NoActivePageError(operation)
        return self._tabs.current.page

    @asynccontextmanager
    async def _held_keys(self, page: Page, hold_keys: Sequence[str]) -> AsyncIterator[None]:
        """Press modifier keys down for the duration of the block, then release them in order."""
        pressed: List[str] = []
        try:
            for key in hold_keys:
                normalized = normalize_key(key)
                await page.keyboard.down(normalized)
                pressed.append(normalized)
            yield
        finally:
            for key in pressed:
                await page.keyboard.up(key)

    async def take_screenshot(self) -> str:
        """
        Take a screenshot of the current tab.

        Returns:
            str: Base64 encoded PNG.
        """
        page = self._require_page("screenshot")
        buffer = await page.screenshot(type="png")
        return base64.b64encode(buffer).decode("ascii")

    async def wait(self, duration: float) -> None:
        """Sleep for ``duration`` seconds."""
        await asyncio.sleep(duration)

    # ==================== Vision ====================

    async def get_coordinates(self, instruction: str) -> List[ScreenElement]:
        """
        Locate elements on the current tab that match a natural language instruction.

        The screenshot is handed to the screen processor named by
        ``config.processor_name`` (or a new default processor) and its result is
        returned as-is.

        Parameters:
            instruction (str): What to look for, e.g. "the login button".

        Returns:
            List[ScreenElement]: Descriptions with (x, y) coordinates, possibly empty.
        """
        self._require_page("get_coordinates")
        screenshot = await self.take_screenshot()
        processor = self.processor_registry.resolve(self.config.processor_name)
        logger.debug(
            f"Getting coordinates with {processor.__class__.__name__} for instruction: {instruction!r}",
            extra={"tab_id": self._tabs.current.id},
        )
        return await processor.process(screenshot, instruction)

    # ==================== Mouse & Keyboard ====================

    async def move_mouse(self, coordinates: Coordinate, hold_keys: Sequence[str] = ()) -> None:
        """
        Move the mouse to the specified (x, y) coordinate.

        Parameters:
            coordinates: (x, y) target.
            hold_keys: Modifier keys held during the move.
        """
        page = self._require_page("mouse movement")
        x, y = coordinates
        async with self._held_keys(page, hold_keys):
            await page.mouse.move(x, y)

    async def click_mouse(
        self,
        button: MouseButton = "left",
        click_type: ClickType = "click",
        coordinates: Optional[Coordinate] = None,
        num_clicks: int = 1,
        hold_keys: Sequence[str] = (),
    ) -> None:
        """
        Press, release or click a mouse button.

        Parameters:
            button: "left", "right" or "middle".
            click_type: "down" presses, "up" releases, "click" does both.
            coordinates: Optional (x, y) to move to before acting.
            num_clicks: Number of down+up repetitions for "click".
            hold_keys: Modifier keys held during the action.

        Raises:
            ActionValidationError: For an unknown button or click type, or num_clicks < 1.
        """
        page = self._require_page("mouse click")

        if button not in MOUSE_BUTTONS:
            raise ActionValidationError(
                f"Unknown mouse button '{button}'. Allowed: {list(MOUSE_BUTTONS)}",
                action="click_mouse",
                invalid_params={"button": button},
            )
        if click_type not in CLICK_TYPES:
            raise ActionValidationError(
                f"Unknown click type '{click_type}'. Allowed: {list(CLICK_TYPES)}",
                action="click_mouse",
                invalid_params={"click_type": click_type},
            )
        if num_clicks < 1:
            raise ActionValidationError(
                f"num_clicks must be at least 1, got {num_clicks}",
                action="click_mouse",
                invalid_params={"num_clicks": num_clicks},
            )

        if coordinates is not None:
            await self.move_mouse(coordinates)

        async with self._held_keys(page, hold_keys):
            if click_type == "down":
                await page.mouse.down(button=button)
            elif click_type == "up":
                await page.mouse.up(button=button)
            else:
                for _ in range(num_clicks):
                    await page.mouse.down(button=button)
                    await page.mouse.up(button=button)

    async def drag_mouse(self, path: Sequence[Coordinate], hold_keys: Sequence[str] = ()) -> None:
        """
        Press at the first point of ``path``, move through the rest, release at the last.

        Parameters:
            path: At least two (x, y) points.
            hold_keys: Modifier keys held during the drag.

        Raises:
            ActionValidationError: If ``path`` has fewer than two points.
        """
        page = self._require_page("mouse drag")

        if len(path) < 2:
            raise ActionValidationError(
                "Drag path must contain at least two points",
                action="drag_mouse",
                invalid_params={"path_length": len(path)},
            )

        async with self._held_keys(page, hold_keys):
            start_x, start_y = path[0]
            await page.mouse.move(start_x, start_y)
            await page.mouse.down()
            for x, y in path[1:]:
                await page.mouse.move(x, y)
            await page.mouse.up()

    async def scroll(
        self,
        coordinates: Coordinate,
        delta_x: float = 0,
        delta_y: float = 0,
        hold_keys: Sequence[str] = (),
    ) -> None:
        """
        Scroll with the mouse wheel at a position.

        Deltas are in pixels: positive delta_y scrolls down, positive delta_x right.

        Parameters:
            coordinates: (x, y) the pointer moves to before scrolling.
            delta_x: Horizontal scroll amount.
            delta_y: Vertical scroll amount.
            hold_keys: Modifier keys held during the wheel event.
        """
        page = self._require_page("scrolling")
        x, y = coordinates
        await page.mouse.move(x, y)
        async with self._held_keys(page, hold_keys):
            await page.mouse.wheel(delta_x, delta_y)

    async def press_key(self, keys: Sequence[str], duration: Optional[float] = None) -> None:
        """
        Press a key combination.

        Keys go down in the given order and come up in reverse order, so
        ``["ctrl", "shift", "t"]`` behaves like a human chord.

        Parameters:
            keys: Keys or aliases to press.
            duration: Seconds to hold the keys before releasing.
        """
        page = self._require_page("key press")
        pressed: List[str] = []
        try:
            for key in keys:
                normalized = normalize_key(key)
                await page.keyboard.down(normalized)
                pressed.append(normalized)
            if duration:
                await self.wait(duration)
        finally:
            for key in reversed(pressed):
                await page.keyboard.up(key)

    async def type_text(self, text: str, hold_keys: Sequence[str] = ()) -> None:
        """
        Type text into whatever has focus.

        Parameters:
            text: Text to type.
            hold_keys: Modifier keys held while typing.
        """
        page = self._require_page("typing")
        async with self._held_keys(page, hold_keys):
            await page.keyboard.type(text)

    # ==================== Tab Management ====================

    def list_tabs(self) -> List[Tab]:
        """
        List open tabs.

        Returns:
            List[Tab]: The current tab first, then the others in the order they
            were moved to the background.
        """
        return self._tabs.list()

    async def open_tab(self, url: Optional[str] = None) -> Tab:
        """
        Open a new tab, optionally navigate it, and make it current.

        Parameters:
            url: URL to load in the new tab.

        Returns:
            Tab: The new current tab.

        Raises:
            BrowserNotInitializedError: If the session has no browser context.
        """
        if self._context is None:
            raise BrowserNotInitializedError("open_tab")

        page = await self._context.new_page()
        try:
            if url:
                await page.goto(url)
            title = await page.title()
        except Exception as e:
            logger.error(f"Failed to open tab {url}: {e}")
            await page.close()
            raise

        tab = self._tabs.add(page, title)
        logger.info(f"Opened tab: {url or 'about:blank'}", extra={"tab_id": tab.id})
        return tab

    async def switch_tab(self, tab_id: int) -> Tab:
        """
        Make a background tab current and bring it to the front.

        Parameters:
            tab_id: Id of a tab that is not current.

        Returns:
            Tab: The new current tab.

        Raises:
            TabNotFoundError: If no background tab has that id (state is unchanged).
        """
        tab = self._tabs.switch(tab_id)
        await tab.page.bring_to_front()
        logger.info("Switched tab", extra={"tab_id": tab.id})
        return tab

    async def close_tab(self, tab_id: Optional[int] = None) -> Optional[Tab]:
        """
        Close a tab (the current one by default).

        When the current tab is closed, the most recently backgrounded tab
        becomes current and is brought to the front.

        Parameters:
            tab_id: Id of the tab to close.

        Returns:
            Optional[Tab]: The current tab after closing, if any.

        Raises:
            NoActivePageError: If tab_id is omitted and there is no current tab.
            TabNotFoundError: If no open tab has that id.
        """
        if tab_id is None:
            if self._tabs.current is None:
                raise NoActivePageError("close_tab")
            tab_id = self._tabs.current.id

        tab = self._tabs.get(tab_id)
        if tab is None:
            raise TabNotFoundError(tab_id, available_ids=[t.id for t in self._tabs.list()])

        was_current = self._tabs.current is tab
        await tab.page.close()
        self._tabs.remove(tab_id)
        logger.info("Closed tab", extra={"tab_id": tab_id})

        current = self._tabs.current
        if was_current and current is not None:
            await current.page.bring_to_front()
        return current
