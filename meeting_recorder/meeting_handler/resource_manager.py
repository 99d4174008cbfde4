"""
Browser resources for meeting sessions.

``BrowserRuntime`` owns the Playwright driver and the Chromium process shared
by the whole service. ``ResourceManager`` owns exactly one isolated browser
context and page for one session and guarantees their release.

Usage pattern:
    runtime = BrowserRuntime(settings.browser)
    await runtime.start()
    resources = ResourceManager(runtime, meeting_id)
    page = await resources.acquire()
    ...
    await resources.release()
    await runtime.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Optional

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Error as PlaywrightError,
)

from meeting_recorder.config import BrowserSettings, get_logger
from meeting_recorder.core.exceptions import (
    AuthenticationError,
    ResourceAcquisitionError,
    TerminationError,
)
from meeting_recorder.models import CredentialBundle


logger = get_logger("resource_manager")


# Stealth: hide navigator.webdriver and fill in what headless Chromium lacks
STEALTH_INIT_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', {get: () => undefined});

    // Mock plugins/mime types (often empty in headless/automation)
    Object.defineProperty(navigator, 'plugins', {
        get: () => [1, 2, 3, 4, 5],
    });

    // Mock chrome runtime if missing
    if (!window.chrome) {
        window.chrome = { runtime: {} };
    }
"""


class BrowserRuntime:
    """Shared Playwright + Chromium process."""

    def __init__(self, browser_settings: BrowserSettings):
        self._settings = browser_settings
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._start_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        """Return True if the browser is currently available."""
        return self._browser is not None and self._browser.is_connected()

    async def start(self) -> None:
        """
        Start Playwright and launch a Chromium browser instance.
        """
        async with self._start_lock:
            if self.is_running:
                return

            logger.info("Starting Playwright browser runtime...")
            if self._playwright is None:
                self._playwright = await async_playwright().start()

            # launch() rather than a persistent profile so every meeting gets its own context
            self._browser = await self._playwright.chromium.launch(
                headless=self._settings.headless,
                ignore_default_args=["--enable-automation"],
                args=self._settings.launch_args,
            )
            logger.info(f"Browser runtime started (headless={self._settings.headless}).")

    async def new_context(self) -> BrowserContext:
        """Create a new browser context with stealth settings."""
        if not self.is_running:
            await self.start()

        context = await self._browser.new_context(
            user_agent=self._settings.user_agent,
            viewport={"width": self._settings.viewport_width, "height": self._settings.viewport_height},
            device_scale_factor=1,
            locale=self._settings.locale,
            permissions=["microphone", "camera"],  # Pre-grant permissions
            ignore_https_errors=True,
        )
        try:
            context.set_default_navigation_timeout(self._settings.navigation_timeout_ms)
            await context.add_init_script(STEALTH_INIT_SCRIPT)
        except BaseException:
            # Nobody else holds a reference yet
            try:
                await context.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing half-configured context: {e}")
            raise
        return context

    async def stop(self) -> None:
        """
        Close the browser and stop Playwright.
        """
        logger.info("Stopping browser runtime...")
        try:
            if self._browser is not None:
                await self._browser.close()
        except PlaywrightError as e:
            logger.warning(f"Error closing browser: {e}")
        finally:
            self._browser = None

        try:
            if self._playwright is not None:
                await self._playwright.stop()
        except PlaywrightError as e:
            logger.warning(f"Error stopping Playwright: {e}")
        finally:
            self._playwright = None


class ResourceManager:
    """One session's browser context and page."""

    def __init__(self, runtime: BrowserRuntime, meeting_id: str):
        self.runtime = runtime
        self.meeting_id = meeting_id
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.release_error: Optional[TerminationError] = None
        self._released = False
        self._release_lock = asyncio.Lock()

    @property
    def is_acquired(self) -> bool:
        return self.page is not None and not self._released

    @property
    def is_released(self) -> bool:
        return self._released

    async def acquire(self) -> Page:
        """
        Create the isolated context and its single page.

        Raises:
            ResourceAcquisitionError: if the context or page can't be created.
        """
        if self._released:
            raise ResourceAcquisitionError(f"Resources for {self.meeting_id} were already released")
        if self.page is not None:
            return self.page

        opening = asyncio.ensure_future(self._open())
        try:
            await asyncio.shield(opening)
        except asyncio.CancelledError:
            # The browser may already have created the context; let it land so release() sees it
            with contextlib.suppress(Exception):
                await opening
            raise
        except Exception as e:
            # Partial setup still has to be torn down
            await self.release()
            raise ResourceAcquisitionError(
                f"Could not create browser context: {e}",
                details={"meeting_id": self.meeting_id},
            ) from e

        logger.debug(f"Acquired browser context for {self.meeting_id}")
        return self.page

    async def _open(self) -> None:
        self.context = await self.runtime.new_context()
        self.page = await self.context.new_page()

    async def apply_credentials(self, bundle: CredentialBundle) -> None:
        """
        Apply authentication cookies to the context.

        Raises:
            AuthenticationError: if the bundle is empty or rejected.
        """
        if self.context is None:
            raise AuthenticationError("No browser context to apply credentials to")
        if not bundle:
            raise AuthenticationError("Credential bundle is empty")
        try:
            await self.context.add_cookies(bundle.cookies)
        except PlaywrightError as e:
            raise AuthenticationError(f"Cookies rejected by browser context: {e}") from e
        logger.debug(f"Applied {len(bundle.cookies)} cookies for {self.meeting_id}")

    async def release(self) -> None:
        """
        Close the page and context.

        Safe to call any number of times from any exit path; errors are
        logged and never propagated.
        """
        async with self._release_lock:
            if self._released:
                return
            self._released = True

            page, context = self.page, self.context
            self.page = None
            self.context = None
            try:
                try:
                    if page is not None and not page.is_closed():
                        await page.close()
                finally:
                    if context is not None:
                        await context.close()
            except Exception as e:
                self.release_error = TerminationError(
                    f"Error releasing browser context: {e}",
                    details={"meeting_id": self.meeting_id},
                )
                logger.error(f"{self.release_error.message} ({self.meeting_id})")
                return

            logger.debug(f"Released browser context for {self.meeting_id}")

    async def __aenter__(self) -> Page:
        return await self.acquire()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.release()
