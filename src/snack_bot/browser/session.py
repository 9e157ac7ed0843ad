"""Browser launch and session ownership on top of Playwright."""

import os
from typing import Any, List, Optional, Protocol, Sequence

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    async_playwright,
)

from snack_bot.browser.locator import ResolvedEnvironment
from snack_bot.core.errors import BrowserLaunchError, BrowserNotFoundError
from snack_bot.utils.logging import get_logger

logger = get_logger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
    "--ozone-platform=x11",
]


class BrowserSession(Protocol):
    """A running browser owned by one run."""

    @property
    def pages(self) -> Sequence[Any]:
        """Open tabs, oldest first."""
        ...

    async def new_page(self) -> Any:
        ...

    async def close(self) -> None:
        ...


class BrowserDriver(Protocol):
    """Capability to start a browser session for a resolved environment."""

    async def launch(
        self,
        environment: ResolvedEnvironment,
        allow_bundled_fallback: bool = False
    ) -> BrowserSession:
        ...


class PlaywrightSession:
    """Session over a Playwright context, persistent or isolated."""

    def __init__(
        self,
        playwright: Playwright,
        context: BrowserContext,
        browser: Optional[Browser] = None,
        bundled: bool = False
    ):
        self.playwright = playwright
        self.context = context
        self.browser = browser
        self.bundled = bundled
        self.logger = logger.bind(component="browser_session", bundled=bundled)

    @property
    def pages(self) -> List[Page]:
        return list(self.context.pages)

    async def new_page(self) -> Page:
        return await self.context.new_page()

    async def close(self) -> None:
        """Close the browser and cleanup resources."""
        try:
            await self.context.close()
            if self.browser:
                await self.browser.close()
        finally:
            await self.playwright.stop()
        self.logger.info("Browser session closed")


class PlaywrightDriver:
    """
    Launches Chromium-family browsers through Playwright.

    A usable environment launches the system browser against the operator's
    real profile so an existing login is reused. Otherwise, when permitted,
    Playwright's bundled Chromium runs headless with a throwaway context.
    """

    def __init__(self, headless: bool = False, args: Optional[List[str]] = None):
        """
        Initialize the driver.

        Args:
            headless: Run the system browser in headless mode
            args: Extra Chromium command line switches
        """
        self.headless = headless
        self.args = list(args) if args is not None else list(LAUNCH_ARGS)
        self.logger = logger.bind(component="playwright_driver")

    def _launch_env(self) -> dict:
        env = dict(os.environ)
        env["DISPLAY"] = os.environ.get("DISPLAY") or ":0"
        env["XDG_SESSION_TYPE"] = "x11"
        return env

    async def launch(
        self,
        environment: ResolvedEnvironment,
        allow_bundled_fallback: bool = False
    ) -> PlaywrightSession:
        """
        Start a browser for the run.

        Raises:
            BrowserNotFoundError: nothing usable resolved and fallback is disabled
            BrowserLaunchError: Playwright failed to start the browser
        """
        if not environment.is_usable and not allow_bundled_fallback:
            raise BrowserNotFoundError(
                "No supported browser/profile found and bundled fallback is disabled"
            )

        playwright = await async_playwright().start()
        try:
            if environment.is_usable:
                context = await playwright.chromium.launch_persistent_context(
                    environment.user_data_dir,
                    executable_path=environment.browser_path,
                    headless=self.headless,
                    args=self.args,
                    env=self._launch_env(),
                )
                self.logger.info(
                    "Launched system browser",
                    browser_type=environment.browser_type.value if environment.browser_type else None,
                    browser_path=environment.browser_path,
                    user_data_dir=environment.user_data_dir,
                    headless=self.headless
                )
                return PlaywrightSession(playwright, context)

            browser = await playwright.chromium.launch(headless=True, args=self.args)
            context = await browser.new_context()
            self.logger.info("Launched bundled Chromium without a persisted profile")
            return PlaywrightSession(playwright, context, browser=browser, bundled=True)

        except PlaywrightError as e:
            await playwright.stop()
            self.logger.error("Browser launch failed", error=str(e))
            raise BrowserLaunchError(f"Browser launch failed: {e}") from e


def create_playwright_driver(headless: bool = False, args: Optional[List[str]] = None) -> PlaywrightDriver:
    """Factory function to create a Playwright driver."""
    return PlaywrightDriver(headless=headless, args=args)
