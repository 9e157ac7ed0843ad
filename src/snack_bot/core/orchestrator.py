"""Single-run state machine: launch, wait for login and form, tick, submit."""

import asyncio
import os
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional
from uuid import uuid4

from snack_bot.browser.locator import (
    BROWSER_PATH_ENV,
    USER_DATA_DIR_ENV,
    BrowserLocator,
    create_browser_locator,
)
from snack_bot.browser.selectors import SelectorStrategy, create_google_forms_strategy, is_identity_match
from snack_bot.browser.session import BrowserDriver, BrowserSession, create_playwright_driver
from snack_bot.config import Settings, settings as default_settings
from snack_bot.core.errors import (
    AutomationError,
    BrowserNotFoundError,
    InteractionError,
    NavigationError,
    RunAbandonedError,
    RunInProgressError,
)
from snack_bot.core.models import RunConfig, RunOutcome, RunPhase, RunResult, RunTiming, SessionState
from snack_bot.utils.logging import get_logger, log_session_state

logger = get_logger(__name__)


class RunGuard:
    """Allows at most one run to own a browser at a time."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self.current_run_id: Optional[str] = None

    @property
    def active(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self, run_id: str) -> AsyncIterator[None]:
        """
        Own the browser for the duration of the block.

        Raises:
            RunInProgressError: another run already holds the guard
        """
        if self._lock.locked():
            raise RunInProgressError(f"Run {self.current_run_id} is already in progress")
        async with self._lock:
            self.current_run_id = run_id
            try:
                yield
            finally:
                self.current_run_id = None


# Process-wide guard shared by the HTTP and schedule triggers
default_guard = RunGuard()


class FormAutomationOrchestrator:
    """
    Drives one form submission end to end.

    The browser driver, selector strategy and locator are injected so the
    polling and interaction logic can run against fakes. Session state is
    local to each ``execute()`` call.
    """

    def __init__(
        self,
        driver: BrowserDriver,
        selectors: SelectorStrategy,
        locator: BrowserLocator,
        config: RunConfig,
        guard: Optional[RunGuard] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        """
        Initialize the orchestrator.

        Args:
            driver: Launches the browser session
            selectors: Page probes and clicks
            locator: Resolves the browser and profile
            config: Target form and timing
            guard: Mutual exclusion between runs (defaults to the process-wide guard)
            clock: Monotonic clock in seconds
            sleep: Coroutine used for every fixed delay
        """
        self.driver = driver
        self.selectors = selectors
        self.locator = locator
        self.config = config
        self.guard = guard or default_guard
        self._clock = clock
        self._sleep = sleep
        self.logger = logger.bind(component="orchestrator")

    @property
    def timing(self) -> RunTiming:
        return self.config.timing

    async def run_once(self) -> RunResult:
        """
        Run once on behalf of a trigger.

        Resolves when the form is submitted. Raises AutomationError subclasses
        on fatal conditions and RunAbandonedError when the operator closed
        every tab. When the poll ceiling passes without a form this never
        returns: the browser is left open, so callers that cannot wait
        indefinitely must apply their own timeout.
        """
        run_id = uuid4().hex[:8]
        async with self.guard.hold(run_id):
            result = await self.execute(run_id=run_id)

            if result.outcome == RunOutcome.ABANDONED:
                raise RunAbandonedError(
                    "All browser tabs were closed before the form appeared"
                )

            if result.outcome == RunOutcome.STUCK_OPEN:
                self.logger.warning(
                    "Holding run open until the caller gives up",
                    run_id=run_id
                )
                await asyncio.Event().wait()

            return result

    async def execute(self, run_id: Optional[str] = None) -> RunResult:
        """
        Execute the state machine once and report how it ended.

        Returns:
            RunResult with SUBMITTED, STUCK_OPEN or ABANDONED

        Raises:
            BrowserNotFoundError: no usable browser and fallback not permitted
            BrowserLaunchError: the browser failed to start
            NavigationError: the form could not be opened
            InteractionError: checkbox or submit control never became available
        """
        state = SessionState(started_at=self._clock())
        log = self.logger.bind(run_id=run_id or uuid4().hex[:8])

        environment = self.locator.resolve(log=True)

        state.advance(RunPhase.LAUNCH)
        try:
            session = await self.driver.launch(
                environment,
                allow_bundled_fallback=self.config.allow_bundled_fallback
            )
        except BrowserNotFoundError:
            state.advance(RunPhase.FATAL_NO_BROWSER)
            log.error("No supported browser/profile found", **log_session_state(state))
            raise
        except AutomationError:
            state.advance(RunPhase.FAILED)
            raise

        state.advance(RunPhase.NAVIGATE)
        try:
            await self._navigate(session, log)
        except NavigationError:
            state.advance(RunPhase.FAILED)
            raise

        state.advance(RunPhase.POLL)
        await self._poll(session, state, log)

        if state.phase == RunPhase.ABANDONED:
            return self._result(RunOutcome.ABANDONED, state)

        if state.phase == RunPhase.STUCK_OPEN:
            return self._result(RunOutcome.STUCK_OPEN, state)

        page = state.active_page

        state.advance(RunPhase.INTERACT)
        await self._sleep(self.timing.form_settle_delay)
        log.info("Looking for checkbox", label=self.config.target_checkbox_label)
        choice = await self.selectors.click_target_checkbox(page, self.config.target_checkbox_label)
        if choice is None:
            state.advance(RunPhase.FAILED)
            log.error("No checkbox available", **log_session_state(state))
            raise InteractionError("No checkbox appeared on the form")
        log.info("Clicked checkbox", choice=choice.value)

        state.advance(RunPhase.SUBMIT)
        log.info("Waiting for an enabled submit button")
        if not await self.selectors.click_enabled_submit(page):
            state.advance(RunPhase.FAILED)
            log.error("No enabled submit button", **log_session_state(state))
            raise InteractionError("Submit button never became available")
        log.info("Submit button clicked")
        await self._sleep(self.timing.post_submit_delay)

        state.advance(RunPhase.DONE)
        state.elapsed = self._clock() - state.started_at
        await session.close()
        log.info("Form submitted", **log_session_state(state))

        return self._result(RunOutcome.SUBMITTED, state, checkbox=choice)

    async def _navigate(self, session: BrowserSession, log: Any) -> Any:
        try:
            page = await session.new_page()
            await page.goto(
                self.config.form_url,
                wait_until="networkidle",
                timeout=self.timing.navigation_timeout * 1000
            )
        except Exception as e:
            log.error("Navigation failed", url=self.config.form_url, error=str(e))
            raise NavigationError(f"Could not open {self.config.form_url}: {e}") from e

        log.info("Form opened", url=self.config.form_url)
        return page

    async def _poll(self, session: BrowserSession, state: SessionState, log: Any) -> None:
        """
        Wait for login and the form, bounded by the poll ceiling.

        Leaves ``state.phase`` at POLL when the form was found, ABANDONED when
        no tabs remain, STUCK_OPEN when the ceiling elapsed.
        """
        ceiling = self.timing.poll_ceiling
        poll_started = self._clock()
        log.info("Waiting for login and form", ceiling_seconds=ceiling)

        while self._clock() - poll_started < ceiling:
            state.poll_count += 1
            state.elapsed = self._clock() - state.started_at

            pages = list(session.pages)
            state.page_count = len(pages)
            if not pages:
                state.advance(RunPhase.ABANDONED)
                log.warning(
                    "No open pages left; the browser was closed before the form appeared",
                    **log_session_state(state)
                )
                return

            # Login flows may open extra tabs; the newest one is the active page
            page = pages[-1]
            state.active_page = page
            log.info(
                "Polling for form",
                poll=state.poll_count,
                url=_page_url(page),
                open_pages=state.page_count
            )

            self._observe_identity(state, await self.selectors.find_identity(page), log)

            if await self.selectors.has_form(page):
                if not state.identity_verified:
                    log.warning(
                        "Form visible without a verified organization identity",
                        identity=state.last_identity,
                        domain=self.config.identity_domain
                    )
                log.info("Form is visible, continuing", **log_session_state(state))
                return

            await self._sleep(self.timing.poll_interval)

        state.elapsed = self._clock() - state.started_at
        state.advance(RunPhase.STUCK_OPEN)
        log.warning(
            "Form did not appear before the poll ceiling; browser left open for manual completion",
            **log_session_state(state)
        )

    def _observe_identity(self, state: SessionState, identity: Optional[str], log: Any) -> None:
        if identity is None:
            return

        matched = is_identity_match(identity, self.config.identity_domain)
        changed = identity != state.last_identity
        state.last_identity = identity
        state.identity_verified = matched

        if not changed:
            return
        if matched:
            log.info("Logged in", identity=identity)
        else:
            log.warning(
                "Not logged in with the organization email",
                identity=identity,
                domain=self.config.identity_domain
            )

    def _result(
        self,
        outcome: RunOutcome,
        state: SessionState,
        checkbox: Any = None
    ) -> RunResult:
        return RunResult(
            outcome=outcome,
            poll_count=state.poll_count,
            elapsed=state.elapsed,
            identity=state.last_identity,
            identity_verified=state.identity_verified,
            checkbox=checkbox
        )


def _page_url(page: Any) -> str:
    try:
        return page.url
    except Exception:
        return "[unknown]"


def _locator_environ(settings: Settings) -> Dict[str, str]:
    environ = dict(os.environ)
    if settings.browser_path and BROWSER_PATH_ENV not in environ:
        environ[BROWSER_PATH_ENV] = settings.browser_path
    if settings.user_data_dir and USER_DATA_DIR_ENV not in environ:
        environ[USER_DATA_DIR_ENV] = settings.user_data_dir
    return environ


def build_run_config(settings: Settings) -> RunConfig:
    """Translate application settings into a run configuration."""
    return RunConfig(
        form_url=settings.form_url,
        target_checkbox_label=settings.target_checkbox_label,
        identity_domain=settings.identity_domain,
        allow_bundled_fallback=settings.allow_bundled_fallback,
        timing=RunTiming(
            navigation_timeout=settings.navigation_timeout,
            poll_ceiling=settings.poll_ceiling,
            poll_interval=settings.poll_interval,
            form_settle_delay=settings.form_settle_delay,
            post_submit_delay=settings.post_submit_delay,
        ),
    )


def create_orchestrator(
    settings: Optional[Settings] = None,
    guard: Optional[RunGuard] = None
) -> FormAutomationOrchestrator:
    """
    Factory function wiring Playwright, the Google Forms strategy and the locator.

    Overrides in ``.env`` apply when the process environment does not set them.
    """
    settings = settings or default_settings
    return FormAutomationOrchestrator(
        driver=create_playwright_driver(headless=settings.browser_headless),
        selectors=create_google_forms_strategy(
            identity_domain=settings.identity_domain,
            identity_probe_timeout=settings.identity_probe_timeout,
            form_probe_timeout=settings.form_probe_timeout,
            interaction_timeout=settings.interaction_timeout,
            submit_settle_delay=settings.submit_settle_delay,
        ),
        locator=create_browser_locator(environ=_locator_environ(settings)),
        config=build_run_config(settings),
        guard=guard,
    )


async def run_once() -> RunResult:
    """Run the form submission once with the application settings."""
    return await create_orchestrator().run_once()
