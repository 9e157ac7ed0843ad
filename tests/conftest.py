"""Fakes standing in for the browser, page model and clock."""

import asyncio
from typing import List, Optional, Sequence

import pytest

from snack_bot.browser.locator import BrowserVendor, ResolvedEnvironment
from snack_bot.browser.selectors import CheckboxChoice, SelectorStrategy
from snack_bot.core.errors import BrowserNotFoundError
from snack_bot.core.models import RunConfig, RunTiming
from snack_bot.core.orchestrator import FormAutomationOrchestrator, RunGuard

FORM_URL = "https://docs.google.com/forms/d/e/test/viewform"
DOMAIN = "@org.com"


class FakeClock:
    """Monotonic clock that only moves when the orchestrator sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakePage:
    """A tab whose login and form state the fake selectors read."""

    def __init__(
        self,
        url: str = FORM_URL,
        identity: Optional[str] = None,
        form_after: Optional[int] = 0,
        checkboxes: Sequence[str] = ("opt",),
        submit_enabled: bool = True,
        goto_error: Optional[Exception] = None
    ):
        self.url = url
        self.identity = identity
        self.form_after = form_after
        self.checkboxes = list(checkboxes)
        self.submit_enabled = submit_enabled
        self.goto_error = goto_error
        self.form_probes = 0
        self.goto_calls = []
        self.clicked_checkbox: Optional[str] = None
        self.submitted = False

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append({"url": url, "wait_until": wait_until, "timeout": timeout})
        if self.goto_error:
            raise self.goto_error


class FakeSession:
    """Browser session with a mutable tab list."""

    def __init__(
        self,
        page: Optional[FakePage] = None,
        extra_pages=(),
        close_after_reads: Optional[int] = None,
        new_page_error: Optional[Exception] = None
    ):
        self._next_page = page or FakePage()
        self._pages: List[FakePage] = []
        self._extra_pages = list(extra_pages)
        self.close_after_reads = close_after_reads
        self.new_page_error = new_page_error
        self.page_reads = 0
        self.closed = False

    @property
    def pages(self):
        self.page_reads += 1
        if self.close_after_reads is not None and self.page_reads > self.close_after_reads:
            return []
        return list(self._pages)

    async def new_page(self):
        if self.new_page_error:
            raise self.new_page_error
        self._pages.append(self._next_page)
        self._pages.extend(self._extra_pages)
        return self._next_page

    async def close(self):
        self.closed = True


class FakeDriver:
    """Driver that hands out a prepared session."""

    def __init__(self, session: Optional[FakeSession] = None):
        self.session = session or FakeSession()
        self.launches = []

    async def launch(self, environment, allow_bundled_fallback=False):
        self.launches.append((environment, allow_bundled_fallback))
        if not environment.is_usable and not allow_bundled_fallback:
            raise BrowserNotFoundError("No supported browser/profile found")
        return self.session


class FakeSelectors(SelectorStrategy):
    """Selector strategy over FakePage attributes."""

    def __init__(self):
        self.identity_probes = []

    async def find_identity(self, page):
        self.identity_probes.append(page)
        return page.identity

    async def has_form(self, page):
        page.form_probes += 1
        return page.form_after is not None and page.form_probes > page.form_after

    async def click_target_checkbox(self, page, label):
        if label in page.checkboxes:
            page.clicked_checkbox = label
            return CheckboxChoice.LABELED
        if page.checkboxes:
            page.clicked_checkbox = page.checkboxes[0]
            return CheckboxChoice.FALLBACK
        return None

    async def click_enabled_submit(self, page):
        if page.submit_enabled:
            page.submitted = True
        return page.submit_enabled


class StaticLocator:
    """Locator returning a fixed environment."""

    def __init__(self, environment: ResolvedEnvironment):
        self.environment = environment
        self.calls = 0

    def resolve(self, log: bool = False) -> ResolvedEnvironment:
        self.calls += 1
        return self.environment


USABLE_ENVIRONMENT = ResolvedEnvironment(
    browser_path="/usr/bin/brave-browser",
    user_data_dir="/home/op/.config/BraveSoftware/Brave-Browser/Default",
    browser_type=BrowserVendor.BRAVE,
)


def build_orchestrator(
    page: Optional[FakePage] = None,
    session: Optional[FakeSession] = None,
    environment: ResolvedEnvironment = USABLE_ENVIRONMENT,
    allow_bundled_fallback: bool = False,
    timing: Optional[RunTiming] = None,
    clock: Optional[FakeClock] = None,
    guard: Optional[RunGuard] = None
) -> FormAutomationOrchestrator:
    clock = clock or FakeClock()
    session = session or FakeSession(page or FakePage(identity="op@org.com"))
    return FormAutomationOrchestrator(
        driver=FakeDriver(session),
        selectors=FakeSelectors(),
        locator=StaticLocator(environment),
        config=RunConfig(
            form_url=FORM_URL,
            target_checkbox_label="opt",
            identity_domain=DOMAIN,
            allow_bundled_fallback=allow_bundled_fallback,
            timing=timing or RunTiming(),
        ),
        guard=guard or RunGuard(),
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.fixture
def clock():
    return FakeClock()
