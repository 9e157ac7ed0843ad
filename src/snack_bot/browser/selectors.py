"""DOM probes and clicks for the target form, behind a swappable strategy."""

import asyncio
import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from snack_bot.utils.logging import get_logger

logger = get_logger(__name__)

ACCOUNT_BUTTON_SELECTOR = (
    'a[aria-label*="Google Account"], '
    'img[aria-label*="Google Account"], '
    'img[alt*="Google Account"]'
)
ACCOUNT_INFO_SELECTOR = (
    'div[aria-label*="Account Information"], '
    'div[aria-label*="Google Account"], '
    '[data-email]'
)
FORM_SELECTOR = "form"
CHECKBOX_SELECTOR = 'div[role="checkbox"]'
EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")


class CheckboxChoice(str, Enum):
    """Which checkbox the interaction step ended up clicking."""
    LABELED = "clicked-labeled-checkbox"
    FALLBACK = "clicked-first-checkbox"


def normalize_domain(domain: str) -> str:
    """Lower-case the suffix and make sure it starts with '@'."""
    domain = domain.strip().lower()
    return domain if domain.startswith("@") else f"@{domain}"


def is_identity_match(candidate: Optional[str], domain: str) -> bool:
    """
    Check that an email ends exactly in the organizational suffix.

    ``user@org.com`` matches ``@org.com``; ``user@otherdomain.com`` and
    ``user@notorg.com`` do not. The local part must be non-empty.
    """
    if not candidate:
        return False
    value = candidate.strip().lower()
    suffix = normalize_domain(domain)
    if not value.endswith(suffix):
        return False
    local = value[: -len(suffix)]
    return bool(local) and "@" not in local and not any(c.isspace() for c in local)


def extract_identity(text: Optional[str], domain: str) -> Optional[str]:
    """Pull the first email ending in ``domain`` out of free-form account text."""
    if not text:
        return None
    suffix = normalize_domain(domain)
    pattern = re.compile(
        r"[\w.+-]+" + re.escape(suffix) + r"(?![\w-]|\.\w)",
        re.IGNORECASE
    )
    match = pattern.search(text)
    return match.group(0) if match else None


class SelectorStrategy(ABC):
    """
    How the orchestrator sees the page.

    Probes report absence with None/False rather than raising, since absence
    is the normal state while the operator is still logging in.
    """

    @abstractmethod
    async def find_identity(self, page: Any) -> Optional[str]:
        """Email of the signed-in account, preferring one in the required domain."""

    @abstractmethod
    async def has_form(self, page: Any) -> bool:
        """Whether the root form element is present."""

    @abstractmethod
    async def click_target_checkbox(self, page: Any, label: str) -> Optional[CheckboxChoice]:
        """Click the labeled checkbox, falling back to the first one. None if none appear."""

    @abstractmethod
    async def click_enabled_submit(self, page: Any) -> bool:
        """Click an enabled submit control. False if none becomes available."""


# Runs in the page: true once a checkbox carries the option label.
_LABELED_CHECKBOX_READY_JS = """
(label) => Array.from(document.querySelectorAll('div[role="checkbox"]')).some(checkbox => {
    if ((checkbox.getAttribute('aria-label') || '').trim() === label) return true;
    const item = checkbox.closest('div[role="listitem"]');
    return !!item && Array.from(item.querySelectorAll('span, div')).some(
        node => (node.textContent || '').trim() === label
    );
})
"""

# Runs in the page: find the checkbox for an option label, falling back to the first.
_CLICK_CHECKBOX_JS = """
(label) => {
    const checkboxes = Array.from(document.querySelectorAll('div[role="checkbox"]'));
    for (const checkbox of checkboxes) {
        if ((checkbox.getAttribute('aria-label') || '').trim() === label) {
            checkbox.click();
            return 'clicked-labeled-checkbox';
        }
        const item = checkbox.closest('div[role="listitem"]');
        if (!item) continue;
        const texts = Array.from(item.querySelectorAll('span, div'));
        if (texts.some(node => (node.textContent || '').trim() === label)) {
            checkbox.click();
            return 'clicked-labeled-checkbox';
        }
    }
    if (checkboxes.length > 0) {
        checkboxes[0].click();
        return 'clicked-first-checkbox';
    }
    return null;
}
"""

_SUBMIT_READY_JS = """
() => Array.from(document.querySelectorAll('div[role="button"]')).some(
    btn => (btn.textContent || '').toLowerCase().includes('submit') && !btn.hasAttribute('aria-disabled')
)
"""

_CLICK_SUBMIT_JS = """
() => {
    const buttons = Array.from(document.querySelectorAll('div[role="button"]'));
    const submit = buttons.find(
        btn => (btn.textContent || '').toLowerCase().includes('submit') && !btn.hasAttribute('aria-disabled')
    );
    if (submit) {
        submit.click();
        return true;
    }
    return false;
}
"""

_ACCOUNT_TEXTS_JS = """
(selector) => {
    const texts = [];
    const info = document.querySelector(selector);
    if (info) {
        texts.push(info.getAttribute('data-email') || '');
        texts.push(info.innerText || '');
    }
    for (const node of document.querySelectorAll('div, span')) {
        const text = (node.innerText || '').trim();
        if (text.includes('@') && text.length < 256) texts.push(text);
    }
    return texts;
}
"""


class GoogleFormsSelectorStrategy(SelectorStrategy):
    """Selector strategy for a Google Form behind a Google account login."""

    def __init__(
        self,
        identity_domain: str,
        identity_probe_timeout: float = 2.0,
        form_probe_timeout: float = 0.5,
        interaction_timeout: float = 20.0,
        menu_settle_delay: float = 1.0,
        submit_settle_delay: float = 1.0
    ):
        """
        Initialize the strategy.

        Args:
            identity_domain: Required email suffix, e.g. "@org.com"
            identity_probe_timeout: Seconds to wait for the account button per probe
            form_probe_timeout: Seconds to wait for the form per probe
            interaction_timeout: Seconds to wait for the checkbox and submit controls
            menu_settle_delay: Pause after opening the account menu
            submit_settle_delay: Pause between submit becoming enabled and clicking it
        """
        self.identity_domain = normalize_domain(identity_domain)
        self.identity_probe_timeout = identity_probe_timeout
        self.form_probe_timeout = form_probe_timeout
        self.interaction_timeout = interaction_timeout
        self.menu_settle_delay = menu_settle_delay
        self.submit_settle_delay = submit_settle_delay
        self.logger = logger.bind(component="google_forms_selectors")

    async def find_identity(self, page: Any) -> Optional[str]:
        try:
            button = await page.wait_for_selector(
                ACCOUNT_BUTTON_SELECTOR,
                timeout=self.identity_probe_timeout * 1000
            )
            if button is None:
                return None
            await button.click()
            await asyncio.sleep(self.menu_settle_delay)
            texts = await page.evaluate(_ACCOUNT_TEXTS_JS, ACCOUNT_INFO_SELECTOR)
        except PlaywrightError:
            return None

        observed = None
        for text in texts or []:
            email = extract_identity(text, self.identity_domain)
            if email:
                return email
            if observed is None:
                match = EMAIL_PATTERN.search(text or "")
                observed = match.group(0) if match else None
        return observed

    async def has_form(self, page: Any) -> bool:
        try:
            await page.wait_for_selector(FORM_SELECTOR, timeout=self.form_probe_timeout * 1000)
            return True
        except PlaywrightError:
            return False

    async def click_target_checkbox(self, page: Any, label: str) -> Optional[CheckboxChoice]:
        try:
            await page.wait_for_function(
                _LABELED_CHECKBOX_READY_JS,
                arg=label,
                timeout=self.interaction_timeout * 1000
            )
        except PlaywrightTimeoutError:
            self.logger.warning("Labeled checkbox never appeared", label=label, timeout=self.interaction_timeout)
        except PlaywrightError as e:
            self.logger.error("Checkbox wait failed", error=str(e))
            return None

        try:
            if await page.query_selector(CHECKBOX_SELECTOR) is None:
                self.logger.error("No checkbox appeared", timeout=self.interaction_timeout)
                return None
            result = await page.evaluate(_CLICK_CHECKBOX_JS, label)
        except PlaywrightError as e:
            self.logger.error("Checkbox click failed", error=str(e))
            return None
        return CheckboxChoice(result) if result else None

    async def click_enabled_submit(self, page: Any) -> bool:
        try:
            await page.wait_for_function(_SUBMIT_READY_JS, timeout=self.interaction_timeout * 1000)
        except PlaywrightError:
            self.logger.error("No enabled submit button appeared", timeout=self.interaction_timeout)
            return False

        try:
            await asyncio.sleep(self.submit_settle_delay)
            return bool(await page.evaluate(_CLICK_SUBMIT_JS))
        except PlaywrightError as e:
            self.logger.error("Submit click failed", error=str(e))
            return False


def create_google_forms_strategy(
    identity_domain: str,
    identity_probe_timeout: float = 2.0,
    form_probe_timeout: float = 0.5,
    interaction_timeout: float = 20.0,
    submit_settle_delay: float = 1.0
) -> GoogleFormsSelectorStrategy:
    """Factory function to create the Google Forms selector strategy."""
    return GoogleFormsSelectorStrategy(
        identity_domain=identity_domain,
        identity_probe_timeout=identity_probe_timeout,
        form_probe_timeout=form_probe_timeout,
        interaction_timeout=interaction_timeout,
        submit_settle_delay=submit_settle_delay
    )
