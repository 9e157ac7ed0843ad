"""Browser discovery, launch and page interaction."""

from snack_bot.browser.locator import (
    BrowserCandidate, BrowserLocator, BrowserVendor, ProfileDirectory,
    ResolvedEnvironment, create_browser_locator, resolve_browser_and_profile
)
from snack_bot.browser.selectors import (
    CheckboxChoice, GoogleFormsSelectorStrategy, SelectorStrategy, create_google_forms_strategy
)

__all__ = [
    "BrowserCandidate", "BrowserLocator", "BrowserVendor", "ProfileDirectory",
    "ResolvedEnvironment", "create_browser_locator", "resolve_browser_and_profile",
    "CheckboxChoice", "GoogleFormsSelectorStrategy", "SelectorStrategy",
    "create_google_forms_strategy",
]
