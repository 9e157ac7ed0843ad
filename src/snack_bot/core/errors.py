"""Failure kinds surfaced by a form submission run."""


class AutomationError(Exception):
    """Base class for run failures visible to triggers."""


class BrowserNotFoundError(AutomationError):
    """No usable browser/profile resolved and bundled fallback is not permitted."""


class BrowserLaunchError(AutomationError):
    """The browser process could not be started."""


class NavigationError(AutomationError):
    """The form could not be opened within the navigation timeout."""


class InteractionError(AutomationError):
    """A required control (checkbox or enabled submit) never became available."""


class RunAbandonedError(AutomationError):
    """Every tab was closed while waiting for login and the form."""


class RunInProgressError(AutomationError):
    """Another run already owns the browser."""
