"""Run-level data models for the form automation orchestrator."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from snack_bot.browser.selectors import CheckboxChoice


class RunPhase(str, Enum):
    """States of a single automation run."""
    INIT = "init"
    LAUNCH = "launch"
    NAVIGATE = "navigate"
    POLL = "poll"
    INTERACT = "interact"
    SUBMIT = "submit"
    DONE = "done"
    FATAL_NO_BROWSER = "fatal_no_browser"
    STUCK_OPEN = "stuck_open"
    ABANDONED = "abandoned"
    FAILED = "failed"


class RunOutcome(str, Enum):
    """Non-exceptional ways a run can end."""
    SUBMITTED = "submitted"
    STUCK_OPEN = "stuck_open"
    ABANDONED = "abandoned"


@dataclass
class RunTiming:
    """Timing knobs for one run, in seconds."""
    navigation_timeout: float = 60.0
    poll_ceiling: float = 600.0
    poll_interval: float = 1.0
    form_settle_delay: float = 2.0
    post_submit_delay: float = 3.0


@dataclass
class RunConfig:
    """What to submit and how long to wait."""
    form_url: str
    target_checkbox_label: str
    identity_domain: str
    allow_bundled_fallback: bool = False
    timing: RunTiming = field(default_factory=RunTiming)


@dataclass
class SessionState:
    """Transient state of one run, owned by the orchestrator loop."""
    phase: RunPhase = RunPhase.INIT
    started_at: float = 0.0
    elapsed: float = 0.0
    last_identity: Optional[str] = None
    identity_verified: bool = False
    active_page: Any = None
    poll_count: int = 0
    page_count: int = 0

    def advance(self, phase: RunPhase) -> None:
        self.phase = phase


@dataclass(frozen=True)
class RunResult:
    """How a run ended when it did not raise."""
    outcome: RunOutcome
    poll_count: int = 0
    elapsed: float = 0.0
    identity: Optional[str] = None
    identity_verified: bool = False
    checkbox: Optional[CheckboxChoice] = None

    @property
    def submitted(self) -> bool:
        return self.outcome == RunOutcome.SUBMITTED
