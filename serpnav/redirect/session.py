"""
serpnav/redirect/session.py

Redirect session - one run of the redirect state machine for one page load.

    idle -> waiting -> found -> counting_down -> redirecting
    waiting -> failed
    found | counting_down -> cancelled

redirecting, cancelled and failed are terminal. Any other edge raises
InvalidTransition; the controller owns the only reference to a live session.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from serpnav.core.exceptions import InvalidTransition


class SessionStatus(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    FOUND = "found"
    COUNTING_DOWN = "counting_down"
    REDIRECTING = "redirecting"
    CANCELLED = "cancelled"
    FAILED = "failed"


class FailureReason(str, Enum):
    CONTENT_TIMEOUT = "content_timeout"
    EXTRACTION_MISS = "extraction_miss"


class AttemptOutcome(str, Enum):
    """Why on_page_load did or did not start a session."""
    STARTED = "started"
    REDIRECT_DISABLED = "redirect_disabled"
    NO_ENGINE_MATCH = "no_engine_match"
    ENGINE_DISABLED = "engine_disabled"
    QUERY_ABSENT = "query_absent"
    ALREADY_PROCESSED = "already_processed"


TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.IDLE: frozenset({SessionStatus.WAITING}),
    SessionStatus.WAITING: frozenset({SessionStatus.FOUND, SessionStatus.FAILED}),
    SessionStatus.FOUND: frozenset({SessionStatus.COUNTING_DOWN, SessionStatus.CANCELLED}),
    SessionStatus.COUNTING_DOWN: frozenset({SessionStatus.REDIRECTING, SessionStatus.CANCELLED}),
    SessionStatus.REDIRECTING: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
    SessionStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset({
    SessionStatus.REDIRECTING,
    SessionStatus.CANCELLED,
    SessionStatus.FAILED,
})


@dataclass
class RedirectSession:
    """State of one redirect attempt.

    ``target_index`` is re-read from settings once the results are ready;
    after that, settings changes do not move the session to another rank.
    """
    target_index: int
    identifier: str
    status: SessionStatus = SessionStatus.IDLE
    target_url: Optional[str] = None
    failure_reason: Optional[FailureReason] = None
    started_at: float = field(default_factory=time.monotonic)
    history: List[Tuple[SessionStatus, float]] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_pending(self) -> bool:
        """True while a navigation is scheduled and still cancellable."""
        return self.status in (SessionStatus.FOUND, SessionStatus.COUNTING_DOWN)

    def can_transition(self, status: SessionStatus) -> bool:
        return status in TRANSITIONS[self.status]

    def transition(self, status: SessionStatus) -> None:
        """Move to ``status``.

        Raises:
            InvalidTransition: the edge is not part of the state machine
        """
        if not self.can_transition(status):
            raise InvalidTransition(
                self.status.value,
                status.value,
                context={"identifier": self.identifier},
            )
        self.history.append((self.status, time.monotonic()))
        self.status = status

    def fail(self, reason: FailureReason) -> None:
        self.transition(SessionStatus.FAILED)
        self.failure_reason = reason
