"""
Redirect pipeline: session state machine and its collaborators.

Contains:
- RedirectController: per-page pipeline and countdown
- RedirectSession / SessionStatus: the state machine
- RedirectEventEmitter + events: lifecycle notifications
- Notifier implementations, SettingsStore, StatusBoard
"""

from serpnav.redirect.controller import RedirectController
from serpnav.redirect.emitter import RedirectEventEmitter, get_event_emitter
from serpnav.redirect.notifier import LoggingNotifier, Notifier, NullNotifier, ordinal
from serpnav.redirect.session import AttemptOutcome, FailureReason, RedirectSession, SessionStatus
from serpnav.redirect.settings_store import InMemorySettingsStore, SettingsStore
from serpnav.redirect.status_board import StatusBoard

__all__ = [
    "AttemptOutcome",
    "FailureReason",
    "InMemorySettingsStore",
    "LoggingNotifier",
    "Notifier",
    "NullNotifier",
    "RedirectController",
    "RedirectEventEmitter",
    "RedirectSession",
    "SessionStatus",
    "SettingsStore",
    "StatusBoard",
    "get_event_emitter",
    "ordinal",
]
