"""
Redirect lifecycle events for serpnav.

Emitted by RedirectController, consumed by the status board and anything
else watching a tab (CLI, logging, tests).

Events:
- redirecting: a result was found and navigation is scheduled
- redirect_complete: navigation fired
- redirect_failed: content never appeared, or no Nth result qualified
- redirect_cancelled: the user cancelled before navigation fired
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    REDIRECTING = "redirecting"
    REDIRECT_COMPLETE = "redirect_complete"
    REDIRECT_FAILED = "redirect_failed"
    REDIRECT_CANCELLED = "redirect_cancelled"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BaseEvent(BaseModel):
    """Base class for all lifecycle events."""

    model_config = ConfigDict(use_enum_values=True)

    tab_id: str = Field(description="Page/tab the session ran in")
    timestamp: datetime = Field(default_factory=_now, description="Event timestamp")


class RedirectingEvent(BaseEvent):
    """
    Emitted when navigation to a result is scheduled.

    Example: { type: "redirecting", index: 2, url: "https://example.org/" }
    """
    type: Literal["redirecting"] = "redirecting"
    index: int = Field(ge=1, description="1-based rank being opened")
    url: str = Field(description="Result the page will navigate to")
    delay_ms: int = Field(default=0, ge=0, description="Countdown before navigation")


class RedirectCompleteEvent(BaseEvent):
    type: Literal["redirect_complete"] = "redirect_complete"
    url: Optional[str] = None


class RedirectFailedEvent(BaseEvent):
    """
    Emitted when a session ends in Failed, or navigation itself errored.

    Example: { type: "redirect_failed", reason: "content_timeout" }
    """
    type: Literal["redirect_failed"] = "redirect_failed"
    reason: str = Field(description="content_timeout, extraction_miss or navigation_error")
    detail: Optional[str] = None


class RedirectCancelledEvent(BaseEvent):
    type: Literal["redirect_cancelled"] = "redirect_cancelled"


RedirectEvent = Annotated[
    Union[
        RedirectingEvent,
        RedirectCompleteEvent,
        RedirectFailedEvent,
        RedirectCancelledEvent,
    ],
    Field(discriminator="type")
]
