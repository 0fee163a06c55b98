"""Custom exceptions for serpnav."""

from typing import Any, Optional


class SerpNavError(Exception):
    """Base exception for serpnav."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class EngineRegistryError(SerpNavError):
    """The provider table could not be loaded or failed validation."""

    pass


class SelectorFault(SerpNavError):
    """A selector rule was malformed or threw while being evaluated."""

    def __init__(
        self,
        selector: str,
        error: str,
        context: Optional[dict[str, Any]] = None,
    ):
        message = f"Selector {selector!r} failed: {error}"
        super().__init__(message, context)
        self.selector = selector
        self.error = error


class InvalidTransition(SerpNavError):
    """A redirect session was asked to move along an edge it does not have."""

    def __init__(
        self,
        current: str,
        requested: str,
        context: Optional[dict[str, Any]] = None,
    ):
        message = f"Invalid session transition {current} -> {requested}"
        super().__init__(message, context)
        self.current = current
        self.requested = requested


class SnapshotError(SerpNavError):
    """The page could not be captured as a layout snapshot."""

    pass
