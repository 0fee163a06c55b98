"""
serpnav/redirect/settings_store.py

Settings store - source of the user settings and their change stream.

Persistence is the host's business; controllers only need the current
snapshot and to hear about partial updates:

    store = InMemorySettingsStore()
    store.subscribe(lambda changes: print(changes))   # {"result_index": 3}
    store.set(result_index=3)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from serpnav.core.models import UserSettings

logger = logging.getLogger(__name__)

SettingsListener = Callable[[Dict[str, Any]], None]


class SettingsStore(ABC):
    """Read access to UserSettings plus change notification."""

    @abstractmethod
    def get(self) -> UserSettings:
        """Current immutable settings snapshot."""

    @abstractmethod
    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        """Register ``listener`` for partial updates; returns an unsubscribe callable."""


class InMemorySettingsStore(SettingsStore):
    """Process-local store; updates are validated through UserSettings."""

    def __init__(self, settings: Optional[UserSettings] = None):
        self._settings = settings or UserSettings()
        self._listeners: list[SettingsListener] = []

    def get(self) -> UserSettings:
        return self._settings

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set(self, **changes: Any) -> Dict[str, Any]:
        """
        Apply a partial update.

        Args:
            **changes: UserSettings fields to change

        Returns:
            The fields whose value actually changed (empty if none)

        Raises:
            pydantic.ValidationError: the update produces invalid settings
        """
        unknown = set(changes) - set(UserSettings.model_fields)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

        current = self._settings.model_dump()
        updated = UserSettings.model_validate({**current, **changes})
        changed = {
            name: getattr(updated, name)
            for name in changes
            if getattr(updated, name) != current[name]
        }
        if not changed:
            return {}

        self._settings = updated
        logger.info(f"[Settings] Updated: {changed}")
        for listener in list(self._listeners):
            try:
                listener(changed)
            except Exception as e:
                logger.error(f"[Settings] Listener failed: {e}", exc_info=True)
        return changed
