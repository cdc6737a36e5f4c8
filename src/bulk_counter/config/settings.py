"""
Hot-reloadable settings store.

Every component reads settings through the store at the moment it needs
them, so an update takes effect on the next frame or check without
restarting anything.
"""

import logging
import threading
from collections.abc import Callable

from pydantic import ValidationError

from ..errors import ConfigValidationError
from .schemas import Settings

logger = logging.getLogger(__name__)

SettingsListener = Callable[[Settings, Settings], None]


class SettingsStore:
    """Thread-safe holder for the current Settings."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or Settings()
        self._lock = threading.Lock()
        self._listeners: list[SettingsListener] = []

    @property
    def current(self) -> Settings:
        return self._settings

    def update(self, **changes) -> Settings:
        """
        Apply a partial update.

        Args:
            **changes: Settings fields to change

        Returns:
            The new Settings

        Raises:
            ConfigValidationError: If the merged settings are invalid
        """
        with self._lock:
            old = self._settings
            try:
                new = Settings(**{**old.model_dump(), **changes})
            except ValidationError as e:
                raise ConfigValidationError(f"Invalid settings: {e}") from e
            if new == old:
                return old
            self._settings = new
            listeners = list(self._listeners)

        logger.info(f"Settings updated: {_diff(old, new)}")
        for listener in listeners:
            listener(old, new)
        return new

    def replace(self, settings: Settings) -> Settings:
        """Swap in a complete Settings object."""
        return self.update(**settings.model_dump())

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        """
        Register a listener called with (old, new) after each change.

        Returns:
            Function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe


def _diff(old: Settings, new: Settings) -> str:
    old_values = old.model_dump()
    return ", ".join(
        f"{key}: {old_values[key]} -> {value}"
        for key, value in new.model_dump().items()
        if old_values[key] != value
    )
