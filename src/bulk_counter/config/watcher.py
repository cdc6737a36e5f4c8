"""
Config file watcher for runtime settings changes.

Polls the YAML file's modification time and pushes the settings section
into the SettingsStore when it changes. Non-settings sections (camera,
output, sheet) still need a restart.
"""

import logging
import os
import threading
from pathlib import Path

from ..errors import ConfigValidationError
from .loader import load_config_file, load_config_with_env
from .settings import SettingsStore
from .validator import validate_config_full

logger = logging.getLogger(__name__)


class ConfigFileWatcher:
    """Watch a config file and hot-reload settings on change."""

    def __init__(self, config_file: str | Path, store: SettingsStore, poll_interval: float = 5.0):
        """
        Args:
            config_file: YAML file to watch
            store: Store receiving reloaded settings
            poll_interval: Seconds between polls
        """
        self.config_file = Path(config_file)
        self.store = store
        self.poll_interval = poll_interval

        self._last_mtime = self._mtime()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def _mtime(self) -> float | None:
        try:
            return os.path.getmtime(self.config_file)
        except OSError:
            return None

    def start(self) -> None:
        """Start watching in background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._poll_loop, name="ConfigFileWatcher", daemon=True
        )
        self._thread.start()
        logger.info(f"Watching {self.config_file} for settings changes")

    def stop(self) -> None:
        """Stop watching."""
        self._stop.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None

    def _poll_loop(self) -> None:
        while not self._stop.wait(self.poll_interval):
            self.check()

    def check(self) -> bool:
        """
        Reload settings if the file changed since the last check.

        Returns:
            True if new settings were applied
        """
        mtime = self._mtime()
        if mtime is None or mtime == self._last_mtime:
            return False
        self._last_mtime = mtime

        try:
            raw = load_config_with_env(load_config_file(self.config_file))
        except (OSError, ConfigValidationError) as e:
            logger.error(f"Config reload failed, keeping current settings: {e}")
            return False

        result = validate_config_full(raw)
        if not result.valid:
            logger.error(
                f"Config reload rejected, keeping current settings: {'; '.join(result.errors)}"
            )
            return False

        self.store.replace(result.config.to_settings())
        return True
