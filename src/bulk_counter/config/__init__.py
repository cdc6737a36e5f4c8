"""
Configuration loading, validation, and hot reload.

- load_config_file / load_config_with_env: Read YAML, apply env overrides
- validate_config_full: Validation with errors/warnings
- SettingsStore: Thread-safe hot-reloadable runtime settings
- ConfigFileWatcher: Push file changes into a SettingsStore
"""

from .loader import load_config_file, load_config_with_env
from .schemas import (
    CameraConfig,
    Config,
    DeduplicationConfig,
    DetectionConfig,
    Settings,
    SheetConfig,
    validate_config_pydantic,
)
from .settings import SettingsStore
from .validator import ValidationResult, print_validation_result, validate_config_full
from .watcher import ConfigFileWatcher

__all__ = [
    "CameraConfig",
    "Config",
    "ConfigFileWatcher",
    "DeduplicationConfig",
    "DetectionConfig",
    "Settings",
    "SettingsStore",
    "SheetConfig",
    "ValidationResult",
    "load_config_file",
    "load_config_with_env",
    "print_validation_result",
    "validate_config_full",
    "validate_config_pydantic",
]
