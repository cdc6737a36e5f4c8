"""
Configuration loading.

Handles:
- Reading YAML config files (with `use:` pointer files)
- Applying environment variable overrides
"""

import logging
import os
from pathlib import Path

import yaml

from ..errors import ConfigValidationError
from ..utils.constants import ENV_CAMERA_URL, ENV_CONFIDENCE_THRESHOLD, ENV_SHEET_ID

logger = logging.getLogger(__name__)


def load_config_file(config_file: str | Path) -> dict:
    """
    Read a YAML config file.

    Supports pointer files: if the file only contains `use: path/to/config.yaml`,
    that file is loaded instead (resolved relative to the pointer file).

    Args:
        config_file: Path to config.yaml

    Returns:
        Raw configuration dictionary (empty dict for an empty file)

    Raises:
        ConfigValidationError: If the YAML is invalid or not a mapping
    """
    config_path = Path(config_file)
    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        if isinstance(config, dict) and list(config.keys()) == ["use"]:
            pointer_path = config_path.parent / config["use"]
            logger.info(f"Config pointer: {config_path} -> {config['use']}")
            with open(pointer_path, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
            config_path = pointer_path

    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigValidationError(f"Config root must be a mapping: {config_path}")

    logger.info(f"Configuration loaded from {config_path}")
    return config


def load_config_with_env(config: dict) -> dict:
    """
    Apply environment variable overrides to config.

    Args:
        config: Base configuration dictionary

    Returns:
        Configuration with environment variables applied
    """
    if ENV_CAMERA_URL in os.environ:
        logger.info(f"Using camera URL from environment: {ENV_CAMERA_URL}")
        config.setdefault("camera", {})["url"] = os.environ[ENV_CAMERA_URL]

    if ENV_CONFIDENCE_THRESHOLD in os.environ:
        raw = os.environ[ENV_CONFIDENCE_THRESHOLD]
        try:
            threshold = float(raw)
        except ValueError:
            logger.warning(f"Ignoring non-numeric {ENV_CONFIDENCE_THRESHOLD}={raw!r}")
        else:
            logger.info(f"Using confidence threshold from environment: {threshold}")
            config.setdefault("detection", {})["confidence_threshold"] = threshold

    if ENV_SHEET_ID in os.environ:
        logger.info(f"Using sheet id from environment: {ENV_SHEET_ID}")
        config.setdefault("sheet", {})["id"] = os.environ[ENV_SHEET_ID]

    return config
