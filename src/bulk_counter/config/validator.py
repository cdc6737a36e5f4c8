"""
Configuration Validator - Validates config syntax and semantic correctness.

Provides comprehensive validation with detailed error messages.
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .schemas import Config, validate_config_pydantic

logger = logging.getLogger(__name__)


# ANSI color codes for terminal output
class Colors:
    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    RESET = "\033[0m"

    @classmethod
    def disable(cls):
        """Disable colors for non-TTY output."""
        cls.GREEN = cls.RED = cls.YELLOW = ""
        cls.CYAN = cls.BOLD = cls.RESET = ""


if not sys.stdout.isatty():
    Colors.disable()


@dataclass
class ValidationResult:
    """Result of config validation."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    derived: dict[str, Any] = field(default_factory=dict)
    config: Config | None = None


def validate_config_full(config: dict) -> ValidationResult:
    """
    Validate a raw configuration dictionary.

    Schema errors come from the pydantic models; warnings flag settings that
    are legal but probably unintended.

    Args:
        config: Configuration dictionary to validate

    Returns:
        ValidationResult with errors, warnings, the parsed Config and the
        derived runtime settings.
    """
    result = ValidationResult(valid=True)

    try:
        parsed = validate_config_pydantic(config)
    except ValidationError as e:
        for err in e.errors():
            location = ".".join(str(part) for part in err["loc"]) or "config"
            result.errors.append(f"{location}: {err['msg']}")
        result.valid = False
        return result

    result.config = parsed
    _check_warnings(parsed, result)
    result.derived["settings"] = parsed.to_settings().model_dump()
    result.derived["template"] = parsed.detection.template
    return result


def _check_warnings(config: Config, result: ValidationResult) -> None:
    detection = config.detection

    if detection.template == "generic" and detection.model_file:
        if not Path(detection.model_file).exists():
            result.warnings.append(
                f"Model file not found: {detection.model_file} (will be downloaded if valid)"
            )
    elif detection.model_file:
        result.warnings.append(
            f"detection.model_file is only used by the generic template "
            f"(template is '{detection.template}')"
        )

    if not config.deduplication.enabled:
        result.warnings.append(
            "Deduplication disabled - items panned past again will be recounted"
        )

    if detection.confidence_threshold == 0.0:
        result.warnings.append("confidence_threshold is 0 - every candidate is emitted")


def print_validation_result(result: ValidationResult) -> None:
    """Print validation result."""
    print()
    print(f"{Colors.BOLD}Configuration Validation{Colors.RESET}")
    print("=" * 60)

    if result.valid:
        print(f"\n{Colors.GREEN}✓ Configuration is valid{Colors.RESET}")
    else:
        print(f"\n{Colors.RED}✗ Configuration has errors{Colors.RESET}")

    if result.errors:
        print(f"\n{Colors.RED}Errors:{Colors.RESET}")
        for error in result.errors:
            print(f"  {Colors.RED}✗{Colors.RESET} {error}")

    if result.warnings:
        print(f"\n{Colors.YELLOW}Warnings:{Colors.RESET}")
        for warning in result.warnings:
            print(f"  {Colors.YELLOW}!{Colors.RESET} {warning}")

    if result.valid and result.derived:
        print(f"\n{Colors.CYAN}Derived Configuration:{Colors.RESET}")
        print(f"  Template: {result.derived.get('template')}")
        for key, value in result.derived.get("settings", {}).items():
            print(f"  {key}: {value}")

    print()
