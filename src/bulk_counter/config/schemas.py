"""
Pydantic schemas for configuration validation.

Provides type-safe, declarative validation with clear error messages.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..utils.constants import (
    DEFAULT_CAPTURE_INTERVAL_MS,
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_CONFIG_POLL_SECONDS,
    DEFAULT_DEDUP_DISTANCE,
    DEFAULT_ENABLE_DEDUPLICATION,
    DEFAULT_SLEEP_TIMEOUT_MS,
)


class StrictModel(BaseModel):
    """Base model that rejects unknown fields."""

    model_config = ConfigDict(extra="forbid")


class Settings(BaseModel):
    """
    Runtime-tunable settings shared by the pipeline, tracker and sleep loop.

    Immutable: hot reload swaps in a new instance.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    confidence_threshold: float = Field(
        default=DEFAULT_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0
    )
    enable_deduplication: bool = DEFAULT_ENABLE_DEDUPLICATION
    deduplication_distance_threshold: float = Field(
        default=DEFAULT_DEDUP_DISTANCE, ge=0.0, description="Pixels"
    )
    sleep_timeout_ms: int = Field(default=DEFAULT_SLEEP_TIMEOUT_MS, gt=0)


class DetectionConfig(BaseModel):
    """Detection settings."""

    template: Literal["circle", "rectangle", "generic"] = "circle"
    confidence_threshold: float = Field(
        default=DEFAULT_CONFIDENCE_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Detection confidence threshold",
    )
    model_file: str | None = Field(
        default=None, description="YOLO model file for the generic template"
    )


class DeduplicationConfig(BaseModel):
    """Spatial deduplication settings."""

    enabled: bool = DEFAULT_ENABLE_DEDUPLICATION
    distance_threshold: float = Field(default=DEFAULT_DEDUP_DISTANCE, ge=0.0)


class SleepConfig(BaseModel):
    """Idle sleep settings."""

    timeout_ms: int = Field(default=DEFAULT_SLEEP_TIMEOUT_MS, gt=0)


class CameraConfig(BaseModel):
    """Camera configuration."""

    url: str = Field(default="0", min_length=1)
    capture_interval_ms: int = Field(default=DEFAULT_CAPTURE_INTERVAL_MS, gt=0)


class OutputConfig(BaseModel):
    """Output configuration."""

    json_dir: str = Field(default="data")


class SheetConfig(BaseModel):
    """Inventory sheet that confirmed counts go to."""

    id: str = Field(default="inventory", min_length=1)
    item_name: str | None = None


class RuntimeConfig(BaseModel):
    """Runtime configuration."""

    default_duration_hours: float = Field(default=1.0, gt=0)
    config_poll_seconds: float = Field(default=DEFAULT_CONFIG_POLL_SECONDS, gt=0)


class Config(StrictModel):
    """Complete configuration schema."""

    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    deduplication: DeduplicationConfig = Field(default_factory=DeduplicationConfig)
    sleep: SleepConfig = Field(default_factory=SleepConfig)
    camera: CameraConfig = Field(default_factory=CameraConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    sheet: SheetConfig = Field(default_factory=SheetConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @model_validator(mode="after")
    def validate_generic_model(self):
        if self.detection.template == "generic" and not self.detection.model_file:
            raise ValueError("detection.model_file is required for the generic template")
        return self

    def to_settings(self) -> Settings:
        """Extract the hot-reloadable settings."""
        return Settings(
            confidence_threshold=self.detection.confidence_threshold,
            enable_deduplication=self.deduplication.enabled,
            deduplication_distance_threshold=self.deduplication.distance_threshold,
            sleep_timeout_ms=self.sleep.timeout_ms,
        )


def validate_config_pydantic(config: dict) -> Config:
    """
    Validate configuration using Pydantic.

    Args:
        config: Raw configuration dictionary

    Returns:
        Validated Config object

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return Config(**config)
