"""
Tunable scheduler parameters.

The memory model is treated as a pluggable, versioned algorithm: the weight
vector, per-mode target retention and interval bounds are passed explicitly
to the Scheduler instead of being read from ambient state.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lexquest.fsrs.constants import (
    DEFAULT_RETENTION,
    DEFAULT_WEIGHTS,
    MAX_LAPSE_RATIO,
    MAXIMUM_INTERVAL,
    MODEL_VERSION,
    RELEARNING_DAYS,
)
from lexquest.models import BookMode


class SchedulerParams(BaseModel):
    """Memory model configuration. Immutable; use with_retention() to override."""
    model_config = ConfigDict(frozen=True)

    version: str = MODEL_VERSION
    weights: tuple[float, ...] = Field(default=DEFAULT_WEIGHTS)
    retention: dict[BookMode, float] = Field(default_factory=lambda: dict(DEFAULT_RETENTION))
    maximum_interval: int = Field(default=MAXIMUM_INTERVAL, ge=1)
    relearning_days: int = Field(default=RELEARNING_DAYS, ge=1)
    max_lapse_ratio: float = Field(default=MAX_LAPSE_RATIO, gt=0.0, lt=1.0)

    @field_validator("weights")
    @classmethod
    def _check_weights(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if len(value) != len(DEFAULT_WEIGHTS):
            raise ValueError(f"expected {len(DEFAULT_WEIGHTS)} weights, got {len(value)}")
        return value

    @field_validator("retention")
    @classmethod
    def _check_retention(cls, value: dict[BookMode, float]) -> dict[BookMode, float]:
        for mode, r in value.items():
            if not 0.0 < r < 1.0:
                raise ValueError(f"retention for {mode} must be in (0, 1), got {r}")
        # Modes left out fall back to the defaults
        return {**DEFAULT_RETENTION, **value}

    def retention_for(self, mode: BookMode) -> float:
        return self.retention.get(BookMode(mode), DEFAULT_RETENTION[BookMode.READ])

    def with_retention(self, mode: BookMode, value: float) -> "SchedulerParams":
        """Return a copy with one mode's target retention overridden."""
        retention = dict(self.retention)
        retention[BookMode(mode)] = value
        return SchedulerParams(
            version=self.version,
            weights=self.weights,
            retention=retention,
            maximum_interval=self.maximum_interval,
            relearning_days=self.relearning_days,
            max_lapse_ratio=self.max_lapse_ratio,
        )
