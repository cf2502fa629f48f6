"""Pydantic configuration models for the assessment core."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from assessment.expiration import DEFAULT_EXPIRATION_DAYS
from assessment.scoring import DEFAULT_MINIMUM_CONFIDENCE_SAMPLE, POINTS_PER_LEVEL
from tasks.daily import DailyTaskConfig


class ScoringConfig(BaseModel):
    """Score and level configuration."""

    minimum_confidence_sample: int = DEFAULT_MINIMUM_CONFIDENCE_SAMPLE
    points_per_level: int = POINTS_PER_LEVEL

    @field_validator("minimum_confidence_sample", "points_per_level")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Must be at least 1, got {v}")
        return v


class DailyTaskSettings(BaseModel):
    """Daily task heuristic configuration."""

    cooldown_days: int = 1
    max_estimated_minutes: int = 15
    tier_unlock_bonus: float = 50
    difficulty_weight: float = 10
    time_weight: float = 30
    alternatives: int = 3

    @model_validator(mode="after")
    def validate_ranges(self):
        if self.cooldown_days < 0:
            raise ValueError(f"cooldown_days cannot be negative, got {self.cooldown_days}")
        if self.max_estimated_minutes < 1:
            raise ValueError(
                f"max_estimated_minutes must be at least 1, got {self.max_estimated_minutes}"
            )
        if self.alternatives < 0:
            raise ValueError(f"alternatives cannot be negative, got {self.alternatives}")
        return self

    def to_engine_config(self) -> DailyTaskConfig:
        return DailyTaskConfig(**self.model_dump())


class FactsConfig(BaseModel):
    """Fact extraction configuration."""

    option_fact_confidence: float = 0.9
    inject_confidence: float = 0.95

    @field_validator("option_fact_confidence", "inject_confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Confidence must be between 0 and 1, got {v}")
        return v


class ExpirationConfig(BaseModel):
    """Answer expiration configuration."""

    default_days: Optional[int] = DEFAULT_EXPIRATION_DAYS  # None = answers never expire
    expiring_within_days: int = 7


class PathsConfig(BaseModel):
    """File paths configuration."""

    catalog: Optional[Path] = None
    log_file: Optional[Path] = None

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        if self.catalog:
            self.catalog = self.catalog.expanduser()
        if self.log_file:
            self.log_file = self.log_file.expanduser()
        return self


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    json_mode: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class AssessmentConfig(BaseModel):
    """Main configuration model."""

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    daily_task: DailyTaskSettings = Field(default_factory=DailyTaskSettings)
    facts: FactsConfig = Field(default_factory=FactsConfig)
    expiration: ExpirationConfig = Field(default_factory=ExpirationConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "AssessmentConfig":
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
