"""Configuration management for taskflow."""

import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskflow.models.tasks import TaskEffort


class ScoringConfig(BaseModel):
    """Weights and thresholds for the priority formula.

    Injected into ``PriorityCalculator`` so alternate tunings can be tested
    without touching the algorithm.
    """

    model_config = ConfigDict(frozen=True)

    user_priority_weight: float = Field(default=0.4, ge=0, le=1)
    time_decay_weight: float = Field(default=0.3, ge=0, le=1)
    deadline_urgency_weight: float = Field(default=0.2, ge=0, le=1)
    bump_penalty_weight: float = Field(default=0.1, ge=0, le=1)

    user_priority_scale: float = Field(
        default=10.0,
        gt=0,
        description="Multiplier mapping the 1-10 user priority onto 0-100",
    )
    time_decay_window_days: float = Field(
        default=30.0, gt=0, description="Age at which time decay reaches 100"
    )
    deadline_window_days: float = Field(
        default=7.0, gt=0, description="Deadline urgency is zero beyond this many days"
    )
    bump_points: float = Field(default=10.0, ge=0, description="Penalty points per bump")
    max_bumps: int = Field(default=5, ge=1, description="Bumps beyond this count add nothing")

    effort_boosts: dict[TaskEffort, float] = Field(
        default_factory=lambda: {
            TaskEffort.SMALL: 1.3,
            TaskEffort.MEDIUM: 1.15,
            TaskEffort.LARGE: 1.0,
            TaskEffort.XLARGE: 1.0,
        },
    )
    default_effort_boost: float = Field(default=1.0, gt=0)

    at_risk_bump_threshold: int = Field(default=3, ge=1)
    at_risk_overdue_days: float = Field(default=3.0, ge=0)

    subtask_parent_boost: float = Field(
        default=0.15, ge=0, le=1, description="Share of the parent's score added to a subtask"
    )

    @model_validator(mode="after")
    def validate_weights(self) -> "ScoringConfig":
        """The four weights must sum to 1.0."""
        total = (
            self.user_priority_weight
            + self.time_decay_weight
            + self.deadline_urgency_weight
            + self.bump_penalty_weight
        )
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ValueError(f"Scoring weights must sum to 1.0 (got {total:.4f})")
        return self

    @property
    def max_bump_penalty(self) -> float:
        return self.bump_points * self.max_bumps


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TASKFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Runtime environment (development, staging, production)",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    database_url: str = Field(
        default="sqlite:///taskflow.db",
        description="SQLAlchemy URL for the task store",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    default_owner: str = Field(
        default="local",
        description="Owner id used by the CLI when none is given",
    )

    edge_insert_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a dependency insert that loses a write race",
    )

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)


# Global settings instance
settings = Settings()
