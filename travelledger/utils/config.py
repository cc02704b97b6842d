"""Application settings.

Pydantic-based configuration, overridable through environment variables or a
``.env`` file.

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the match store (default: SQLite in data_dir)
- LOG_LEVEL / JSON_LOGS / DEBUG: logging behaviour
- METRICS_ENABLED / METRICS_PORT: Prometheus exporter
- TRAVELLEDGER_MATCHING_*: matcher weights and thresholds
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from platformdirs import PlatformDirs
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from travelledger.exceptions import ConfigurationError

dirs = PlatformDirs("travelledger", appauthor=False)


class MatchingSettings(BaseSettings):
    """Weights and thresholds of the reconciliation matcher.

    The defaults are a reconstruction of the bands used by the bank screen
    (±€1 tolerance, high/medium badges); confirm with stakeholders before
    changing them.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRAVELLEDGER_MATCHING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Signal weights (renormalized when a signal is unavailable)
    amount_weight: float = Field(default=0.5, gt=0.0, le=1.0)
    date_weight: float = Field(default=0.25, ge=0.0, le=1.0)
    text_weight: float = Field(default=0.25, ge=0.0, le=1.0)

    # Amount tiers
    exact_amount_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Absolute difference treated as the same amount",
    )
    unit_amount_tolerance: Decimal = Field(
        default=Decimal("1.00"),
        ge=0,
        description="Absolute difference covering rounding and bank fees",
    )
    relative_amount_tolerance: Decimal = Field(
        default=Decimal("0.02"),
        ge=0,
        le=1,
        description="Difference as a fraction of the larger amount",
    )

    # Confidence levels
    high_confidence: float = Field(default=0.85, ge=0.0, le=1.0)
    medium_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    min_confidence: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Candidates below this are never shown",
    )

    # Proposer
    max_suggestions: int = Field(default=5, ge=1, le=100)

    # Batch auto-matching
    auto_confirm_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Best candidates at or above this are confirmed by auto-match",
    )

    @model_validator(mode="after")
    def _check_consistency(self) -> "MatchingSettings":
        total = self.amount_weight + self.date_weight + self.text_weight
        if abs(total - 1.0) > 0.01:
            raise ConfigurationError(
                f"Matching weights must sum to 1.0, got {total}",
                setting="amount_weight+date_weight+text_weight",
                expected="1.0",
            )
        if not self.min_confidence <= self.medium_confidence <= self.high_confidence:
            raise ConfigurationError(
                "Confidence thresholds must satisfy min <= medium <= high",
                setting="min_confidence/medium_confidence/high_confidence",
            )
        if self.unit_amount_tolerance < self.exact_amount_tolerance:
            raise ConfigurationError(
                "unit_amount_tolerance must not be below exact_amount_tolerance",
                setting="unit_amount_tolerance",
            )
        return self


class Settings(BaseSettings):
    """Top-level settings. Field names map to environment variables directly."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: Path = Field(default_factory=lambda: Path(dirs.user_data_dir))
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL; defaults to a SQLite file inside data_dir",
    )

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False
    debug: bool = False

    # Metrics
    metrics_enabled: bool = False
    metrics_port: int = Field(default=8000, ge=1, le=65535)

    matching: MatchingSettings = Field(default_factory=MatchingSettings)

    @property
    def resolved_database_url(self) -> str:
        """Database URL, falling back to ``data_dir/travelledger.db``."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'travelledger.db'}"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached settings and read the environment again."""
    get_settings.cache_clear()
    return get_settings()
