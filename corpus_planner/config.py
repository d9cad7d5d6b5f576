"""Engine configuration management using Pydantic Settings."""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineDefaults(BaseModel):
    """Immutable engine-wide default rates and assumptions (percent values)."""

    model_config = ConfigDict(frozen=True)

    inflation_rate: float = Field(default=6.0, ge=0, le=50)
    epf_return: float = Field(default=8.15, ge=0, le=50)
    ppf_return: float = Field(default=7.1, ge=0, le=50)
    mf_return: float = Field(default=12.0, ge=0, le=50)
    nps_return: float = Field(default=10.0, ge=0, le=50)
    fd_return: float = Field(default=7.0, ge=0, le=50)
    rd_return: float = Field(default=6.5, ge=0, le=50)
    other_return: float = Field(default=7.0, ge=0, le=50)
    ulip_return: float = Field(default=8.0, ge=0, le=50)

    corpus_return_rate: float = Field(default=10.0, ge=0, le=50)
    withdrawal_rate: float = Field(default=8.0, ge=0, le=100)
    sip_step_up_percent: float = Field(default=10.0, ge=0, le=100)
    rate_floor: float = Field(default=4.0, ge=0, le=50)

    current_age: int = Field(default=35, ge=0, le=120)
    retirement_age: int = Field(default=60, ge=0, le=120)
    life_expectancy: int = Field(default=85, ge=0, le=120)

    monte_carlo_std_dev: float = Field(default=8.0, ge=0, le=100)
    income_projection_horizon: int = Field(default=30, ge=1, le=100)


class EngineSettings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Default Return Assumptions (percent)
    default_inflation_rate: float = Field(default=6.0, alias="DEFAULT_INFLATION_RATE")
    default_epf_return: float = Field(default=8.15, alias="DEFAULT_EPF_RETURN")
    default_ppf_return: float = Field(default=7.1, alias="DEFAULT_PPF_RETURN")
    default_mf_return: float = Field(default=12.0, alias="DEFAULT_MF_RETURN")
    default_nps_return: float = Field(default=10.0, alias="DEFAULT_NPS_RETURN")

    # Retirement Phase Assumptions (percent)
    default_corpus_return_rate: float = Field(
        default=10.0, alias="DEFAULT_CORPUS_RETURN_RATE"
    )
    default_withdrawal_rate: float = Field(default=8.0, alias="DEFAULT_WITHDRAWAL_RATE")

    # Monte Carlo Configuration
    monte_carlo_std_dev: float = Field(default=8.0, alias="MONTE_CARLO_STD_DEV")
    monte_carlo_max_simulations: int = Field(
        default=100000, alias="MONTE_CARLO_MAX_SIMULATIONS"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()

    @field_validator(
        "default_inflation_rate",
        "default_epf_return",
        "default_ppf_return",
        "default_mf_return",
        "default_nps_return",
        "default_corpus_return_rate",
        "default_withdrawal_rate",
        "monte_carlo_std_dev",
    )
    @classmethod
    def validate_rate(cls, v):
        """Rates are percentages and may not be negative."""
        if v < 0:
            raise ValueError("Rates must be non-negative percentages")
        return v

    @field_validator("monte_carlo_max_simulations")
    @classmethod
    def validate_max_simulations(cls, v):
        """Validate the simulation ceiling."""
        if v < 1:
            raise ValueError("MONTE_CARLO_MAX_SIMULATIONS must be at least 1")
        return v

    def to_defaults(self) -> EngineDefaults:
        """Build the immutable defaults passed into every engine entry point."""
        return EngineDefaults(
            inflation_rate=self.default_inflation_rate,
            epf_return=self.default_epf_return,
            ppf_return=self.default_ppf_return,
            mf_return=self.default_mf_return,
            nps_return=self.default_nps_return,
            corpus_return_rate=self.default_corpus_return_rate,
            withdrawal_rate=self.default_withdrawal_rate,
            monte_carlo_std_dev=self.monte_carlo_std_dev,
        )


def get_settings(env_file: Optional[str] = None) -> EngineSettings:
    """Get engine settings instance."""
    if env_file is not None:
        return EngineSettings(_env_file=env_file)
    return EngineSettings()


# Global settings instance - created on first use
_settings: Optional[EngineSettings] = None


def get_global_settings() -> EngineSettings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reset_global_settings() -> None:
    """Reset global settings instance (useful for testing)."""
    global _settings
    _settings = None


def configure_logging(settings: Optional[EngineSettings] = None) -> None:
    """Apply the configured log level to the package logger."""
    settings = settings or get_global_settings()
    logging.getLogger("corpus_planner").setLevel(settings.log_level)
