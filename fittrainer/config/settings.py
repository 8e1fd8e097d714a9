import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    ⚠️ WARNING: SQLite is for local development only.
    Set DATABASE_URL to a PostgreSQL connection string in any shared deployment.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "fittrainer.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.warning(
        f"⚠️ Using SQLite database (LOCAL DEV ONLY): {db_url}\n"
        "⚠️ Set DATABASE_URL environment variable to use PostgreSQL."
    )
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    db_statement_timeout_ms: int = Field(
        default=5000,
        validation_alias="DB_STATEMENT_TIMEOUT_MS",
        description="Per-statement timeout applied to PostgreSQL connections",
    )
    db_connect_timeout_seconds: int = Field(default=10, validation_alias="DB_CONNECT_TIMEOUT_SECONDS")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON", description="Write LOG_FILE as JSON lines")
    default_timezone: str = Field(default="UTC", validation_alias="DEFAULT_TIMEZONE")
    materialization_policy: str = Field(
        default="single",
        validation_alias="MATERIALIZATION_POLICY",
        description="single: one session for the earliest eligible plan; per_plan: one per eligible Active plan",
    )
    visibility_lookahead_days: int = Field(default=7, validation_alias="VISIBILITY_LOOKAHEAD_DAYS")
    default_workouts_per_week: int = Field(default=3, validation_alias="DEFAULT_WORKOUTS_PER_WEEK")
    invoice_default_due_days: int = Field(default=30, validation_alias="INVOICE_DEFAULT_DUE_DAYS")
    sweep_enabled: bool = Field(
        default=False,
        validation_alias="SWEEP_ENABLED",
        description="Run the plan-expiry and stale-session sweep on a background schedule",
    )
    sweep_interval_minutes: int = Field(default=60, validation_alias="SWEEP_INTERVAL_MINUTES")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("materialization_policy")
    @classmethod
    def validate_materialization_policy(cls, value: str) -> str:
        """Validate the session materialization policy name."""
        normalized = value.strip().lower().replace("-", "_")
        if normalized not in {"single", "per_plan"}:
            logger.warning(f"Invalid MATERIALIZATION_POLICY '{value}'. Valid values are: single, per_plan. Defaulting to single.")
            return "single"
        return normalized

    @field_validator("visibility_lookahead_days", "default_workouts_per_week", "invoice_default_due_days")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"Expected a non-negative value, got {value}")
        return value


settings = Settings()
