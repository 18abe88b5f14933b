"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Clinical constants overridable without code changes
"""

import logging
import os
from functools import lru_cache
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class StorageConfig(BaseModel):
    """Where the journal keeps its collections."""

    backend: Literal["memory", "json"] = Field(
        default="json", description="Key-value store implementation"
    )
    path: str = Field(
        default="./health_journal.json", description="File used by the json backend"
    )
    key_prefix: str = Field(default="", description="Prepended to every storage key")
    max_read_diagnostics: int = Field(
        default=50, gt=0, description="Read errors kept on the gateway's diagnostic channel"
    )


class ClinicalConfig(BaseModel):
    """Reference values used by classification and statistics."""

    reference_height_cm: float = Field(
        default=170.0,
        gt=50.0,
        lt=280.0,
        description="Height substituted for BMI when the user's height is unknown",
    )
    user_height_cm: float | None = Field(
        default=None, gt=50.0, lt=280.0, description="Measured height of the user, if known"
    )
    trend_stable_threshold_pct: float = Field(
        default=1.0, ge=0.0, description="Absolute % change below which a trend is stable"
    )
    default_average_days: int = Field(default=7, gt=0)
    default_trend_days: int = Field(default=30, gt=0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    storage: StorageConfig = Field(default_factory=StorageConfig)
    clinical: ClinicalConfig = Field(default_factory=ClinicalConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(
            LogLevel,
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _backend_to_literal(val: str) -> Literal["memory", "json"]:
        return "memory" if val.strip().lower() in {"memory", "mem", "inmemory"} else "json"

    def _optional_float(val: str | None) -> float | None:
        if val is None or not val.strip():
            return None
        return float(val)

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    storage_config = StorageConfig(
        backend=_backend_to_literal(os.getenv("JOURNAL_STORAGE", "json")),
        path=os.getenv("JOURNAL_STORAGE_PATH", "./health_journal.json"),
        key_prefix=os.getenv("JOURNAL_KEY_PREFIX", ""),
        max_read_diagnostics=int(os.getenv("JOURNAL_MAX_READ_DIAGNOSTICS", "50")),
    )

    clinical_config = ClinicalConfig(
        reference_height_cm=float(os.getenv("REFERENCE_HEIGHT_CM", "170")),
        user_height_cm=_optional_float(os.getenv("USER_HEIGHT_CM")),
        trend_stable_threshold_pct=float(os.getenv("TREND_STABLE_THRESHOLD_PCT", "1.0")),
        default_average_days=int(os.getenv("DEFAULT_AVERAGE_DAYS", "7")),
        default_trend_days=int(os.getenv("DEFAULT_TREND_DAYS", "30")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        storage=storage_config,
        clinical=clinical_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def configure_logging(config: LoggingConfig) -> None:
    """Point structlog at the configured level and renderer."""
    logging.basicConfig(format="%(message)s", level=config.level)
    logging.getLogger().setLevel(config.level)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"Configuration loaded for {config.environment} environment")
        if config.clinical.user_height_cm is None:
            print(
                f"No USER_HEIGHT_CM set: BMI uses the {config.clinical.reference_height_cm:g} cm "
                "reference height and is reported as estimated"
            )
    except Exception as e:
        print(f"Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nSTORAGE")
    print(f"Backend: {config.storage.backend}")
    if config.storage.backend == "json":
        print(f"Path: {config.storage.path}")

    print("\nCLINICAL")
    print(f"Reference Height: {config.clinical.reference_height_cm:g} cm")
    print(f"User Height: {config.clinical.user_height_cm or 'unknown'}")
    print(f"Stable Trend Threshold: {config.clinical.trend_stable_threshold_pct}%")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
