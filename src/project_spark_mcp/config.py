"""Server configuration via environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_DB_PATH = str(Path.home() / ".local" / "share" / "project-spark-mcp" / "spark.db")

MODEL_PRESETS: dict[str, dict[str, str]] = {
    "quality": {
        "default_model": "gemini-2.5-pro",
        "label": "Best project quality — 2.5 Pro (lowest rate limits)",
    },
    "balanced": {
        "default_model": "gemini-2.5-flash",
        "label": "Default — 2.5 Flash",
    },
    "budget": {
        "default_model": "gemini-2.5-flash-lite",
        "label": "Cost-optimized — 2.5 Flash-Lite (highest rate limits)",
    },
}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Derive tracing_enabled from env vars.

    - ``SPARK_TRACING_ENABLED=false`` → always disabled (explicit opt-out).
    - Otherwise enabled when ``MLFLOW_TRACKING_URI`` is non-empty.
    """
    if flag_value.lower() == "false":
        return False
    return bool(tracking_uri)


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment."""

    gemini_api_key: str = Field(default="")
    default_model: str = Field(default="gemini-2.5-flash")
    default_temperature: float = Field(default=0.7)
    max_output_tokens: int = Field(default=8192)
    retry_max_retries: int = Field(default=3)
    retry_base_delay: float = Field(default=1.0)
    retry_max_delay: float = Field(default=10.0)
    ai_min_interval: float = Field(default=1.0)
    ai_max_requests: int = Field(default=10)
    ai_rate_window: float = Field(default=60.0)
    online_timeout: float = Field(default=30.0)
    online_check_url: str = Field(default="https://www.gstatic.com/generate_204")
    db_path: str = Field(default="")
    mutations_enabled: bool = Field(default=False)
    admin_token: str = Field(default="")
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="project-spark-mcp")

    @field_validator("retry_max_retries")
    @classmethod
    def validate_retry_max_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("retry_max_retries must be >= 0")
        return value

    @field_validator("retry_base_delay", "retry_max_delay", "ai_rate_window", "online_timeout")
    @classmethod
    def validate_positive_delays(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Delay and window values must be > 0")
        return value

    @field_validator("ai_min_interval")
    @classmethod
    def validate_min_interval(cls, value: float) -> float:
        if value < 0:
            raise ValueError("ai_min_interval must be >= 0")
        return value

    @field_validator("ai_max_requests", "max_output_tokens")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator("default_temperature")
    @classmethod
    def validate_temperature(cls, value: float) -> float:
        if not 0.0 <= value <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        return value

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            default_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            default_temperature=float(os.getenv("GEMINI_TEMPERATURE", "0.7")),
            max_output_tokens=int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "8192")),
            retry_max_retries=int(os.getenv("SPARK_RETRY_MAX_RETRIES", "3")),
            retry_base_delay=float(os.getenv("SPARK_RETRY_BASE_DELAY", "1.0")),
            retry_max_delay=float(os.getenv("SPARK_RETRY_MAX_DELAY", "10.0")),
            ai_min_interval=float(os.getenv("SPARK_AI_MIN_INTERVAL", "1.0")),
            ai_max_requests=int(os.getenv("SPARK_AI_MAX_REQUESTS", "10")),
            ai_rate_window=float(os.getenv("SPARK_AI_RATE_WINDOW", "60.0")),
            online_timeout=float(os.getenv("SPARK_ONLINE_TIMEOUT", "30.0")),
            online_check_url=os.getenv(
                "SPARK_ONLINE_CHECK_URL", "https://www.gstatic.com/generate_204"
            ),
            db_path=os.getenv("SPARK_DB_PATH", DEFAULT_DB_PATH),
            mutations_enabled=_env_flag("SPARK_MUTATIONS_ENABLED"),
            admin_token=os.getenv("SPARK_ADMIN_TOKEN", ""),
            tracing_enabled=_resolve_tracing_enabled(
                os.getenv("SPARK_TRACING_ENABLED", ""),
                os.getenv("MLFLOW_TRACKING_URI", ""),
            ),
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.getenv("MLFLOW_EXPERIMENT_NAME", "project-spark-mcp"),
        )


_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads the ``.env`` sources (see :mod:`.dotenv`) before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        import logging

        from .dotenv import load_dotenv

        injected = load_dotenv()
        if injected:
            logging.getLogger(__name__).info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = ServerConfig.from_env()
    return _config


def update_config(**overrides: object) -> ServerConfig:
    """Patch the live config (used by the ``infra_configure`` tool)."""
    global _config
    data = get_config().model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = ServerConfig(**data)
    return _config
