from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal, Mapping

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..orchestration.enums import PipelineMode


class ObservabilitySettings(BaseModel):
    prometheus_enabled: bool = Field(True)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class OrchestratorSettings(BaseModel):
    stats_window: int = Field(
        100,
        ge=1,
        description="Number of most recent task durations used for the rolling average.",
    )
    status_retention: int | None = Field(
        default=None,
        ge=1,
        description="Maximum finished task statuses kept in memory; None keeps every entry.",
    )
    health_check_on_dispatch: bool = Field(
        True,
        description="Probe each required agent before dispatch. Failures are logged, never fatal.",
    )
    agent_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Optional upper bound for a single agent call; None waits indefinitely.",
    )
    default_pipeline: PipelineMode = Field(PipelineMode.SEQUENTIAL)
    quick_pipeline: PipelineMode = Field(PipelineMode.PARALLEL)


class Settings(BaseSettings):
    environment: Literal["local", "test", "production"] = Field("local")
    api_v1_prefix: str = Field("/api/v1")

    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)  # type: ignore[arg-type]
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)  # type: ignore[arg-type]

    frontend_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins permitted to access the API via CORS.",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        env_prefix="LOGSCOPE_",
    )


@lru_cache(maxsize=1)
def _get_cached_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


def get_settings(overrides: Mapping[str, Any] | None = None) -> Settings:
    """Return settings, using cached defaults unless overrides are provided."""
    if overrides:
        return Settings(**dict(overrides))
    return _get_cached_settings()
