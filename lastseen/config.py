from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core import constants as C


class TimelineConfig(BaseModel):
    """Resampling, stabilization and window settings for the staleness timeline.
    """

    sample_step_ms: int = Field(C.SAMPLE_STEP_MS, gt=0, description="Resampling step")
    jitter_min: float = Field(C.JITTER_MIN, ge=0, description="Age changes below this are noise")
    hysteresis_ms: int = Field(
        C.HYSTERESIS_MS, ge=0, description="A bucket change must persist this long to be drawn"
    )
    width_menu_hours: List[int] = Field(default_factory=lambda: list(C.WIDTH_MENU_HOURS))
    default_width_hours: int = C.DEFAULT_WIDTH_HOURS
    pan_step_ms: int = C.PAN_STEP_MS
    wheel_step_ms: int = Field(C.WHEEL_PAN_STEP_MS, description="Pan per mouse-wheel tick")
    band_strategy: Literal["closing", "exclusive"] = "closing"

    @field_validator("width_menu_hours")
    @classmethod
    def _menu_not_empty(cls, v: List[int]) -> List[int]:
        if not v or any(h <= 0 for h in v):
            raise ValueError("width_menu_hours must list positive hour counts")
        return v


class EntranceConfig(BaseModel):
    jump_min_ms: int = Field(
        C.ENTRANCE_JUMP_MIN_MS, description="Minimum forward jump of last-seen to count as an entrance"
    )
    young_max_ms: int = Field(
        C.ENTRANCE_YOUNG_MAX_MS, description="Maximum age at capture for an entrance to count"
    )


class RuntimeConfig(BaseModel):
    timezone: str = Field(C.DEFAULT_TIMEZONE, description="Civil timezone for hours and labels")
    range_days: int = Field(C.DEFAULT_RANGE_DAYS, gt=0, description="Query range ending now")
    timeline: TimelineConfig = Field(default_factory=TimelineConfig)
    entrance: EntranceConfig = Field(default_factory=EntranceConfig)
    network_timeout_sec: int = 10
    max_retries: int = 3
    backoff_base_sec: float = 0.5
    backoff_cap_sec: float = 5.0
    snapshot_cache_size: int = Field(16, gt=0, description="Snapshots held for open dashboards")


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Networking / Service
    DASH_HOST: str = "0.0.0.0"
    DASH_PORT: int = 8050
    LOG_LEVEL: str = "INFO"

    # Upstream presence API
    API_BASE: str = "http://localhost:8000"
    DEFAULT_IDENT: str = ""


class AppConfig(BaseModel):
    env: EnvSettings
    runtime: RuntimeConfig

    # Allow tests to pass a simple object for env; coerce to EnvSettings
    @field_validator("env", mode="before")
    @classmethod
    def _coerce_env(cls, v):  # type: ignore[no-untyped-def]
        if isinstance(v, EnvSettings):
            return v
        if isinstance(v, dict):
            return EnvSettings(**v)
        keys = ["DASH_HOST", "DASH_PORT", "LOG_LEVEL", "API_BASE", "DEFAULT_IDENT"]
        data = {k: getattr(v, k) for k in keys if hasattr(v, k)}
        if data:
            return EnvSettings(**data)
        return v

    @staticmethod
    def load(config_path: Optional[Path] = None) -> "AppConfig":
        env = EnvSettings()  # loads from environment and .env

        runtime = RuntimeConfig()
        if config_path is None:
            default_path = Path("config.yaml")
            config_path = default_path if default_path.exists() else None

        if config_path and Path(config_path).exists():
            with open(config_path, "r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            try:
                runtime = RuntimeConfig(**raw)
            except (TypeError, ValidationError) as ve:
                raise ValueError(f"Invalid config.yaml: {ve}")

        return AppConfig(env=env, runtime=runtime)


def load_config() -> AppConfig:
    """Load merged configuration from environment and optional YAML."""

    return AppConfig.load()
