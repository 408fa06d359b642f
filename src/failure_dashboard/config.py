"""Build configuration with schema validation.

Values come from (lowest to highest precedence) model defaults, a local
``.env`` file, process environment, then CLI flags. Both nested names
(``BUILD__DATA_DIR``) and flat prefixed names (``FAILBOARD_DATA_DIR``) are
accepted.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from threading import Lock

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .data_prep import DEFAULT_SECTOR_FILES

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class BuildConfig(BaseModel):
    """Where sources are read from and where the data module is written."""

    model_config = ConfigDict(frozen=True)

    data_dir: str = Field(default="./Data")
    out_path: str = Field(default="./js/data.js")
    json_out_path: str | None = Field(default=None)
    sector_files: list[str] = Field(default_factory=lambda: list(DEFAULT_SECTOR_FILES))
    top_funded_limit: int = Field(default=30, ge=1, le=1000)
    notable_min_funding: float = Field(default=50.0, ge=0.0)
    notable_min_survival: int = Field(default=10, ge=0)
    notable_min_takeaway: int = Field(default=10, ge=0)

    @field_validator("data_dir", "out_path", mode="before")
    @classmethod
    def _normalize_required_text(cls, value: object) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("path must not be empty")
        return text

    @field_validator("json_out_path", mode="before")
    @classmethod
    def _normalize_optional_text(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("sector_files", mode="before")
    @classmethod
    def _normalize_sector_files(cls, value: object) -> list[str]:
        """Accept list or comma-separated string; keep order, drop repeats."""
        if value is None:
            return list(DEFAULT_SECTOR_FILES)

        items: list[str]
        if isinstance(value, str):
            items = [part.strip() for part in value.split(",") if part.strip()]
        elif isinstance(value, (list, tuple)):
            items = [str(part).strip() for part in value if str(part).strip()]
        else:
            raise ValueError("build.sector_files must be a list[str] or comma-separated string")

        if not items:
            raise ValueError("build.sector_files must name at least one file")

        return list(dict.fromkeys(items))


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: object) -> str:
        text = str(value or "").strip().upper()
        return text if text in _LOG_LEVELS else "INFO"

    @field_validator("json_logs", mode="before")
    @classmethod
    def _normalize_json_logs(cls, value: object) -> bool:
        if isinstance(value, bool):
            return value
        return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Top-level settings model."""

    model_config = ConfigDict(frozen=True)

    build: BuildConfig = Field(default_factory=BuildConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_env(
        cls,
        *,
        env: Mapping[str, str] | None = None,
        env_file: str = ".env",
    ) -> Settings:
        """Build settings from `.env` then environment variables."""
        runtime_env = os.environ if env is None else env
        merged_env = _merge_env(_load_dotenv(Path(env_file)), runtime_env)
        return cls.model_validate(_build_payload(merged_env))

    def with_overrides(self, **build_overrides: object) -> Settings:
        """Copy with non-None build fields replaced (CLI flags), re-validated."""
        changes = {k: v for k, v in build_overrides.items() if v is not None}
        if not changes:
            return self
        build = BuildConfig.model_validate({**self.build.model_dump(), **changes})
        return Settings(build=build, logging=self.logging)


def _load_dotenv(path: Path) -> dict[str, str]:
    """Parse a minimal `.env` file format."""
    if not path.exists() or not path.is_file():
        return {}

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        value = raw_value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        if key.strip():
            values[key.strip()] = value
    return values


def _merge_env(dotenv_values: Mapping[str, str], runtime_env: Mapping[str, str]) -> dict[str, str]:
    """Return env map where process env overrides `.env` values."""
    merged = {str(k): str(v) for k, v in dotenv_values.items()}
    for key, value in runtime_env.items():
        merged[str(key)] = str(value)
    return merged


def _first_non_empty(env: Mapping[str, str], *keys: str) -> str | None:
    for key in keys:
        value = str(env.get(key, "")).strip()
        if value:
            return value
    return None


def _build_payload(env: Mapping[str, str]) -> dict[str, object]:
    build = {
        "data_dir": _first_non_empty(env, "BUILD__DATA_DIR", "FAILBOARD_DATA_DIR"),
        "out_path": _first_non_empty(env, "BUILD__OUT_PATH", "FAILBOARD_OUT"),
        "json_out_path": _first_non_empty(env, "BUILD__JSON_OUT_PATH", "FAILBOARD_JSON_OUT"),
        "sector_files": _first_non_empty(env, "BUILD__SECTOR_FILES", "FAILBOARD_SECTOR_FILES"),
        "top_funded_limit": _first_non_empty(env, "BUILD__TOP_FUNDED_LIMIT", "FAILBOARD_TOP_FUNDED"),
        "notable_min_funding": _first_non_empty(env, "BUILD__NOTABLE_MIN_FUNDING"),
        "notable_min_survival": _first_non_empty(env, "BUILD__NOTABLE_MIN_SURVIVAL"),
        "notable_min_takeaway": _first_non_empty(env, "BUILD__NOTABLE_MIN_TAKEAWAY"),
    }
    logging_settings = {
        "level": _first_non_empty(env, "LOGGING__LEVEL", "FAILBOARD_LOG_LEVEL"),
        "json_logs": _first_non_empty(env, "LOGGING__JSON_LOGS", "FAILBOARD_LOG_JSON"),
    }
    return {
        "build": {k: v for k, v in build.items() if v is not None},
        "logging": {k: v for k, v in logging_settings.items() if v is not None},
    }


_SETTINGS_LOCK = Lock()
_SETTINGS_CACHE: Settings | None = None


def get_settings(*, reload: bool = False) -> Settings:
    """Return cached settings, optionally forcing reload from env."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        if reload or _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = Settings.from_env()
        return _SETTINGS_CACHE


def clear_settings_cache() -> None:
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None


__all__ = [
    "BuildConfig",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "ValidationError",
]
