"""
TurfOps settings.

Sources, later ones winning::

    config/default.toml        committed defaults
    config/local.toml          per-machine overrides, merged table by table
    .env                       secrets such as the OpenWeatherMap key
    TURFOPS_* env vars         see ``_ENV_OVERRIDES``

``load_config()`` returns one frozen ``AppConfig``.  Only the CLI reads it:
the rules engine is handed a catalog and a clock-skew tolerance, never the
config object, so it can be driven from tests without any files on disk.
"""

from __future__ import annotations

import os
import tomllib
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

from turfops.models.lawn_profile import LawnProfile
from turfops.taxonomy.lawn_taxonomy import GrassType

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ── Sections ──────────────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """Location and pragmas of the readings / applications store."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/turfops.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000

    @field_validator("busy_timeout_ms")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"busy_timeout_ms must be >= 0, got {v}.")
        return v


class LawnConfig(BaseModel):
    """The lawn being managed.  Rules gate on grass type and scale to size."""

    model_config = ConfigDict(frozen=True)

    name: str = "My Lawn"
    grass_type: GrassType = GrassType.TALL_FESCUE
    lawn_size_sqft: Optional[float] = None

    @field_validator("lawn_size_sqft")
    @classmethod
    def validate_size(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"lawn_size_sqft must be positive, got {v}.")
        return v

    def to_profile(self) -> LawnProfile:
        return LawnProfile(
            name=self.name,
            grass_type=self.grass_type,
            lawn_size_sqft=self.lawn_size_sqft,
        )


class EngineConfig(BaseModel):
    """Rules engine settings."""

    model_config = ConfigDict(frozen=True)

    catalog_path: str = "config/rules/default_rules.json"
    clock_skew_tolerance_hours: float = 1.0

    @field_validator("clock_skew_tolerance_hours")
    @classmethod
    def validate_tolerance(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"clock_skew_tolerance_hours must be >= 0, got {v}.")
        return v

    @property
    def clock_skew_tolerance(self) -> timedelta:
        return timedelta(hours=self.clock_skew_tolerance_hours)


class OpenWeatherMapConfig(BaseModel):
    """OpenWeatherMap forecast API settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    api_key: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    base_url: str = "https://api.openweathermap.org/data/2.5"
    timeout_seconds: float = 30.0

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not -90.0 <= v <= 90.0:
            raise ValueError(f"latitude must be in [-90, 90], got {v}.")
        return v

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not -180.0 <= v <= 180.0:
            raise ValueError(f"longitude must be in [-180, 180], got {v}.")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {v}.")
        return v


class ReportingConfig(BaseModel):
    """Report export settings."""

    model_config = ConfigDict(frozen=True)

    output_dir: str = "data/outputs"


class LoggingConfig(BaseModel):
    """Where log records go and how they look.

    ``log_file = ""`` disables the file handler.  The file rotates at
    ``max_bytes`` keeping ``backup_count`` old files.
    """

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/turfops.log"
    json_format: bool = False
    max_bytes: int = 1_000_000
    backup_count: int = 3

    @field_validator("level")
    @classmethod
    def normalise_level(cls, v: str) -> str:
        name = v.strip().upper()
        if name not in _LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(_LOG_LEVELS)}; got '{v}'.")
        return name

    @field_validator("max_bytes", "backup_count")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"must be >= 0, got {v}.")
        return v


class AppConfig(BaseModel):
    """Every setting TurfOps reads, one frozen section per TOML table."""

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    lawn: LawnConfig = LawnConfig()
    engine: EngineConfig = EngineConfig()
    openweathermap: OpenWeatherMapConfig = OpenWeatherMapConfig()
    reporting: ReportingConfig = ReportingConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

# Environment variable → (section, key).  ``None`` section means top level.
_ENV_OVERRIDES: dict[str, tuple[Optional[str], str]] = {
    "TURFOPS_DB_PATH":      ("database", "db_path"),
    "TURFOPS_LOG_LEVEL":    ("logging", "level"),
    "TURFOPS_CATALOG_PATH": ("engine", "catalog_path"),
    "TURFOPS_OWM_API_KEY":  ("openweathermap", "api_key"),
    "TURFOPS_DEBUG":        (None, "debug"),
}

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _find_project_root() -> Path:
    """Nearest ancestor of this package holding ``pyproject.toml``."""
    here = Path(__file__).resolve()
    for candidate in here.parents:
        if (candidate / "pyproject.toml").exists():
            return candidate
    return here.parent.parent


def resolve_path(path: str | Path) -> Path:
    """Resolve a config-relative path against the project root."""
    path = Path(path)
    return path if path.is_absolute() else _find_project_root() / path


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Build the ``AppConfig`` from TOML, ``local.toml``, ``.env`` and env vars.

    Args:
        config_path: TOML file to start from.  Defaults to
            ``<project_root>/config/default.toml``.  A ``local.toml`` beside it
            is merged on top when present.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        pydantic.ValidationError: If the merged values fail validation.
    """
    root = _find_project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    path = Path(config_path) if config_path is not None else root / "config" / "default.toml"
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Pass --config or restore config/default.toml."
        )

    raw = _read_toml(path)
    local = path.with_name("local.toml")
    if local.exists():
        raw = _deep_merge(raw, _read_toml(local))

    return _build_app_config(_apply_env_overrides(raw))


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` merged in; nested tables merge key by key."""
    merged = dict(base)
    for key, val in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(val, dict):
            merged[key] = _deep_merge(current, val)
        else:
            merged[key] = val
    return merged


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay the ``TURFOPS_*`` variables listed in ``_ENV_OVERRIDES``."""
    for var, (section, key) in _ENV_OVERRIDES.items():
        value: Any = os.environ.get(var)
        if not value:
            continue
        if key == "debug":
            value = value.strip().lower() in _TRUTHY
        target = raw if section is None else raw.setdefault(section, {})
        target[key] = value
    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Validate the merged dict; ``[project] debug`` is the fallback for ``debug``."""
    data = dict(raw)
    project = data.pop("project", {})
    data.setdefault("debug", project.get("debug", False))
    return AppConfig.model_validate(data)
