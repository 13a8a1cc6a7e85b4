"""Settings for reconciliation runs.

Settings come from two places:

1. Environment variables (optionally via a .env file), loaded with
   pydantic-settings. This is where credentials live.
2. An optional YAML config file, validated with pydantic, for matching
   policy overrides and non-secret catalog options. YAML values win over
   environment values.

Environment Variables:
    Catalog:
        TMDB_API_KEY - Catalog API key (required for catalog lookups)
        TMDB_BASE_URL - API base URL (default: "https://api.themoviedb.org/3")
        TMDB_TIMEOUT_SECONDS - Request timeout (default: 30)
        TMDB_LANGUAGE - Result language (default: "en-US")

    Matching:
        MEDIAMATCH_CONCURRENCY - Lookups per wave, clamped to 1..20 (default: 5)
        MEDIAMATCH_DEFAULT_PROFILE - Profile used for commits (default: "")
        MEDIAMATCH_AUTO_SEARCH - Search for missing items after import (default: false)
        MEDIAMATCH_WAVE_DELAY - Seconds between waves (default: 0.1)
        MEDIAMATCH_AUTO_SELECT_THRESHOLD - Auto-select confidence (default: 100)
        MEDIAMATCH_LOG_LEVEL - Logging level (default: "INFO")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from mediamatch.exceptions import ConfigurationError
from mediamatch.matching.scorer import DEFAULT_POLICY, MatchPolicy

logger = logging.getLogger(__name__)

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 20


def _validate_url_field(v: str, field_name: str) -> str:
    """Require http(s) and strip the trailing slash."""
    if v and not v.startswith(("http://", "https://")):
        raise ValueError(f"{field_name} must start with http:// or https://, got: {v}")
    return v.rstrip("/") if v else v


def _validate_log_level(v: str) -> str:
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    upper = v.upper()
    if upper not in valid_levels:
        raise ValueError(f"log level must be one of {sorted(valid_levels)}, got: {v}")
    return upper


class CatalogEnvSettings(BaseSettings):
    """Catalog credentials from TMDB_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="TMDB_", extra="ignore")

    api_key: str = Field(default="", description="Catalog API key")
    base_url: str = Field(default="https://api.themoviedb.org/3", description="API base URL")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Request timeout")
    language: str = Field(default="en-US", description="Result language")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate catalog base URL format."""
        return _validate_url_field(v, "TMDB_BASE_URL")


class MatchSettings(BaseSettings):
    """Run settings from MEDIAMATCH_* environment variables.

    This is the read-only settings provider consulted at run start.
    """

    model_config = SettingsConfigDict(env_prefix="MEDIAMATCH_", extra="ignore")

    concurrency: int = Field(default=5, description="Lookups issued per wave")
    default_profile: str = Field(default="", description="Profile id used for commits")
    auto_search: bool = Field(default=False, description="Search for missing items after import")
    wave_delay: float = Field(default=0.1, ge=0, description="Delay between waves in seconds")
    auto_select_threshold: int = Field(default=100, ge=0, le=100)
    log_level: str = Field(default="INFO")

    @field_validator("concurrency", mode="before")
    @classmethod
    def coerce_concurrency(cls, v: Any) -> int:
        """Accept strings from the environment; never fail on out-of-range values."""
        if isinstance(v, str):
            try:
                v = int(v.strip())
            except ValueError:
                raise ValueError(f"Must be an integer, got: {v!r}") from None
        return int(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        return _validate_log_level(v)

    @property
    def wave_size(self) -> int:
        """Concurrency clamped to the supported wave range."""
        return clamp_concurrency(self.concurrency)


class EnvSettings(BaseSettings):
    """Combined environment settings.

    Use get_env_settings() to get a cached instance.
    """

    model_config = SettingsConfigDict(extra="ignore")

    catalog: CatalogEnvSettings = Field(default_factory=CatalogEnvSettings)
    match: MatchSettings = Field(default_factory=MatchSettings)

    def validate_required_for_catalog(self) -> list[str]:
        """Return error messages for missing catalog settings."""
        errors: list[str] = []
        if not self.catalog.api_key:
            errors.append("TMDB_API_KEY is required for catalog lookups")
        if not self.catalog.base_url:
            errors.append("TMDB_BASE_URL must not be empty")
        return errors


def clamp_concurrency(value: int) -> int:
    """Clamp a requested concurrency to the 1..20 wave size range."""
    return min(max(value, MIN_CONCURRENCY), MAX_CONCURRENCY)


@lru_cache(maxsize=1)
def get_env_settings() -> EnvSettings:
    """Get cached environment settings."""
    return EnvSettings()


def clear_env_settings_cache() -> None:
    """Clear the cached environment settings (used by tests)."""
    get_env_settings.cache_clear()


def load_env_settings_from_file(env_file: Path) -> EnvSettings:
    """Load environment settings from a specific .env file.

    Args:
        env_file: Path to .env file to load.

    Returns:
        Fresh EnvSettings reflecting the file's values.
    """
    from dotenv import load_dotenv

    load_dotenv(env_file, override=True)
    clear_env_settings_cache()
    return get_env_settings()


# =============================================================================
# YAML config file
# =============================================================================


class MatchingSchema(BaseModel):
    """``matching:`` section of the config file."""

    concurrency: int | None = None
    wave_delay: float | None = Field(default=None, ge=0)
    auto_select_threshold: int | None = Field(default=None, ge=0, le=100)
    default_profile: str | None = None
    auto_search: bool | None = None
    base_score: int = Field(default=DEFAULT_POLICY.base_score, ge=0, le=100)
    exact_title_score: int = Field(default=DEFAULT_POLICY.exact_title_score, ge=0, le=100)
    year_match_floor: int = Field(default=DEFAULT_POLICY.year_match_floor, ge=0, le=100)
    containment_floor: int = Field(default=DEFAULT_POLICY.containment_floor, ge=0, le=100)
    word_overlap_threshold: float = Field(
        default=DEFAULT_POLICY.word_overlap_threshold, gt=0, le=1
    )
    max_alternates: int = Field(default=DEFAULT_POLICY.max_alternates, ge=0)


class CatalogSchema(BaseModel):
    """``catalog:`` section of the config file (no secrets)."""

    base_url: str | None = None
    timeout_seconds: float | None = Field(default=None, gt=0)
    language: str | None = None

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str | None) -> str | None:
        """Validate catalog base URL format."""
        return _validate_url_field(v, "catalog.base_url") if v else v


class ConfigFileSchema(BaseModel):
    """Top-level config.yaml structure."""

    matching: MatchingSchema = Field(default_factory=MatchingSchema)
    catalog: CatalogSchema = Field(default_factory=CatalogSchema)
    log_level: str | None = None

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str | None) -> str | None:
        """Validate log level is a recognized value."""
        return _validate_log_level(v) if v else v


@dataclass
class Settings:
    """Resolved settings for one process: env values with YAML overrides."""

    catalog: CatalogEnvSettings
    match: MatchSettings
    policy: MatchPolicy = DEFAULT_POLICY
    config_file: Path | None = None
    warnings: list[str] = field(default_factory=list)

    def validate_required_for_catalog(self) -> list[str]:
        """Return error messages for missing catalog settings."""
        return EnvSettings(catalog=self.catalog, match=self.match).validate_required_for_catalog()


def _read_config_file(config_file: Path) -> ConfigFileSchema:
    try:
        with open(config_file, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read config file: {e}", config_file=config_file
        ) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in config file: {e}", config_file=config_file
        ) from e

    if not isinstance(raw, dict):
        raise ConfigurationError(
            "Config file must contain a mapping at the top level", config_file=config_file
        )

    try:
        return ConfigFileSchema.model_validate(raw)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field_name = ".".join(str(p) for p in first["loc"])
        raise ConfigurationError(
            f"Invalid config value for {field_name}: {first['msg']}",
            config_file=config_file,
            field=field_name,
        ) from e


def load_settings(config_file: Path | None = None, env: EnvSettings | None = None) -> Settings:
    """
    Resolve settings from the environment and an optional YAML file.

    Args:
        config_file: Optional config.yaml path; must exist when given
        env: Pre-loaded environment settings (default: cached get_env_settings())

    Returns:
        Settings with YAML overrides applied

    Raises:
        ConfigurationError: If the config file is missing, unreadable or invalid
    """
    env = env or get_env_settings()
    catalog = env.catalog.model_copy()
    match = env.match.model_copy()
    policy = DEFAULT_POLICY

    if config_file is None:
        return Settings(
            catalog=catalog, match=match, policy=policy, warnings=_range_warnings(match)
        )

    if not config_file.exists():
        raise ConfigurationError("Config file not found", config_file=config_file)

    schema = _read_config_file(config_file)
    m = schema.matching

    match_overrides: dict[str, Any] = {
        name: value
        for name, value in (
            ("concurrency", m.concurrency),
            ("wave_delay", m.wave_delay),
            ("auto_select_threshold", m.auto_select_threshold),
            ("default_profile", m.default_profile),
            ("auto_search", m.auto_search),
            ("log_level", schema.log_level),
        )
        if value is not None
    }
    if match_overrides:
        match = match.model_copy(update=match_overrides)

    catalog_overrides = schema.catalog.model_dump(exclude_none=True)
    if catalog_overrides:
        catalog = catalog.model_copy(update=catalog_overrides)

    policy = MatchPolicy(
        base_score=m.base_score,
        exact_title_score=m.exact_title_score,
        year_match_floor=m.year_match_floor,
        containment_floor=m.containment_floor,
        word_overlap_threshold=m.word_overlap_threshold,
        max_alternates=m.max_alternates,
    )

    logger.debug("Loaded settings from %s", config_file)
    return Settings(
        catalog=catalog,
        match=match,
        policy=policy,
        config_file=config_file,
        warnings=_range_warnings(match),
    )


def _range_warnings(match: MatchSettings) -> list[str]:
    warnings: list[str] = []
    if clamp_concurrency(match.concurrency) != match.concurrency:
        warnings.append(
            f"concurrency {match.concurrency} is outside 1..20, "
            f"using {clamp_concurrency(match.concurrency)}"
        )
    for message in warnings:
        logger.warning(message)
    return warnings
