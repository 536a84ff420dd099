"""
Configuration management for Prospector.
Loads and validates settings from YAML files and environment variables.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field


class GeneralConfig(BaseModel):
    """General configuration."""

    project_name: str = "prospector"
    version: str = "0.1.0"
    log_level: str = "INFO"
    logs_dir: str = "logs"
    output_dir: str = "output"


class CollectionConfig(BaseModel):
    """Search session defaults."""

    model_config = ConfigDict(extra="forbid")

    default_budget: int = Field(default=100, gt=0)
    default_depth: Literal["quick", "comprehensive", "deep", "ultra"] = "comprehensive"
    enrich_records: bool = True


class ConvergenceSettings(BaseModel):
    """Infinite-scroll feed convergence parameters."""

    model_config = ConfigDict(extra="forbid")

    stagnation_threshold: int = Field(default=3, ge=1)
    expected_per_cycle: int = Field(default=10, ge=1)
    fixed_slack: int = Field(default=10, ge=0)
    settle_seconds: float = Field(default=3.0, ge=0.0)


class PaginationSettings(BaseModel):
    """Paginated result list parameters."""

    model_config = ConfigDict(extra="forbid")

    max_pages: int = Field(default=3, ge=1)
    results_per_page: int = Field(default=50, ge=1, le=100)
    min_novelty_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    strategy: Literal["fixed", "auto"] = "auto"


class RateConfig(BaseModel):
    """Rate governor configuration.

    "fixed" waits interval_seconds between requests to a source.
    "backoff" grows the wait exponentially after failures.
    """

    model_config = ConfigDict(extra="forbid")

    strategy: Literal["fixed", "backoff"] = "fixed"
    interval_seconds: float = Field(default=3.0, ge=0.0)
    query_interval_seconds: float = Field(default=2.0, ge=0.0)
    backoff_max_seconds: float = Field(default=60.0, gt=0.0)
    backoff_exponential_base: float = Field(default=2.0, gt=1.0)
    jitter_factor: float = Field(default=0.1, ge=0.0, le=1.0)


class BrowserConfig(BaseModel):
    """Browser configuration."""

    headless: bool = True
    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-blink-features=AutomationControlled",
            "--disable-web-security",
            "--disable-features=VizDisplayCompositor",
        ]
    )
    navigation_timeout_seconds: float = 60.0
    selector_timeout_seconds: float = 30.0
    detail_timeout_seconds: float = 30.0


class Settings(BaseModel):
    """Main settings container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    convergence: ConvergenceSettings = Field(default_factory=ConvergenceSettings)
    pagination: PaginationSettings = Field(default_factory=PaginationSettings)
    rate: RateConfig = Field(default_factory=RateConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Override dictionary.

    Returns:
        Merged dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_yaml_config(config_dir: Path) -> dict[str, Any]:
    """Load settings.yaml and apply the `settings` section of local.yaml.

    Example local.yaml:
        settings:
          rate:
            interval_seconds: 5.0

    Args:
        config_dir: Configuration directory path.

    Returns:
        Merged configuration dictionary.
    """
    config = _read_yaml(config_dir / "settings.yaml")
    local_overrides = _read_yaml(config_dir / "local.yaml")
    if isinstance(local_overrides.get("settings"), dict):
        config = _deep_merge(config, local_overrides["settings"])
    return config


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables should be prefixed with PROSPECTOR_ and use
    double underscores for nested keys.

    Example:
        PROSPECTOR_GENERAL__LOG_LEVEL=DEBUG

    Args:
        config: Configuration dictionary.

    Returns:
        Configuration with environment overrides.
    """
    prefix = "PROSPECTOR_"

    for key, value in os.environ.items():
        if not key.startswith(prefix) or key == "PROSPECTOR_CONFIG_DIR":
            continue

        key_path = key[len(prefix) :].lower().split("__")

        current = config
        for part in key_path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        final_key = key_path[-1]
        try:
            if value.lower() in ("true", "false"):
                current[final_key] = value.lower() == "true"
            elif "." in value:
                current[final_key] = float(value)
            else:
                current[final_key] = int(value)
        except ValueError:
            current[final_key] = value

    return config


def get_config_dir() -> Path:
    """Directory holding settings.yaml (PROSPECTOR_CONFIG_DIR or ./config)."""
    return Path(os.environ.get("PROSPECTOR_CONFIG_DIR", "config"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get application settings.

    Settings are loaded from:
    1. Default values
    2. YAML configuration files
    3. Environment variables (highest priority)

    Returns:
        Settings instance.
    """
    config = _load_yaml_config(get_config_dir())
    config = _apply_env_overrides(config)
    return Settings(**config)
