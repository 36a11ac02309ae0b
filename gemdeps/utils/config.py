"""Configuration management using Pydantic for validation."""

import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FetcherConfig(BaseSettings):
    """RubyGems API and download configuration."""

    model_config = SettingsConfigDict(env_prefix="GEMDEPS_FETCHER_")

    api_base: str = "https://rubygems.org/api/v1"
    gem_base: str = "https://rubygems.org/gems"
    cache_dir: Path = Path(tempfile.gettempdir()) / "gem_dependency_cache"
    max_retries: int = Field(default=3, ge=0)
    backoff_seconds: float = Field(default=0.5, ge=0.0)
    timeout: float = 30.0
    user_agent: str = "rubygem-systemdependencies"

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("Timeout must be greater than 0")
        return v


class MatcherConfig(BaseSettings):
    """Dependency matching configuration."""

    model_config = SettingsConfigDict(env_prefix="GEMDEPS_MATCHER_")

    rules_file: str = "config/dependency_patterns.yaml"


class OutputConfig(BaseSettings):
    """Dependency record output configuration."""

    model_config = SettingsConfigDict(env_prefix="GEMDEPS_OUTPUT_")

    output_dir: Path = Field(default=Path("data/rubygems"))
    generator: str = "rubygem-systemdependencies"


class PipelineConfig(BaseSettings):
    """Pipeline configuration."""

    model_config = SettingsConfigDict(env_prefix="GEMDEPS_PIPELINE_")

    latest_only: bool = True
    force: bool = False
    dry_run: bool = False


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="GEMDEPS_LOGGING_")

    level: str = "INFO"
    file: Optional[str] = None
    rotation: str = "10 MB"
    retention: int = 3


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_prefix="GEMDEPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @staticmethod
    def _deep_merge_dict(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge two dicts (overrides win)."""
        merged: Dict[str, Any] = dict(base)
        for key, value in overrides.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge_dict(merged[key], value)
            else:
                merged[key] = value
        return merged

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = "config/config.yaml") -> "Config":
        """Load configuration from YAML file and environment variables.

        Precedence (highest to lowest):
        1) Environment variables / .env
        2) YAML file
        3) Model defaults

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If the YAML root is not a mapping
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"YAML config root must be a mapping/dict: {yaml_path}")

        # Only values that differ from the defaults came from env/.env.
        env_overrides = cls().model_dump(exclude_defaults=True)
        merged = cls._deep_merge_dict(yaml_config, env_overrides)

        return cls(**merged)


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Raises:
        RuntimeError: If configuration hasn't been initialized
    """
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call load_config() first.")
    return _config


def load_config(yaml_path: str | Path | None = None) -> Config:
    """Load configuration from YAML (or defaults plus environment when no path is given)."""
    global _config
    _config = Config.from_yaml(yaml_path) if yaml_path is not None else Config()
    return _config


def reset_config() -> None:
    """Reset global configuration (mainly for testing)."""
    global _config
    _config = None
