"""Application settings: Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. YAML config file (if specified; JSON files are valid YAML)
  2. Environment variables (METASYNC_ prefix)
  3. Default values

``$VAR`` and ``${VAR}`` references inside the config file are expanded from
the environment before parsing, so credentials can stay out of the file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings


class B2Config(BaseModel):
    """Backblaze B2 bucket configuration."""

    bucket_name: str = Field(min_length=1, description="Bucket holding the documents")
    region: str = Field(min_length=1, description="Bucket region, e.g. 'us-west-004'")
    prefix: str = Field(default="", description="Only documents under this key prefix are synchronized")
    key_id: str = Field(default="", description="Application key ID")
    application_key: str = Field(default="", description="Application key secret")
    api_url: str = Field(default="https://api.backblazeb2.com", description="B2 authorization endpoint")
    extension: str = Field(default=".md", description="File name suffix of eligible documents")
    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")


# Maps each storage type tag to the configuration shape it requires.
STORAGE_CONFIG_TYPES: dict[str, type[BaseModel]] = {
    "b2": B2Config,
}


class StorageSettings(BaseModel):
    """Type-tagged storage configuration.

    ``type`` selects the backend and decides which model ``config`` is
    validated against. Unknown types are rejected.
    """

    type: str = Field(description="Storage backend type tag")
    config: Any = Field(description="Backend-specific configuration")

    @model_validator(mode="before")
    @classmethod
    def _decode_config(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        storage_type = data.get("type")
        config_model = STORAGE_CONFIG_TYPES.get(storage_type)  # type: ignore[arg-type]
        if config_model is None:
            raise ValueError(
                f"unsupported storage type: {storage_type!r}. Supported: {sorted(STORAGE_CONFIG_TYPES)}"
            )

        config = data.get("config")
        if not isinstance(config, config_model):
            config = config_model.model_validate(config if config is not None else {})
        return {**data, "config": config}


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str | None = Field(
        default=None,
        description="Log format: json, console. Unset picks console on a terminal, json otherwise",
    )


class Settings(BaseSettings):
    """Root application settings.

    Configuration is loaded from environment variables with the METASYNC_ prefix.
    Nested settings use double underscores: METASYNC_OBSERVABILITY__LOG_LEVEL=debug

    Example:
        METASYNC_MAX_CONCURRENT_JOBS=8
        METASYNC_STORAGE__TYPE=b2
        METASYNC_STORAGE__CONFIG__BUCKET_NAME=articles
    """

    model_config = {
        "env_prefix": "METASYNC_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    max_concurrent_jobs: int = Field(default=4, ge=1, description="Max documents processed concurrently")
    storage: StorageSettings = Field(description="Storage backend selection and parameters")
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML (or JSON) configuration file.

        Values from the file take precedence; environment variables fill in
        whatever the file leaves out.

        Args:
            path: Path to the config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(os.path.expandvars(f.read())) or {}

        return cls(**data)
