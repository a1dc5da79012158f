from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ts_enricher.exceptions import ConfigError

# ----------------------------------------------------------------------
# Environment + discovery defaults
# ----------------------------------------------------------------------

# Example: TS_ENRICHER_ENV, TS_ENRICHER_CONFIG_PATH, TS_ENRICHER_ENRICHMENT__DROP_TIMESTAMP.
ENV_PREFIX = "TS_ENRICHER_"
ENV_ENV_NAME = f"{ENV_PREFIX}ENV"
ENV_CONFIG_PATH = f"{ENV_PREFIX}CONFIG_PATH"

DEFAULT_ENV = os.getenv(ENV_ENV_NAME, "dev").lower()
DEFAULT_CONFIG_FILENAMES = ("config.yaml", "config.yml")

_LOCATION = f"{__name__}.load_config"


# ----------------------------------------------------------------------
# Section models
# ----------------------------------------------------------------------


class PathsConfig(BaseModel):
    """Filesystem-related configuration: where input and output tables live."""

    model_config = ConfigDict(frozen=True)

    base_dir: Path = Path(".")
    data_dir: Path = Path("data")
    raw_dir: Path = Path("data/raw")
    processed_dir: Path = Path("data/processed")

    def resolve(self, base: Path | None = None) -> PathsConfig:
        """Return a copy of this config with all paths made absolute."""
        base_dir = Path(base) if base is not None else self.base_dir
        return PathsConfig(
            base_dir=base_dir,
            data_dir=(base_dir / self.data_dir).resolve(),
            raw_dir=(base_dir / self.raw_dir).resolve(),
            processed_dir=(base_dir / self.processed_dir).resolve(),
        )


class EnrichmentConfig(BaseModel):
    """Defaults for timestamp enrichment runs."""

    model_config = ConfigDict(frozen=True)

    timestamp_column: str = Field(
        "timestamp",
        min_length=1,
        description="Name of the column holding the timestamp values.",
    )
    drop_timestamp: bool = Field(
        False,
        description="Whether to remove the timestamp column after enrichment.",
    )
    timestamp_format: str | None = Field(
        None,
        description=(
            "Optional strftime-style format for parsing string timestamps "
            "(e.g. '%Y-%m-%d %H:%M'). If None, each value is parsed on its own."
        ),
    )
    inplace: bool = Field(
        False,
        description="If True, library callers mutate their DataFrame instead of copying it.",
    )


# ----------------------------------------------------------------------
# Top-level settings
# ----------------------------------------------------------------------


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Values are read from (in order of precedence):

    1. Keyword arguments passed to the constructor (e.g. from a YAML file).
    2. Environment variables (prefixed with TS_ENRICHER_).
    3. A .env file (if present).
    4. Default values declared in the model fields.

    Nested sections can be overridden with the `__` delimiter:

        TS_ENRICHER_ENRICHMENT__TIMESTAMP_COLUMN=created_at
        TS_ENRICHER_ENRICHMENT__DROP_TIMESTAMP=true
        TS_ENRICHER_PATHS__DATA_DIR=/mnt/data

    A YAML config file may be flat:

        env: "prod"
        enrichment:
          timestamp_column: "created_at"
          drop_timestamp: true

    or hold environment profiles, selected by TS_ENRICHER_ENV (or `env=`):

        dev:
          log_level: "DEBUG"
        prod:
          env: "prod"
          enrichment:
            timestamp_format: "%Y-%m-%d %H:%M:%S"
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    _source_path: Path | None = PrivateAttr(default=None)
    _loaded_env: str | None = PrivateAttr(default=None)

    env: str = Field(
        "dev",
        description="Environment name, e.g. 'dev', 'prod', 'test'.",
    )
    log_level: str = Field(
        "INFO",
        description="Default log level for the application.",
    )

    paths: PathsConfig = PathsConfig()
    enrichment: EnrichmentConfig = EnrichmentConfig()

    @model_validator(mode="after")
    def _check_invariants(self) -> AppConfig:
        """Cross-field validation and invariants."""
        if self.env.lower() in {"prod", "production"} and self.log_level.upper() == "DEBUG":
            raise ValueError(
                "In production environment, log_level should not be DEBUG. "
                "Use INFO or higher."
            )

        if self.paths.raw_dir == self.paths.processed_dir:
            raise ValueError("paths.raw_dir and paths.processed_dir must be different.")

        return self

    @property
    def source_path(self) -> Path | None:
        return self._source_path

    @property
    def loaded_env(self) -> str | None:
        return self._loaded_env

    def resolved_paths(self) -> PathsConfig:
        """Return a PathsConfig with all paths fully resolved."""
        return self.paths.resolve(self.paths.base_dir)

    def to_dict(self, *, include_private: bool = False) -> dict[str, Any]:
        """Return a plain dict representation of the effective configuration."""
        data = self.model_dump(mode="json")
        if include_private:
            data["_source_path"] = str(self._source_path) if self._source_path else None
            data["_loaded_env"] = self._loaded_env
        return data

    def to_yaml(self, path: Path | str, *, include_private: bool = False) -> None:
        """Write the effective configuration to a YAML file.

        The exact settings used for an enrichment run can then be stored next
        to its output table.
        """
        target = Path(path)
        dump_data = self.to_dict(include_private=include_private)
        target.write_text(
            yaml.safe_dump(dump_data, sort_keys=False),
            encoding="utf-8",
        )


# ----------------------------------------------------------------------
# Loading + caching
# ----------------------------------------------------------------------

_config_cache: AppConfig | None = None


def _discover_default_config_path() -> Path | None:
    """Return a default config path if one can be discovered.

    Priority:
    1. TS_ENRICHER_CONFIG_PATH (returned even if missing, so load_config can
       report it).
    2. ./config.yaml or ./config.yml in the current working directory.
    3. None (env + defaults are used).
    """
    env_path = os.getenv(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path)

    cwd = Path.cwd()
    for name in DEFAULT_CONFIG_FILENAMES:
        candidate = cwd / name
        if candidate.exists():
            return candidate

    return None


def _select_profile_from_yaml(
    loaded: Mapping[str, Any],
    effective_env: str,
) -> Mapping[str, Any]:
    """Use the `effective_env` subtree if it is a mapping, else the whole file."""
    section = loaded.get(effective_env)
    if isinstance(section, Mapping):
        return section
    return loaded


def load_config(
    config_path: str | Path | None = None,
    *,
    env: str | None = None,
) -> AppConfig:
    """Load and validate application configuration.

    Parameters
    ----------
    config_path:
        Optional path to a YAML config file. If omitted, attempts to discover a
        config file using TS_ENRICHER_CONFIG_PATH or ./config.yaml / ./config.yml.
    env:
        Optional environment name used to select a YAML profile (e.g. 'dev', 'prod').
        If omitted, TS_ENRICHER_ENV (or 'dev') is used.

    Raises
    ------
    ConfigError
        If the config file does not exist, cannot be parsed, or fails validation.
    """
    effective_env = (env or DEFAULT_ENV).lower()
    config_data: dict[str, Any] = {}

    path: Path | None
    if config_path is not None:
        path = Path(config_path)
    else:
        path = _discover_default_config_path()

    if path is not None:
        if not path.exists():
            raise ConfigError(
                f"Config file not found: {path}",
                code="config_file_not_found",
                context={"config_path": str(path), "env": effective_env},
                location=_LOCATION,
            )

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(
                f"Failed to read config file: {path}",
                code="config_read_error",
                cause=exc,
                context={"config_path": str(path), "env": effective_env},
                location=_LOCATION,
            ) from exc

        try:
            loaded = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(
                f"Failed to parse YAML config file: {path}",
                code="config_parse_error",
                cause=exc,
                context={"config_path": str(path), "env": effective_env},
                location=_LOCATION,
            ) from exc

        if not isinstance(loaded, Mapping):
            raise ConfigError(
                f"Top-level config in {path} must be a mapping/object, got {type(loaded)}",
                code="config_structure_error",
                context={"config_path": str(path), "env": effective_env},
                location=_LOCATION,
            )

        profile = _select_profile_from_yaml(loaded, effective_env)
        if not isinstance(profile, Mapping):
            raise ConfigError(
                f"Selected config profile for env='{effective_env}' in {path} "
                f"must be a mapping/object, got {type(profile)}",
                code="config_profile_error",
                context={"config_path": str(path), "env": effective_env},
                location=_LOCATION,
            )

        config_data.update(dict(profile))

    try:
        cfg = AppConfig(**config_data)
    except ValidationError as exc:
        raise ConfigError(
            "Configuration validation failed",
            code="config_validation_error",
            cause=exc,
            context={
                "config_path": str(path) if path is not None else None,
                "env": effective_env,
                "errors": exc.errors(include_url=False),
            },
            location=_LOCATION,
        ) from exc

    cfg._source_path = path
    cfg._loaded_env = effective_env

    return cfg


def get_config(
    config_path: str | Path | None = None,
    *,
    env: str | None = None,
    force_reload: bool = False,
) -> AppConfig:
    """Return the cached AppConfig instance, loading it if necessary.

    `config_path` and `env` are only used on first load or when
    `force_reload` is True.
    """
    global _config_cache

    if _config_cache is None or force_reload:
        _config_cache = load_config(config_path=config_path, env=env)

    return _config_cache


def get_paths(
    config_path: str | Path | None = None,
    *,
    env: str | None = None,
    force_reload: bool = False,
) -> PathsConfig:
    """Convenience helper to get resolved PathsConfig directly."""
    cfg = get_config(config_path=config_path, env=env, force_reload=force_reload)
    return cfg.resolved_paths()
