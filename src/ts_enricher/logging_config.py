from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Mapping

# ----------------------------------------------------------------------
# Environment-driven defaults
# ----------------------------------------------------------------------

DEFAULT_LOG_LEVEL = (
    os.getenv("TS_ENRICHER_LOG_LEVEL")
    or os.getenv("LOG_LEVEL", "INFO")
).upper()

DEFAULT_LOG_DIR = Path(
    os.getenv("TS_ENRICHER_LOG_DIR") or os.getenv("LOG_DIR", "logs")
)

# Decides handler behaviour (console-only vs file+console).
APP_ENV = (
    os.getenv("TS_ENRICHER_ENV")  # aligned with config.ENV_PREFIX
    or os.getenv("ENV")
    or "dev"
).lower()

AUTO_CONFIG = os.getenv("TS_ENRICHER_CONFIGURE_LOGGING", "1").lower() not in {
    "0",
    "false",
    "no",
}

# "text" (default) or "json".
LOG_FORMAT = os.getenv("TS_ENRICHER_LOG_FORMAT", "text").lower()

PACKAGE_LOGGER = "ts_enricher"

_LOG_CONFIGURED = False


def _supports_json_logging() -> bool:
    """Return True if a JSON formatter is available."""
    try:
        import pythonjsonlogger  # type: ignore[unused-import]  # noqa: F401
    except ImportError:
        return False
    return True


def _build_formatters(fmt: str) -> dict[str, Any]:
    """Build formatter configuration based on the requested format."""
    if fmt == "json" and _supports_json_logging():
        # pip install "ts-enricher[json]"
        return {
            "json": {
                "class": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
            "json_verbose": {
                "class": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": (
                    "%(asctime)s %(levelname)s %(name)s "
                    "%(filename)s %(lineno)d %(message)s"
                ),
            },
        }

    return {
        "standard": {
            "format": "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
        },
        "verbose": {
            "format": (
                "[%(asctime)s] [%(levelname)s] %(name)s "
                "(%(filename)s:%(lineno)d) - %(message)s"
            ),
        },
    }


def _build_logging_config(
    env: str,
    log_dir: Path,
    level: str,
    fmt: str,
) -> dict[str, Any]:
    """Return a dictConfig-style logging configuration.

    This sets up:
    - A console handler (always).
    - A rotating file handler under `log_dir` (only in 'prod').
    """
    formatters = _build_formatters(fmt)

    if "json" in formatters:
        console_formatter = "json"
        file_formatter = "json_verbose"
    else:
        console_formatter = "standard"
        file_formatter = "verbose"

    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": console_formatter,
            "stream": "ext://sys.stdout",
        },
    }

    env = env.lower()
    if env in {"prod", "production"}:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": file_formatter,
            "filename": str(log_dir / "ts_enricher.log"),
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "encoding": "utf-8",
        }

    active_handlers = list(handlers)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "root": {
            "level": level,
            "handlers": active_handlers,
        },
        "loggers": {
            PACKAGE_LOGGER: {
                "level": level,
                "handlers": active_handlers,
                "propagate": False,
            },
        },
    }


def configure_logging(
    *,
    level: str | None = None,
    log_dir: Path | str | None = None,
    env: str | None = None,
    fmt: str | None = None,
    extra_config: Mapping[str, Any] | None = None,
    force: bool = False,
) -> None:
    """Apply the dictConfig built from the arguments (or env defaults).

    A no-op after the first call unless `force` is set; the CLI forces it
    once the YAML config is loaded so `log_level` and `env` take effect.
    `extra_config` is merged one level deep into the generated dict.
    """
    global _LOG_CONFIGURED

    if _LOG_CONFIGURED and not force:
        return

    effective_level = (level or DEFAULT_LOG_LEVEL).upper()
    effective_dir = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
    effective_env = (env or APP_ENV).lower()
    effective_fmt = (fmt or LOG_FORMAT).lower()

    if effective_fmt == "json" and not _supports_json_logging():
        logging.getLogger(__name__).warning(
            "JSON logging requested but python-json-logger is not installed; "
            "falling back to text format."
        )
        effective_fmt = "text"

    config = _build_logging_config(
        env=effective_env,
        log_dir=effective_dir,
        level=effective_level,
        fmt=effective_fmt,
    )

    if extra_config:
        for key, value in extra_config.items():
            if isinstance(value, dict) and key in config and isinstance(config[key], dict):
                config[key].update(value)
            else:
                config[key] = value

    logging.config.dictConfig(config)
    _LOG_CONFIGURED = True


def configure_logging_from_app_config(
    app_config: Any,
    *,
    fmt: str | None = None,
    extra_config: Mapping[str, Any] | None = None,
    force: bool = False,
) -> None:
    """Configure logging from `env`, `log_level` and `paths.base_dir` of an AppConfig.

    Typed as `Any` to avoid importing ts_enricher.config here. The log
    directory is `<base_dir>/logs`.
    """
    env = getattr(app_config, "env", "dev")
    level = getattr(app_config, "log_level", "INFO")
    paths = app_config.paths if hasattr(app_config, "paths") else None

    if paths is not None and hasattr(paths, "base_dir"):
        log_dir = Path(paths.base_dir) / "logs"
    else:
        log_dir = DEFAULT_LOG_DIR

    configure_logging(
        level=str(level),
        log_dir=log_dir,
        env=str(env),
        fmt=fmt,
        extra_config=extra_config,
        force=force,
    )


def get_logger(name: str | None = None) -> logging.Logger:
    """`logging.getLogger(name)`, configuring logging first unless disabled.

    Set TS_ENRICHER_CONFIGURE_LOGGING=0 to leave configuration to the host
    application.
    """
    if not _LOG_CONFIGURED and AUTO_CONFIG:
        configure_logging()

    return logging.getLogger(name)
