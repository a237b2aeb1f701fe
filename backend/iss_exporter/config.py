"""Runtime configuration read from the environment (and a local .env file)."""

from __future__ import annotations

import logging
import math
import os
import re
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_POSITION_API_URL = "https://api.wheretheiss.at/v1/satellites/25544"

# Levels both logging.basicConfig and uvicorn accept, plus the stdlib aliases
LOG_LEVELS = {
    "CRITICAL": "CRITICAL",
    "FATAL": "CRITICAL",
    "ERROR": "ERROR",
    "WARNING": "WARNING",
    "WARN": "WARNING",
    "INFO": "INFO",
    "DEBUG": "DEBUG",
}

METRIC_PREFIX_RE = re.compile(r"(?:[a-zA-Z_:][a-zA-Z0-9_:]*)?")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Config:
    position_api_url: str = DEFAULT_POSITION_API_URL
    position_update_frequency: int = 5000  # ms
    position_request_timeout: float = 10.0  # s
    metrics_prefix: str = "iss_"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 9100


def _number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value) or value <= 0:
        raise ConfigError(f"{name} must be a positive finite number, got {raw!r}")
    return value


def load_config(env_file: str | None = None) -> Config:
    """Build a Config from environment variables.

    A .env file (or ``env_file``) is loaded first; variables already present
    in the environment take precedence over it.
    """
    load_dotenv(env_file)

    url = os.getenv("POSITION_API_URL", DEFAULT_POSITION_API_URL).strip()
    if not url:
        raise ConfigError("POSITION_API_URL must not be empty")

    raw_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = LOG_LEVELS.get(raw_level)
    if log_level is None:
        raise ConfigError(f"LOG_LEVEL {raw_level!r} is not one of {sorted(set(LOG_LEVELS.values()))}")

    prefix = os.getenv("METRICS_PREFIX", "iss_")
    if not METRIC_PREFIX_RE.fullmatch(prefix):
        raise ConfigError(f"METRICS_PREFIX {prefix!r} is not a valid Prometheus metric name prefix")

    return Config(
        position_api_url=url,
        position_update_frequency=_number("POSITION_UPDATE_FREQUENCY", "5000", int),
        position_request_timeout=_number("POSITION_REQUEST_TIMEOUT", "10", float),
        metrics_prefix=prefix,
        log_level=log_level,
        host=os.getenv("HOST", "0.0.0.0"),
        port=_number("PORT", "9100", int),
    )


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
    )
