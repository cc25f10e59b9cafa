"""Client configuration loaded from arguments or the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .errors import ConfigurationError
from .logging_utils import configure_logging, log_event

logger = configure_logging()

DEFAULT_URL = "https://gateway.watsonplatform.net/discovery/api"
DEFAULT_API_VERSION = "v1"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_WORKERS = 4
DEFAULT_UPLOAD_MAX_BYTES = 50 * 1024 * 1024


@dataclass(frozen=True)
class ServiceConfig:
    username: str
    password: str
    url: str
    version_date: str
    api_version: str = DEFAULT_API_VERSION

    def __post_init__(self) -> None:
        if not isinstance(self.version_date, str) or not self.version_date.strip():
            raise ConfigurationError(
                "Argument error: version_date was not specified, use a dated release such as '2017-08-01'.",
                {"missing": ["version_date"]},
            )
        if not self.url:
            raise ConfigurationError("Argument error: url was not specified.", {"missing": ["url"]})
        object.__setattr__(self, "url", self.url.rstrip("/"))

    @property
    def service_url(self) -> str:
        return f"{self.url}/{self.api_version.strip('/')}"


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int
    base_delay: float
    max_delay: float


def load_config_from_env() -> ServiceConfig:
    username = os.environ.get("DISCOVERY_USERNAME", "")
    password = os.environ.get("DISCOVERY_PASSWORD", "")
    version_date = os.environ.get("DISCOVERY_VERSION_DATE")
    if not version_date:
        log_event(logger, level=logging.WARNING, event="config.missing", missing=["DISCOVERY_VERSION_DATE"])
        raise ConfigurationError(
            "Discovery version date missing. Set DISCOVERY_VERSION_DATE.",
            {"missing": ["DISCOVERY_VERSION_DATE"]},
        )
    return ServiceConfig(
        username=username,
        password=password,
        url=os.environ.get("DISCOVERY_URL", DEFAULT_URL),
        api_version=os.environ.get("DISCOVERY_API_VERSION", DEFAULT_API_VERSION),
        version_date=version_date,
    )


def load_retry_config() -> RetryConfig:
    max_attempts = int(os.environ.get("DISCOVERY_RETRY_MAX_ATTEMPTS", "3"))
    base_delay = float(os.environ.get("DISCOVERY_RETRY_BASE_DELAY", "0.5"))
    max_delay = float(os.environ.get("DISCOVERY_RETRY_MAX_DELAY", "4.0"))
    if max_attempts < 1:
        max_attempts = 1
    if base_delay < 0:
        base_delay = 0.0
    if max_delay < base_delay:
        max_delay = base_delay
    return RetryConfig(max_attempts=max_attempts, base_delay=base_delay, max_delay=max_delay)


def _positive_from_env(name, parse, default):
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = parse(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_timeout() -> float:
    return _positive_from_env("DISCOVERY_TIMEOUT", float, DEFAULT_TIMEOUT)


def load_max_workers() -> int:
    return _positive_from_env("DISCOVERY_MAX_WORKERS", int, DEFAULT_MAX_WORKERS)


def load_upload_max_bytes() -> int:
    return _positive_from_env("DISCOVERY_UPLOAD_MAX_BYTES", int, DEFAULT_UPLOAD_MAX_BYTES)
