"""Error types raised by the Discovery client."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


class DiscoveryError(RuntimeError):
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


class ConfigurationError(DiscoveryError):
    """The client configuration is unusable (for example no version date)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("DISCOVERY_CONFIG_ERROR", message, details)


class MissingParameterError(DiscoveryError):
    """A required path or body parameter was not supplied."""

    def __init__(self, missing: Iterable[str]) -> None:
        names = list(missing)
        super().__init__(
            "DISCOVERY_MISSING_PARAMETER",
            f"Missing required parameters: {', '.join(names)}",
            {"missing": names},
        )
        self.missing = names


class TransportError(DiscoveryError):
    """Raised by the transport for network and HTTP failures."""
