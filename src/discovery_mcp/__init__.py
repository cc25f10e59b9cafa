"""Discovery service client and MCP tool server."""

__version__ = "0.1.0"

from .client import DiscoveryClient, RequestDescriptor, build_request  # noqa: E402
from .config import ServiceConfig, load_config_from_env  # noqa: E402
from .errors import ConfigurationError, DiscoveryError, MissingParameterError, TransportError  # noqa: E402
from .files import FilePart, ensure_filename  # noqa: E402
from .operations import Operation  # noqa: E402
from .versions import (  # noqa: E402
    VERSION_DATE_2016_12_15,
    VERSION_DATE_2017_04_27,
    VERSION_DATE_2017_08_01,
    EffectiveVersion,
)

__all__ = [
    "__version__",
    "ConfigurationError",
    "DiscoveryClient",
    "DiscoveryError",
    "EffectiveVersion",
    "FilePart",
    "MissingParameterError",
    "Operation",
    "RequestDescriptor",
    "ServiceConfig",
    "TransportError",
    "VERSION_DATE_2016_12_15",
    "VERSION_DATE_2017_04_27",
    "VERSION_DATE_2017_08_01",
    "build_request",
    "ensure_filename",
    "load_config_from_env",
]
