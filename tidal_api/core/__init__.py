"""
Core module for tidal-api.

This module provides the foundational components used throughout the library:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging setup with colored console and rotating file output

Usage:
    from tidal_api.core import (
        Config, load_config,
        setup_logging, get_logger,
        TidalApiError, ApiError, TransportError
    )
"""

from tidal_api.core.config import (
    ApiConfig,
    ClientConfig,
    Config,
    LoggingConfig,
    load_config,
)
from tidal_api.core.exceptions import (
    ApiError,
    AuthFlowError,
    ConfigError,
    GenericApiError,
    RandomSourceError,
    RetryExhaustedError,
    StructuredApiError,
    TidalApiError,
    TokenRefreshError,
    TransportError,
    UnknownApiError,
)
from tidal_api.core.logger import (
    configure_from_config,
    get_logger,
    setup_logging,
)

__all__ = [
    # Config
    "Config",
    "ClientConfig",
    "ApiConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "TidalApiError",
    "ConfigError",
    "RandomSourceError",
    "TransportError",
    "ApiError",
    "StructuredApiError",
    "AuthFlowError",
    "GenericApiError",
    "UnknownApiError",
    "TokenRefreshError",
    "RetryExhaustedError",
    # Logger
    "setup_logging",
    "get_logger",
    "configure_from_config",
]
