"""
Configuration management for tidal-api.

This module handles loading, validating, and providing access to the
client configuration. Settings come from a YAML file and from environment
variables (optionally via a .env file), the latter taking precedence so that
credentials never have to be written to disk.

The configuration contains:
    - OAuth2 client credentials (client_id, client_secret, redirect_uri)
    - API behaviour (auto_refresh, auto_retry, return_assoc, max_retries, timeout)
    - Logging preferences for the command line front-end

Configuration File Location:
    An explicit path, or tidal.yaml in the current working directory.
    The default file is optional; an explicit path must exist.

Example tidal.yaml:
    client:
      client_id: "your_client_id_here"
      client_secret: ""  # empty for public PKCE clients
      redirect_uri: "http://localhost:8080/callback"

    api:
      auto_refresh: true
      auto_retry: true
      max_retries: 3
      timeout: 30

    logging:
      level: "INFO"
      file: null

Environment Variables:
    TIDAL_CLIENT_ID, TIDAL_CLIENT_SECRET, TIDAL_REDIRECT_URI, TIDAL_LOG_LEVEL
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from tidal_api.core.exceptions import ConfigError


# Default configuration file name (looked up in the current working directory)
CONFIG_FILENAME = "tidal.yaml"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Environment variable -> (section, field)
ENV_OVERRIDES = {
    "TIDAL_CLIENT_ID": ("client", "client_id"),
    "TIDAL_CLIENT_SECRET": ("client", "client_secret"),
    "TIDAL_REDIRECT_URI": ("client", "redirect_uri"),
    "TIDAL_LOG_LEVEL": ("logging", "level"),
}


@dataclass(frozen=True)
class ClientConfig:
    """
    OAuth2 client identity.

    These values are obtained from the TIDAL developer dashboard.

    Attributes:
        client_id: The application client ID.
        client_secret: The application client secret. Empty for public
                       clients that only use the PKCE flow.
        redirect_uri: The redirect URI registered for the application.
    """
    client_id: str
    client_secret: str = ""
    redirect_uri: str = ""


@dataclass(frozen=True)
class ApiConfig:
    """
    Behaviour of the API facade and transport.

    Attributes:
        auto_refresh: Refresh the access token and resend when it expired.
        auto_retry: Sleep for retry-after seconds and resend on 429 responses.
        return_assoc: Decode bodies as plain dicts/lists instead of attribute objects.
        max_retries: Upper bound on refresh/retry attempts for a single call.
        timeout: Connect/read timeout in seconds passed to requests.
    """
    auto_refresh: bool = False
    auto_retry: bool = False
    return_assoc: bool = False
    max_retries: int = 3
    timeout: float = 30


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging settings used by the command line front-end.

    Attributes:
        level: Console log level name.
        file: Optional log file path (rotated).
        colored_output: Colour console output.
    """
    level: str = "INFO"
    file: str | None = None
    colored_output: bool = True


@dataclass(frozen=True)
class Config:
    """
    Complete configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        api = TidalApi.from_config(config)
    """
    client: ClientConfig
    api: ApiConfig
    logging: LoggingConfig


def load_config(config_path: Path | str | None = None) -> Config:
    """
    Load and validate configuration from YAML and the environment.

    Args:
        config_path: Optional explicit path to a config file.
                     If None, tidal.yaml in the current working directory is
                     used when it exists.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is missing, the YAML is
                     invalid, a section has the wrong shape, a value has the
                     wrong type, or no client_id is configured anywhere.
    """
    load_dotenv()

    raw_config = _read_config_file(config_path)

    # Environment variables take precedence over the file
    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            raw_config.setdefault(section, {})[key] = value

    return Config(
        client=_parse_client_config(raw_config.get("client")),
        api=_parse_api_config(raw_config.get("api")),
        logging=_parse_logging_config(raw_config.get("logging")),
    )


def _read_config_file(config_path: Path | str | None) -> dict[str, Any]:
    """
    Read the YAML file into a dictionary of sections.

    Returns an empty dictionary when no explicit path was given and the
    default file does not exist.
    """
    if config_path is None:
        path = Path.cwd() / CONFIG_FILENAME
        if not path.exists():
            return {}
    else:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigError(
                f"Configuration file not found: {path}",
                details={"file_path": str(path)}
            )

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(path), "original_error": str(e)}
        ) from e
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(path), "original_error": str(e)}
        ) from e

    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(path)}
        )

    for section, value in raw_config.items():
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )

    # Copy sections so environment overrides never touch the parsed document
    return {section: dict(value or {}) for section, value in raw_config.items()}


def _parse_client_config(section: dict[str, Any] | None) -> ClientConfig:
    """
    Parse and validate the client section.

    Raises:
        ConfigError: If client_id is missing or not a non-empty string.
    """
    section = section or {}

    client_id = section.get("client_id", "")
    if not isinstance(client_id, str) or not client_id.strip():
        raise ConfigError(
            "'client.client_id' must be a non-empty string (or set TIDAL_CLIENT_ID)",
            details={"field": "client.client_id"}
        )

    client_secret = section.get("client_secret") or ""
    redirect_uri = section.get("redirect_uri") or ""
    for field_name, value in (("client_secret", client_secret), ("redirect_uri", redirect_uri)):
        if not isinstance(value, str):
            raise ConfigError(
                f"'client.{field_name}' must be a string",
                details={"field": f"client.{field_name}"}
            )

    return ClientConfig(
        client_id=client_id.strip(),
        client_secret=client_secret.strip(),
        redirect_uri=redirect_uri.strip()
    )


def _parse_api_config(section: dict[str, Any] | None) -> ApiConfig:
    """Parse the api section, applying defaults for missing fields."""
    defaults = ApiConfig()
    if not section:
        return defaults

    values = {}
    for name in ("auto_refresh", "auto_retry", "return_assoc"):
        value = section.get(name, getattr(defaults, name))
        if not isinstance(value, bool):
            raise ConfigError(
                f"'api.{name}' must be true or false",
                details={"field": f"api.{name}", "value": value}
            )
        values[name] = value

    max_retries = section.get("max_retries", defaults.max_retries)
    if not isinstance(max_retries, int) or isinstance(max_retries, bool) or max_retries < 0:
        raise ConfigError(
            "'api.max_retries' must be a non-negative integer",
            details={"field": "api.max_retries", "value": max_retries}
        )

    timeout = section.get("timeout", defaults.timeout)
    if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
        raise ConfigError(
            "'api.timeout' must be a positive number",
            details={"field": "api.timeout", "value": timeout}
        )

    return ApiConfig(max_retries=max_retries, timeout=timeout, **values)


def _parse_logging_config(section: dict[str, Any] | None) -> LoggingConfig:
    """Parse the logging section, applying defaults for missing fields."""
    defaults = LoggingConfig()
    if not section:
        return defaults

    level = str(section.get("level", defaults.level)).upper()
    if level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level: {level}",
            details={"field": "logging.level", "value": level}
        )

    log_file = section.get("file")
    if log_file is not None and not isinstance(log_file, str):
        raise ConfigError(
            "'logging.file' must be a string path or null",
            details={"field": "logging.file"}
        )

    colored_output = section.get("colored_output", defaults.colored_output)

    return LoggingConfig(
        level=level,
        file=log_file or None,
        colored_output=bool(colored_output)
    )
