"""
tidal-api: a Python client for the TIDAL developer API.

This package authenticates against TIDAL's OAuth2 endpoints (authorization
code with PKCE, refresh, client credentials), keeps the granted tokens in
memory, and exposes one method per catalogue/user endpoint of the v2 API.

Architecture:
    core/       - Configuration, logging, exceptions
    transport/  - Single-call HTTP transport and normalized responses
    auth/       - OAuth2 Session, token state and PKCE helpers
    api/        - TidalApi facade, endpoint table and JSON:API models
    cli.py      - Command-line interface

Usage:
    from tidal_api import Session, TidalApi

    session = Session('client-id', 'client-secret')
    session.request_credentials_token()

    api = TidalApi({'auto_refresh': True, 'auto_retry': True, 'return_assoc': True}, session)
    album = api.get_album('251380836', 'US', {'include': ['artists']})

    # PKCE flow for user endpoints
    session = Session('client-id', redirect_uri='http://localhost:8080/callback')
    verifier = session.generate_code_verifier()
    url = session.get_authorize_url({
        'code_challenge': session.generate_code_challenge(verifier),
        'scope': ['user.read'],
        'state': session.generate_state(),
    })
    # redirect the user to url, then with the returned code:
    session.request_access_token(code, verifier)
    me = TidalApi(session=session).get_me()

Dependencies:
    - requests: HTTP transport
    - pyyaml: Configuration file parsing
    - python-dotenv: .env support for credentials
    - colorama: Colored console logging
    - click: CLI framework
"""

__version__ = "0.1.0"
__author__ = "tidal-api"
__license__ = "MIT"

# Convenience imports for common usage
from tidal_api.core import (
    ApiError,
    AuthFlowError,
    Config,
    ConfigError,
    GenericApiError,
    RandomSourceError,
    RetryExhaustedError,
    StructuredApiError,
    TidalApiError,
    TokenRefreshError,
    TransportError,
    UnknownApiError,
    get_logger,
    load_config,
    setup_logging,
)
from tidal_api.transport import Request, Response
from tidal_api.auth import PKCEMaterial, Session
from tidal_api.api import Document, Resource, ResourceType, TidalApi

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "setup_logging",
    "get_logger",
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
    # Transport
    "Request",
    "Response",
    # Auth
    "Session",
    "PKCEMaterial",
    # API
    "TidalApi",
    "Document",
    "Resource",
    "ResourceType",
]
