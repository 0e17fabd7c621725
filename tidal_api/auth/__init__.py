"""
Authentication package: OAuth2 session, token state and PKCE helpers.
"""

from tidal_api.auth.pkce import (
    PKCEMaterial,
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
)
from tidal_api.auth.session import ClientCredentials, Session, TokenState

__all__ = [
    "Session",
    "ClientCredentials",
    "TokenState",
    "PKCEMaterial",
    "generate_state",
    "generate_code_verifier",
    "generate_code_challenge",
]
