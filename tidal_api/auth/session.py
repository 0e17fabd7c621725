"""
OAuth2 session and token management for the TIDAL API

This module holds the client identity and the in-memory token state, and
runs the three OAuth2 grants against the token host:

1. Authorization code with PKCE
   - get_authorize_url() builds the login redirect
   - request_access_token() exchanges the returned code (and verifier)
2. Refresh
   - refresh_access_token() trades a refresh token for a new access token
3. Client credentials
   - request_credentials_token() authenticates the application itself

Grant contract:
    A well-formed token response that lacks the expected token fields is not
    an exception: the grant method returns False and leaves the token state
    untouched. Transport and API errors raised by the Request propagate.

Token storage:
    Nothing is persisted. Callers that want to survive restarts must store
    access_token/refresh_token themselves and set them on a new Session.
"""

import base64
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional

from tidal_api.auth.pkce import (
    DEFAULT_CHALLENGE_METHOD,
    DEFAULT_STATE_LENGTH,
    CODE_VERIFIER_MAX_LENGTH,
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
)
from tidal_api.core.logger import get_logger
from tidal_api.transport.request import Request, build_query


TOKEN_URI = '/v1/oauth2/token'


@dataclass(frozen=True)
class ClientCredentials:
    """
    OAuth2 client identity.

    Attributes:
        client_id: Application client ID.
        client_secret: Application client secret, empty for public PKCE clients.
        redirect_uri: Registered redirect URI.
    """
    client_id: str
    client_secret: str = ""
    redirect_uri: str = ""


@dataclass
class TokenState:
    """
    Tokens granted to the session.

    Attributes:
        access_token: Current bearer token.
        refresh_token: Token used to obtain new access tokens.
        expiration_time: Unix timestamp computed as now + expires_in at grant time.
        scope: Space-delimited granted scope.
    """
    access_token: str = ""
    refresh_token: str = ""
    expiration_time: int = 0
    scope: str = ""


class Session:
    """
    OAuth2 client identity, token state and grant flows.

    Example:
        session = Session('client-id', redirect_uri='http://localhost:8080/callback')
        verifier = session.generate_code_verifier()
        url = session.get_authorize_url({
            'code_challenge': session.generate_code_challenge(verifier),
            'scope': ['user.read', 'collection.read'],
            'state': session.generate_state(),
        })
        # ... redirect the user, receive ?code=...
        if session.request_access_token(code, verifier):
            api = TidalApi(session=session)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str = "",
        redirect_uri: str = "",
        request: Optional[Request] = None
    ):
        """
        Set up client credentials.

        Args:
            client_id: The client ID.
            client_secret: Optional. The client secret.
            redirect_uri: Optional. The redirect URI.
            request: Optional. The Request object to use.
        """
        self.credentials = ClientCredentials(client_id, client_secret, redirect_uri)
        self.tokens = TokenState()
        self.request = request or Request()
        self.logger = get_logger(__name__)

    # Client identity

    @property
    def client_id(self) -> str:
        return self.credentials.client_id

    @client_id.setter
    def client_id(self, client_id: str) -> None:
        self.credentials = replace(self.credentials, client_id=client_id)

    @property
    def client_secret(self) -> str:
        return self.credentials.client_secret

    @client_secret.setter
    def client_secret(self, client_secret: str) -> None:
        self.credentials = replace(self.credentials, client_secret=client_secret)

    @property
    def redirect_uri(self) -> str:
        return self.credentials.redirect_uri

    @redirect_uri.setter
    def redirect_uri(self, redirect_uri: str) -> None:
        self.credentials = replace(self.credentials, redirect_uri=redirect_uri)

    # Token state

    @property
    def access_token(self) -> str:
        return self.tokens.access_token

    @access_token.setter
    def access_token(self, access_token: str) -> None:
        self.tokens.access_token = access_token

    @property
    def refresh_token(self) -> str:
        return self.tokens.refresh_token

    @refresh_token.setter
    def refresh_token(self, refresh_token: str) -> None:
        self.tokens.refresh_token = refresh_token

    @property
    def token_expiration(self) -> int:
        """Unix timestamp at which the access token expires (0 if never granted)."""
        return self.tokens.expiration_time

    @property
    def scope(self) -> List[str]:
        """Scopes granted with the current access token."""
        return self.tokens.scope.split()

    def is_token_expired(self, buffer_seconds: int = 0) -> bool:
        """
        Check the stored expiration time against the clock.

        Never called by the library itself; the server decides whether a
        token is expired. Useful for refreshing ahead of time.

        Args:
            buffer_seconds: Treat the token as expired this many seconds early.

        Returns:
            True if no token was granted or it expires within the buffer.
        """
        if not self.tokens.expiration_time:
            return True
        return time.time() >= self.tokens.expiration_time - buffer_seconds

    # PKCE helpers

    def generate_state(self, length: int = DEFAULT_STATE_LENGTH) -> str:
        """Generate a random hex state value of ``length`` characters."""
        return generate_state(length)

    def generate_code_verifier(self, length: int = CODE_VERIFIER_MAX_LENGTH) -> str:
        """Generate a PKCE code verifier (43-128 hex characters)."""
        return generate_code_verifier(length)

    def generate_code_challenge(self, code_verifier: str, hash_algo: str = 'sha256') -> str:
        """Derive the base64url code challenge for a verifier."""
        return generate_code_challenge(code_verifier, hash_algo)

    def get_authorize_url(self, options: Optional[Mapping[str, Any]] = None) -> str:
        """
        Build the authorization URL to redirect the user to.

        Args:
            options: Options for the authorization URL.
                     - code_challenge: Required. A PKCE code challenge.
                     - scope: Optional. Iterable of scopes to request.
                     - state: Optional. A CSRF token.
                     - code_challenge_method: Optional. Defaults to "S256".

        Returns:
            The authorization URL on the login host.

        Raises:
            ValueError: If no code_challenge was given.
        """
        options = dict(options or {})

        if not options.get('code_challenge'):
            raise ValueError("get_authorize_url() requires a 'code_challenge' option")

        scope = options.get('scope')
        if isinstance(scope, str):
            scope = [scope]
        parameters = {
            'response_type': 'code',
            'client_id': self.client_id,
            'redirect_uri': self.redirect_uri,
            'scope': ' '.join(scope) if scope else None,
            'code_challenge': options['code_challenge'],
            'code_challenge_method': options.get('code_challenge_method') or DEFAULT_CHALLENGE_METHOD,
            'state': options.get('state'),
        }

        return f"{Request.LOGIN_URL}/authorize?{build_query(parameters)}"

    # Grants

    def request_access_token(self, authorization_code: str, code_verifier: str = "") -> bool:
        """
        Exchange an authorization code for access and refresh tokens.

        Args:
            authorization_code: The code received on the redirect URI.
            code_verifier: The verifier whose challenge was sent with the
                           authorization request (PKCE flow).

        Returns:
            True when both tokens were granted and stored, False otherwise.

        Raises:
            TransportError, ApiError: Propagated from the token request.
        """
        parameters = {
            'client_id': self.client_id,
            'code': authorization_code,
            'grant_type': 'authorization_code',
            'redirect_uri': self.redirect_uri,
            'code_verifier': code_verifier,
        }

        payload = self._grant(parameters, {})

        if payload.get('refresh_token') is not None and payload.get('access_token') is not None:
            self.tokens.refresh_token = payload['refresh_token']
            self._store_access_token(payload)
            self.logger.info("Access token granted for authorization code")
            return True

        self.logger.warning("Authorization code grant returned no tokens")
        return False

    def request_credentials_token(self) -> bool:
        """
        Request an access token using the client credentials flow.

        Returns:
            True when an access token was granted and stored, False otherwise.

        Raises:
            TransportError, ApiError: Propagated from the token request.
        """
        payload = self._grant({'grant_type': 'client_credentials'}, self._basic_auth_header())

        if payload.get('access_token') is not None:
            self._store_access_token(payload)
            self.logger.info("Access token granted for client credentials")
            return True

        self.logger.warning("Client credentials grant returned no access token")
        return False

    def refresh_access_token(self, refresh_token: Optional[str] = None) -> bool:
        """
        Refresh the access token.

        Args:
            refresh_token: Optional. The refresh token to use instead of the stored one.

        Returns:
            True when a new access token was granted and stored, False otherwise.

        Raises:
            TransportError, ApiError: Propagated from the token request.
        """
        parameters = {
            'grant_type': 'refresh_token',
            'refresh_token': refresh_token if refresh_token is not None else self.tokens.refresh_token,
        }

        headers = self._basic_auth_header() if self.client_secret else {}

        payload = self._grant(parameters, headers)

        if payload.get('access_token') is None:
            self.logger.warning("Refresh grant returned no access token")
            return False

        self._store_access_token(payload)

        if payload.get('refresh_token') is not None:
            # Token rotated by the server
            self.tokens.refresh_token = payload['refresh_token']
        elif not self.tokens.refresh_token:
            self.tokens.refresh_token = refresh_token or ""

        self.logger.info("Access token refreshed")
        return True

    def _grant(self, parameters: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        """POST a grant to the token endpoint and return the JSON object (empty if not an object)."""
        response = self.request.auth('POST', TOKEN_URI, parameters, headers)
        payload = response.json()
        return payload if isinstance(payload, dict) else {}

    def _basic_auth_header(self) -> Dict[str, str]:
        """HTTP Basic header built from client_id:client_secret."""
        credentials = f"{self.client_id}:{self.client_secret}".encode('utf-8')
        return {'Authorization': 'Basic ' + base64.b64encode(credentials).decode('ascii')}

    def _store_access_token(self, payload: Dict[str, Any]) -> None:
        """Store access token, expiration and scope from a successful grant."""
        self.tokens.access_token = payload['access_token']
        self.tokens.expiration_time = int(time.time()) + int(payload.get('expires_in') or 0)
        self.tokens.scope = payload.get('scope') or self.tokens.scope
