"""
TIDAL API facade

TidalApi is the object most applications use. It owns a Request (transport)
and optionally a Session (OAuth2 tokens), attaches the bearer token to every
call, and wraps each call in a small recovery policy:

- Expired token: with auto_refresh enabled and a Session set, refresh the
  access token through the Session and resend the identical request.
- Rate limited (429): with auto_retry enabled, sleep for the retry-after
  seconds sent with the failing response and resend.
- Anything else propagates unchanged. TransportError is never retried.

Recovery is bounded: after max_retries recovery attempts a further
recoverable error raises RetryExhaustedError, so a server that keeps
answering 429 or keeps rejecting fresh tokens cannot stall the caller forever.

Endpoint methods (get_album, get_artist_relationship_tracks, get_me, ...) are
generated from the table in tidal_api.api.endpoints and attached to the class
at import time; each one builds a URI and query and calls get().

Usage:
    session = Session('client-id', 'client-secret')
    session.request_credentials_token()

    api = TidalApi({'auto_refresh': True, 'auto_retry': True}, session)
    album = api.get_album('251380836', 'US')
    print(album.data.attributes.title)
"""

import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional

from tidal_api.api.endpoints import build_endpoint_methods
from tidal_api.auth.session import Session
from tidal_api.core.exceptions import ApiError, RetryExhaustedError, TokenRefreshError
from tidal_api.core.logger import get_logger
from tidal_api.transport.request import Parameters, Request
from tidal_api.transport.response import Response

if TYPE_CHECKING:
    from tidal_api.core.config import Config


DEFAULT_OPTIONS: Dict[str, Any] = {
    'auto_refresh': False,
    'auto_retry': False,
    'return_assoc': False,
    'max_retries': 3,
    'default_retry_after': 1,
}


class TidalApi:
    """
    Facade over the TIDAL v2 API.

    Attributes:
        options: Behaviour options.
                 - auto_refresh: Refresh expired tokens through the Session and resend.
                 - auto_retry: Wait out 429 responses and resend.
                 - return_assoc: Return plain dicts/lists instead of attribute objects.
                 - max_retries: Maximum recovery attempts per call.
                 - default_retry_after: Seconds to wait when a 429 has no usable retry-after.
        session: Optional Session providing (and refreshing) the access token.
        request: The Request used for all calls.
        access_token: Bearer token used when no Session is set.
    """

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        session: Optional[Session] = None,
        request: Optional[Request] = None
    ):
        """
        Set options and collaborators.

        Args:
            options: Optional. Options to set, see set_options().
            session: Optional. The Session to take tokens from.
            request: Optional. The Request to use.
        """
        self.logger = get_logger(__name__)
        self.options: Dict[str, Any] = dict(DEFAULT_OPTIONS)
        self.set_options(options or {})
        self.session = session
        self.request = request or Request()
        self.access_token = ""

    @classmethod
    def from_config(cls, config: "Config") -> "TidalApi":
        """
        Build a facade and Session from a loaded Config.

        Both share one Request so connections are reused across the token
        and resource hosts.
        """
        request = Request({'request_options': {'timeout': config.api.timeout}})
        session = Session(
            config.client.client_id,
            config.client.client_secret,
            config.client.redirect_uri,
            request=request
        )
        options = {
            'auto_refresh': config.api.auto_refresh,
            'auto_retry': config.api.auto_retry,
            'return_assoc': config.api.return_assoc,
            'max_retries': config.api.max_retries,
        }
        return cls(options, session, request)

    def set_options(self, options: Mapping[str, Any]) -> "TidalApi":
        """
        Merge options.

        Raises:
            ValueError: For unknown option names or a negative max_retries.
        """
        unknown = set(options) - set(DEFAULT_OPTIONS)
        if unknown:
            raise ValueError(f"Unknown option(s): {', '.join(sorted(unknown))}")

        if 'max_retries' in options and int(options['max_retries']) < 0:
            raise ValueError("max_retries must be zero or positive")

        self.options.update(options)
        return self

    def set_access_token(self, access_token: str) -> "TidalApi":
        """Set the bearer token used when no Session is set."""
        self.access_token = access_token
        return self

    def set_session(self, session: Optional[Session]) -> "TidalApi":
        """Set (or clear) the Session to take tokens from."""
        self.session = session
        return self

    @property
    def last_response(self) -> Optional[Response]:
        """The Response of the most recent call made through this facade's Request."""
        return self.request.last_response

    def _auth_headers(self, headers: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Merge the bearer authorization header into the given headers."""
        merged = dict(headers or {})
        access_token = self.session.access_token if self.session else self.access_token

        if access_token:
            merged['Authorization'] = 'Bearer ' + access_token

        return merged

    def send_request(
        self,
        method: str,
        uri: str,
        parameters: Parameters = None,
        headers: Optional[Mapping[str, str]] = None
    ) -> Response:
        """
        Send a request to the resource API with automatic token refresh and rate-limit retry.

        Args:
            method: The HTTP method to use.
            uri: The URI to request, relative to the API host.
            parameters: Optional. Query string parameters or HTTP body, depending on method.
            headers: Optional. Extra HTTP headers.

        Returns:
            The Response of the first successful attempt.

        Raises:
            TokenRefreshError: If an expired token could not be refreshed.
            RetryExhaustedError: If max_retries recovery attempts did not help.
            ApiError: For errors the policy does not handle (or when disabled).
            TransportError: For network failures (never retried).
        """
        self.request.set_options({'return_assoc': self.options['return_assoc']})

        max_retries = int(self.options['max_retries'])
        attempts = 0

        while True:
            try:
                return self.request.api(method, uri, parameters, self._auth_headers(headers))
            except ApiError as e:
                recover = self._recovery_for(e)
                if recover is None:
                    raise

                if attempts >= max_retries:
                    raise RetryExhaustedError(
                        f"Giving up on {method.upper()} {uri} after {attempts} retries: {e.message}",
                        attempts=attempts,
                        last_error=e,
                        details={'uri': uri, 'status': e.status}
                    ) from e

                attempts += 1
                recover(e)

    def _recovery_for(self, error: ApiError) -> Optional[Callable[[ApiError], None]]:
        """Pick the recovery step for an error, or None to propagate it."""
        if self.options['auto_refresh'] and self.session is not None and error.has_expired_token():
            return self._refresh_expired_token
        if self.options['auto_retry'] and error.is_rate_limited():
            return self._wait_for_rate_limit
        return None

    def _refresh_expired_token(self, error: ApiError) -> None:
        """Refresh the Session's access token after an expired-token error."""
        self.logger.info("Access token expired, refreshing")

        if not self.session.refresh_access_token():
            raise TokenRefreshError(
                "Could not refresh access token.",
                details={'status': error.status}
            ) from error

    def _wait_for_rate_limit(self, error: ApiError) -> None:
        """Block for the retry-after seconds of a rate-limited response."""
        delay = self._retry_after(error)
        self.logger.warning(f"Rate limited, waiting {delay:g} seconds...")
        time.sleep(delay)

    def _retry_after(self, error: ApiError) -> float:
        """Seconds to wait, from the failing response's retry-after header."""
        value = error.header('retry-after')
        try:
            return max(float(value), 0.0)
        except (TypeError, ValueError):
            return float(self.options['default_retry_after'])

    def get(
        self,
        uri: str,
        query: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
        model: Optional[Any] = None
    ) -> Any:
        """
        GET a resource URI and return its decoded body.

        Used by every generated endpoint method; also handy for endpoints the
        table does not cover yet, or for following ``links.next`` cursors.

        Args:
            uri: URI relative to the API host.
            query: Required query parameters.
            options: Optional extra query parameters, merged over ``query``.
            model: Optional class with a ``from_api_data`` factory (e.g.
                   Document). When given, the plain JSON body is converted
                   with it instead of returning the decoded body.

        Returns:
            The body, decoded according to return_assoc, or a model instance.
        """
        parameters = dict(query or {})
        parameters.update(options or {})

        response = self.send_request('GET', uri, parameters)

        if model is not None:
            return model.from_api_data(response.json())
        return response.body


for _name, _method in build_endpoint_methods().items():
    setattr(TidalApi, _name, _method)

# Short names
TidalApi.search = TidalApi.get_search_result
TidalApi.me = TidalApi.get_me
