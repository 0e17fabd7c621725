"""
Exception classes for tidal-api.

This module defines all custom exceptions raised by the library. Each
exception carries a human-readable message plus an optional details
dictionary, and the HTTP-level errors additionally carry the status code
and the response that produced them.

Exception Hierarchy:
    TidalApiError (base)
        ConfigError - Configuration file or environment issues
        RandomSourceError - No secure entropy source for PKCE/state values
        TransportError - Network failure before any HTTP status was received
        ApiError - The server answered with status >= 400
            StructuredApiError - {"error": {"message", "status", "reason"?}} body
            AuthFlowError - OAuth {"error_description": ...} body
            GenericApiError - Unrecognised error body (raw text as message)
            UnknownApiError - Error status with an empty body
        TokenRefreshError - Automatic refresh of an expired token failed
        RetryExhaustedError - Automatic refresh/retry gave up after max_retries
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tidal_api.transport.response import Response


class TidalApiError(Exception):
    """
    Base exception for all tidal-api errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every library error with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g. URLs, original errors).

    Example:
        try:
            api.get_album("251380836", "US")
        except TidalApiError as e:
            logger.error(f"Request failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': URL that caused the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(TidalApiError):
    """
    Raised when the configuration file or environment is unusable.

    Common causes:
        - An explicit config path that does not exist
        - Invalid YAML syntax
        - A section that is not a mapping
        - Missing client_id
    """
    pass


class RandomSourceError(TidalApiError):
    """
    Raised when the platform cannot provide cryptographically secure random bytes.

    PKCE verifiers and CSRF state values must never fall back to a
    predictable generator, so this is always fatal for the authorization
    attempt.
    """
    pass


class TransportError(TidalApiError):
    """
    Raised when the HTTP request could not be completed at all.

    DNS failures, refused connections, TLS errors and timeouts end up here.
    No status code was received, so no response is attached. The library
    never retries these.

    Attributes:
        code: The underlying error number when the transport exposes one, else 0.
    """

    def __init__(self, message: str, code: int = 0, details: dict | None = None) -> None:
        super().__init__(message, details)
        self.code = code


class ApiError(TidalApiError):
    """
    Raised when the TIDAL API responded with an HTTP error status.

    The status may come from the error body instead of the HTTP status line
    (structured API errors carry their own status). The full response is
    kept so callers can inspect headers such as ``retry-after``.

    Attributes:
        status: Numeric status code of the error.
        reason: Machine-readable reason string, empty when the API sent none.
        response: The Response that produced this error, if any.
    """

    TOKEN_EXPIRED = "The access token expired"

    RATE_LIMIT_STATUS = 429

    def __init__(
        self,
        message: str,
        status: int = 0,
        reason: str = "",
        response: "Response | None" = None,
        details: dict | None = None
    ) -> None:
        super().__init__(message, details)
        self.status = status
        self.reason = reason
        self.response = response

    def has_expired_token(self) -> bool:
        """Returns whether the error was raised because of an expired access token."""
        return self.message == self.TOKEN_EXPIRED

    def is_rate_limited(self) -> bool:
        """Returns whether the error was raised because of rate limiting."""
        return self.status == self.RATE_LIMIT_STATUS

    def header(self, name: str, default: Any = None) -> Any:
        """Look up a (lower-cased) response header of the failing call."""
        if self.response is None:
            return default
        return self.response.headers.get(name.lower(), default)


class StructuredApiError(ApiError):
    """Resource API error with an ``{"error": {"message", "status"}}`` body."""
    pass


class AuthFlowError(ApiError):
    """
    Token endpoint error carrying an OAuth ``error_description``.

    The HTTP status of the token endpoint is passed through unchanged.
    """

    INVALID_CLIENT = "Invalid client"
    INVALID_CLIENT_SECRET = "Invalid client secret"
    INVALID_REFRESH_TOKEN = "Invalid refresh token"

    def has_invalid_credentials(self) -> bool:
        """Returns whether the error was raised because of invalid client credentials."""
        return self.message in (self.INVALID_CLIENT, self.INVALID_CLIENT_SECRET)

    def has_invalid_refresh_token(self) -> bool:
        """Returns whether the error was raised because of an invalid refresh token."""
        return self.message == self.INVALID_REFRESH_TOKEN


class GenericApiError(ApiError):
    """Error status with a body the library does not recognise; the raw text is the message."""
    pass


class UnknownApiError(ApiError):
    """Error status with an empty body."""
    pass


class TokenRefreshError(TidalApiError):
    """Raised when an expired token could not be refreshed automatically."""
    pass


class RetryExhaustedError(TidalApiError):
    """
    Raised when automatic token refresh or rate-limit retry gave up.

    The last recoverable ApiError is chained as ``__cause__`` and kept in
    ``last_error``.

    Attributes:
        attempts: Number of recovery attempts made before giving up.
        last_error: The ApiError from the final attempt.
    """

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: ApiError | None = None,
        details: dict | None = None
    ) -> None:
        super().__init__(message, details)
        self.attempts = attempts
        self.last_error = last_error
