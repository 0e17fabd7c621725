"""
HTTP transport for the TIDAL API

The Request class performs exactly one HTTP call per invocation and turns the
result into a normalized Response, or raises a classified error. It knows the
three TIDAL hosts and offers one call mode per host:

- login(): authorization UI host (https://login.tidal.com)
- auth(): OAuth2 token host (https://auth.tidal.com)
- api(): resource API host (https://openapi.tidal.com)

Encoding policy:
    PUT/DELETE send the parameters as the request body with the literal method.
    POST sends the parameters as the request body.
    Every other method appends the encoded parameters as a query string.

Error policy:
    Network failures raise TransportError and are never retried here.
    Statuses >= 400 raise an ApiError subclass (see response.classify_error)
    after the response has been stored as last_response, so callers can still
    inspect headers such as retry-after.

Thread Safety:
    Not thread-safe. One instance owns one requests.Session and one
    last_response slot.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

import requests

from tidal_api import __version__
from tidal_api.core.exceptions import TransportError
from tidal_api.core.logger import get_logger
from tidal_api.transport.response import (
    Response,
    classify_error,
    decode_body,
    normalize_headers,
    parse_headers,
    parse_status_line,
    split_response,
)


Parameters = Union[str, Mapping[str, Any], None]

DEFAULT_TIMEOUT = 30

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'


def build_query(parameters: Parameters) -> str:
    """
    Form-encode request parameters.

    Strings are assumed to be encoded already and are returned unchanged.
    In mappings, None values are dropped, booleans become true/false and
    lists/tuples are joined with commas (the API's multi-value convention,
    e.g. include=artists,items).

    Args:
        parameters: Pre-encoded string, mapping, or None.

    Returns:
        The encoded string ("" for no parameters).
    """
    if parameters is None:
        return ""
    if isinstance(parameters, str):
        return parameters

    pairs = []
    for key, value in parameters.items():
        if value is None:
            continue
        pairs.append((key, to_query_value(value)))
    return urlencode(pairs)


def to_query_value(value: Any) -> str:
    """Convert one parameter value to its query-string form."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple, set, frozenset)):
        return ','.join(to_query_value(item) for item in value)
    return str(value)


def header_pairs(http_response: requests.Response) -> Iterable[Tuple[str, str]]:
    """
    Header (name, value) pairs of a requests response, one per header line.

    requests folds repeated headers into one comma-joined value; the urllib3
    response underneath still has every occurrence.
    """
    raw_headers = getattr(http_response.raw, 'headers', None)
    if hasattr(raw_headers, 'iteritems'):
        return list(raw_headers.iteritems())
    return list(http_response.headers.items())


def error_code(error: BaseException) -> int:
    """
    Find the OS error number behind a requests exception, or 0.

    requests wraps urllib3 errors, which in turn wrap the socket error, so the
    errno sits in the wrapped exception's args, its ``reason`` or its
    cause/context chain.
    """
    pending = [error]
    seen = set()

    while pending:
        current = pending.pop(0)
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))

        errno = getattr(current, 'errno', None)
        if isinstance(errno, int) and errno:
            return errno

        pending.extend(current.args)
        pending.extend([getattr(current, 'reason', None), current.__cause__, current.__context__])

    return 0


class Request:
    """
    Single-call HTTP transport for the TIDAL hosts.

    Attributes:
        options: Standing options.
                 - return_assoc: Decode bodies as plain dicts/lists (default False).
                 - request_options: Keyword arguments passed through to
                   requests (timeout, proxies, verify, ...).
        http: The underlying requests.Session.
    """

    LOGIN_URL = 'https://login.tidal.com'

    AUTH_URL = 'https://auth.tidal.com'

    API_URL = 'https://openapi.tidal.com'

    USER_AGENT = f'tidal-api-python/{__version__}'

    def __init__(self, options: Optional[Mapping[str, Any]] = None, http: Optional[requests.Session] = None):
        """
        Initialize the transport.

        Args:
            options: Optional standing options, see set_options().
            http: Optional requests.Session to use (a new one by default).
        """
        self.logger = get_logger(__name__)
        self.options: Dict[str, Any] = {
            'return_assoc': False,
            'request_options': {'timeout': DEFAULT_TIMEOUT},
        }
        self.http = http or requests.Session()
        self.http.headers['User-Agent'] = self.USER_AGENT
        self._last_response: Optional[Response] = None

        if options:
            self.set_options(options)

    def set_options(self, options: Mapping[str, Any]) -> "Request":
        """
        Merge standing options.

        request_options is merged key by key so that setting e.g. proxies
        keeps the default timeout.

        Raises:
            ValueError: For unknown option names.
        """
        for key, value in options.items():
            if key == 'return_assoc':
                self.options['return_assoc'] = bool(value)
            elif key == 'request_options':
                self.options['request_options'] = {**self.options['request_options'], **dict(value)}
            else:
                raise ValueError(f"Unknown transport option: {key}")
        return self

    @property
    def last_response(self) -> Optional[Response]:
        """The Response of the most recent call, including failed ones."""
        return self._last_response

    def login(self, method: str, uri: str, parameters: Parameters = None,
              headers: Optional[Mapping[str, str]] = None) -> Response:
        """Make a request to the login (authorization UI) host."""
        return self.send(method, self.LOGIN_URL + uri, parameters, headers)

    def auth(self, method: str, uri: str, parameters: Parameters = None,
             headers: Optional[Mapping[str, str]] = None) -> Response:
        """Make a request to the OAuth2 token host."""
        return self.send(method, self.AUTH_URL + uri, parameters, headers)

    def api(self, method: str, uri: str, parameters: Parameters = None,
            headers: Optional[Mapping[str, str]] = None) -> Response:
        """Make a request to the resource API host."""
        return self.send(method, self.API_URL + uri, parameters, headers)

    def send(self, method: str, url: str, parameters: Parameters = None,
             headers: Optional[Mapping[str, str]] = None) -> Response:
        """
        Perform one HTTP request.

        You'll probably want login(), auth(), api() or one of the TidalApi
        convenience methods instead.

        Args:
            method: HTTP method, any case.
            url: Absolute URL.
            parameters: Query string parameters or HTTP body, depending on method.
            headers: Extra HTTP headers, applied verbatim.

        Returns:
            The normalized Response (status < 400).

        Raises:
            TransportError: If the request could not be completed.
            ApiError: A classified subclass for statuses >= 400.
        """
        self._last_response = None

        method = method.upper()
        encoded = build_query(parameters)
        request_url = url.rstrip('/')
        request_headers = dict(headers or {})
        data = None

        if method in ('PUT', 'DELETE', 'POST'):
            data = encoded
            if encoded and not any(key.lower() == 'content-type' for key in request_headers):
                request_headers['Content-Type'] = FORM_CONTENT_TYPE
        elif encoded:
            request_url += '?' + encoded

        self.logger.debug(f"{method} {request_url}")

        try:
            http_response = self.http.request(
                method,
                request_url,
                data=data,
                headers=request_headers,
                **self.options['request_options']
            )
        except requests.RequestException as e:
            code = error_code(e)
            raise TransportError(
                f"Transport error: {code} {e}",
                code=code,
                details={'url': url, 'original_error': str(e), 'error_type': type(e).__name__}
            ) from e

        text = http_response.text
        response = Response(
            body=decode_body(text, self.options['return_assoc']),
            headers=normalize_headers(header_pairs(http_response)),
            status=int(http_response.status_code),
            url=url,
            text=text,
        )
        return self._finish(method, response)

    def replay(self, raw: str, url: str = "") -> Response:
        """
        Turn a captured raw HTTP message into a Response.

        The message goes through the same handling as a live call: interim
        blocks are skipped, headers normalized, the body decoded and error
        statuses raised as classified errors.

        Args:
            raw: Complete raw HTTP message (status line, headers, blank line, body).
            url: URL to record on the Response.

        Returns:
            The normalized Response (status < 400).

        Raises:
            ApiError: A classified subclass for statuses >= 400.
        """
        header_block, body = split_response(raw)
        response = Response(
            body=decode_body(body, self.options['return_assoc']),
            headers=parse_headers(header_block),
            status=parse_status_line(header_block),
            url=url,
            text=body,
        )
        return self._finish('REPLAY', response)

    def _finish(self, method: str, response: Response) -> Response:
        """Store the response as last_response and raise for error statuses."""
        self._last_response = response
        self.logger.debug(f"{method} {response.url} -> {response.status}")

        if response.status >= 400:
            raise classify_error(response.text, response.status, response)

        return response
