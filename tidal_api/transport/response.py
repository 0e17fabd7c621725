"""
Normalized HTTP responses and error classification for tidal-api

Every call made through the transport produces a Response: the decoded body,
a normalized header map, the numeric status and the requested URL. This module
also holds the pure helpers used to build one, so that live calls (made with
requests) and captured raw HTTP messages go through exactly the same header
normalization, body decoding and error classification.

Raw message handling:
    Raw messages (for example ``curl -i`` output or proxy logs) may start with
    interim blocks such as ``HTTP/1.1 100 Continue`` or a proxy's
    ``HTTP/1.1 200 Connection established``. split_response() discards those
    before locating the real header/body boundary.

Error classification (status >= 400), in priority order:
    1. {"error": {"message": ..., "status": ..., "reason"?: ...}} -> StructuredApiError
    2. {"error_description": ...}                                 -> AuthFlowError
    3. any other non-empty body                                   -> GenericApiError
    4. empty body                                                 -> UnknownApiError
"""

import json
import re
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any, Dict, Iterable, Optional, Tuple

from tidal_api.core.exceptions import (
    ApiError,
    AuthFlowError,
    GenericApiError,
    StructuredApiError,
    UnknownApiError,
)


UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."

# Interim blocks that precede the real response in a raw HTTP message
INTERIM_STATUS_PATTERN = re.compile(
    r'^HTTP/\d(?:\.\d)? (?:1\d\d\b|200 Connection established|200 Tunnel established)',
    re.IGNORECASE
)

STATUS_LINE_PATTERN = re.compile(r'^HTTP/\d(?:\.\d)? (\d{3})')


@dataclass
class Response:
    """
    Normalized result of a single HTTP call.

    Attributes:
        body: Decoded JSON body. Plain dicts/lists when decoded with
              return_assoc, attribute-access objects otherwise; None for an
              empty or non-JSON body.
        headers: Response headers, lower-cased keys and trimmed values, in
                 order of first occurrence (last duplicate wins).
        status: HTTP status code.
        url: The requested URL, without any query string added for GET.
        text: Raw body text.
    """
    body: Any
    headers: Dict[str, str] = field(default_factory=dict)
    status: int = 0
    url: str = ""
    text: str = ""

    def json(self) -> Any:
        """Decode the raw body as plain dicts/lists, regardless of the decode mode."""
        return decode_body(self.text, return_assoc=True)

    @property
    def ok(self) -> bool:
        """True for statuses below 400."""
        return self.status < 400

    def to_dict(self) -> Dict[str, Any]:
        """Return the ``{body, headers, status, url}`` mapping."""
        return {
            'body': self.body,
            'headers': dict(self.headers),
            'status': self.status,
            'url': self.url,
        }


def split_response(raw: str) -> Tuple[str, str]:
    """
    Split a raw HTTP message into its header block and body.

    Interim blocks (1xx responses, proxy tunnel confirmations) that precede
    the real response are skipped.

    Args:
        raw: The complete raw message, CRLF or LF line endings.

    Returns:
        Tuple of (header block, body). The body is empty when the message
        has no blank line after the headers.
    """
    raw = raw.replace("\r\n", "\n")

    while True:
        head, separator, rest = raw.partition("\n\n")
        if separator and INTERIM_STATUS_PATTERN.match(head):
            raw = rest
            continue
        return head, rest


def normalize_headers(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """
    Lower-case header names and trim values; the last duplicate wins.

    Args:
        pairs: (name, value) pairs in the order received.

    Returns:
        Header dictionary ordered by first occurrence.
    """
    headers: Dict[str, str] = {}
    for key, value in pairs:
        key = key.strip().lower()
        if not key:
            continue
        headers[key] = value.strip()
    return headers


def parse_headers(header_block: str) -> Dict[str, str]:
    """
    Parse a raw header block (status line first) into a header dictionary.

    Each line is split on its first colon. Lines without a colon are ignored.
    """
    lines = header_block.replace("\r\n", "\n").split("\n")[1:]

    pairs = []
    for line in lines:
        key, separator, value = line.partition(":")
        if separator:
            pairs.append((key, value))

    return normalize_headers(pairs)


def parse_status_line(header_block: str) -> int:
    """Return the status code from the first line of a header block, or 0."""
    match = STATUS_LINE_PATTERN.match(header_block.strip())
    return int(match.group(1)) if match else 0


def decode_body(text: str, return_assoc: bool = False) -> Any:
    """
    Decode a JSON body.

    Args:
        text: Raw body text.
        return_assoc: True for plain dicts/lists, False for objects with
                      attribute access (nested all the way down).

    Returns:
        The decoded value, or None when the text is empty or not JSON.
    """
    if not text or not text.strip():
        return None

    try:
        if return_assoc:
            return json.loads(text)
        return json.loads(text, object_hook=lambda obj: SimpleNamespace(**obj))
    except ValueError:
        return None


def classify_error(text: str, status: int, response: Optional[Response] = None) -> ApiError:
    """
    Build the exception matching an error response.

    Args:
        text: Raw error body.
        status: HTTP status of the response.
        response: The Response to attach to the exception.

    Returns:
        The ApiError subclass selected by the body shape. The caller raises it.
    """
    parsed = decode_body(text, return_assoc=True)
    details = {'url': response.url} if response is not None else {}

    if isinstance(parsed, dict):
        error = parsed.get('error')
        if isinstance(error, dict) and 'message' in error and 'status' in error:
            # Resource API error; its own status overrides the HTTP status
            return StructuredApiError(
                str(error['message']),
                status=_as_status(error['status'], status),
                reason=str(error['reason']) if error.get('reason') is not None else "",
                response=response,
                details=details
            )

        if 'error_description' in parsed:
            # Token endpoint error
            return AuthFlowError(
                str(parsed['error_description']),
                status=status,
                reason=str(parsed.get('error') or ""),
                response=response,
                details=details
            )

    if text:
        return GenericApiError(text, status=status, response=response, details=details)

    return UnknownApiError(UNKNOWN_ERROR_MESSAGE, status=status, response=response, details=details)


def _as_status(value: Any, fallback: int) -> int:
    """Coerce an error-body status to int, falling back to the HTTP status."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback
