"""
Transport package: one HTTP call in, one normalized Response (or classified error) out.

Usage:
    from tidal_api.transport import Request

    request = Request({'return_assoc': True})
    response = request.api('GET', '/v2/albums/251380836', {'countryCode': 'US'})
    print(response.status, response.headers.get('content-type'))
"""

from tidal_api.transport.request import Request, build_query, to_query_value
from tidal_api.transport.response import (
    Response,
    classify_error,
    decode_body,
    normalize_headers,
    parse_headers,
    parse_status_line,
    split_response,
)

__all__ = [
    "Request",
    "Response",
    "build_query",
    "to_query_value",
    "split_response",
    "parse_headers",
    "parse_status_line",
    "normalize_headers",
    "decode_body",
    "classify_error",
]
