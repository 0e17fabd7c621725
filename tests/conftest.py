"""Test configuration and fixtures"""

import json
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from urllib3._collections import HTTPHeaderDict

from tidal_api.api.client import TidalApi
from tidal_api.auth.session import Session
from tidal_api.transport.request import Request


def make_http_response(status=200, body=None, headers=None, url='https://openapi.tidal.com/', raw_headers=None):
    """
    Build a real requests.Response as the HTTP layer would return it

    raw_headers is a list of (name, value) pairs as received on the wire;
    they back response.raw and are folded into response.headers the way
    requests does it.
    """
    if body is None:
        text = ''
    elif isinstance(body, str):
        text = body
    else:
        text = json.dumps(body)

    response = requests.Response()
    response.status_code = status
    response._content = text.encode('utf-8')
    response.headers = CaseInsensitiveDict(headers or {})
    response.encoding = 'utf-8'
    response.url = url

    if raw_headers is not None:
        wire_headers = HTTPHeaderDict()
        for name, value in raw_headers:
            wire_headers.add(name, value)
        response.raw = SimpleNamespace(headers=wire_headers)
        response.headers = CaseInsensitiveDict(wire_headers)

    return response


@pytest.fixture
def http_response():
    """Factory for fake HTTP responses"""
    return make_http_response


@pytest.fixture
def http():
    """requests.Session whose request() is a Mock (no network)"""
    session = requests.Session()
    session.request = Mock(return_value=make_http_response(body={}))
    return session


@pytest.fixture
def transport(http):
    """Request using the mocked HTTP session"""
    return Request(http=http)


@pytest.fixture
def session(transport):
    """Session with a confidential client and a stored token pair"""
    tidal_session = Session('client-id', 'client-secret', 'https://example.com/callback', request=transport)
    tidal_session.access_token = 'old-access'
    tidal_session.refresh_token = 'stored-refresh'
    return tidal_session


@pytest.fixture
def api(session, transport):
    """Facade sharing the mocked transport with the session"""
    return TidalApi({'return_assoc': True}, session, transport)


@pytest.fixture
def expired_token_body():
    return {'error': {'message': 'The access token expired', 'status': 401}}


@pytest.fixture
def album_document():
    """JSON:API document for an album with an included artist"""
    return {
        'data': {
            'id': '251380836',
            'type': 'albums',
            'attributes': {'title': 'Test Album', 'numberOfItems': 12},
            'relationships': {
                'artists': {
                    'data': [{'id': '1566', 'type': 'artists'}],
                    'links': {'self': '/albums/251380836/relationships/artists'},
                },
                'items': {'links': {'self': '/albums/251380836/relationships/items'}},
            },
            'links': {'self': '/albums/251380836'},
        },
        'included': [
            {'id': '1566', 'type': 'artists', 'attributes': {'name': 'Test Artist'}},
        ],
        'links': {'self': '/albums/251380836?countryCode=US'},
    }
