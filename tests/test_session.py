"""Test OAuth2 session, grants and PKCE helpers"""

import base64
import re
from unittest.mock import patch

import pytest

from tidal_api.auth.pkce import (
    PKCEMaterial,
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
)
from tidal_api.auth.session import Session
from tidal_api.core.exceptions import AuthFlowError, RandomSourceError


HEX = re.compile(r'^[0-9a-f]+$')

BASIC_AUTH = 'Basic ' + base64.b64encode(b'client-id:client-secret').decode('ascii')


class TestPKCE:
    """Test PKCE and state generation"""

    def test_state_length_and_charset(self):
        """Test state is exactly 16 lower-case hex characters"""
        state = generate_state(16)

        assert len(state) == 16
        assert HEX.match(state)

    def test_odd_state_length(self):
        """Test odd lengths are honoured exactly"""
        assert len(generate_state(7)) == 7

    def test_state_values_differ(self):
        """Test successive values are not repeated"""
        assert generate_state() != generate_state()

    def test_invalid_state_length(self):
        """Test non-positive lengths are rejected"""
        with pytest.raises(ValueError):
            generate_state(0)

    def test_code_verifier(self):
        """Test verifier is exactly 128 hex characters"""
        verifier = generate_code_verifier(128)

        assert len(verifier) == 128
        assert HEX.match(verifier)

    @pytest.mark.parametrize("length", [42, 129])
    def test_code_verifier_bounds(self, length):
        """Test lengths outside 43-128 are rejected"""
        with pytest.raises(ValueError):
            generate_code_verifier(length)

    def test_code_challenge(self):
        """Test challenge is deterministic, URL-safe and unpadded"""
        challenge = generate_code_challenge("abc")

        assert challenge == generate_code_challenge("abc")
        assert challenge == "ungWv48Bz-pBQUDeXa4iI7ADYaOWF3qctBD_YfIAFa0"
        assert not set("+/=") & set(challenge)

    def test_code_challenge_other_algorithm(self):
        """Test the hash algorithm is configurable"""
        assert generate_code_challenge("abc", "sha512") != generate_code_challenge("abc")

    @patch('tidal_api.auth.pkce.secrets.token_hex', side_effect=NotImplementedError("no entropy"))
    def test_random_source_unavailable(self, mock_token_hex):
        """Test missing entropy is fatal"""
        with pytest.raises(RandomSourceError):
            generate_state()

    def test_pkce_material(self):
        """Test generated material is consistent"""
        material = PKCEMaterial.generate()

        assert material.code_challenge == generate_code_challenge(material.code_verifier)
        assert material.authorize_options(['user.read']) == {
            'code_challenge': material.code_challenge,
            'code_challenge_method': 'S256',
            'state': material.state,
            'scope': ['user.read'],
        }


class TestAuthorizeUrl:
    """Test authorization URL building"""

    def test_full_url(self, session):
        """Test parameter order and encoding"""
        url = session.get_authorize_url({
            'code_challenge': 'challenge',
            'scope': ['user.read', 'collection.read'],
            'state': 'xyz',
        })

        assert url == (
            'https://login.tidal.com/authorize?response_type=code&client_id=client-id'
            '&redirect_uri=https%3A%2F%2Fexample.com%2Fcallback'
            '&scope=user.read+collection.read&code_challenge=challenge'
            '&code_challenge_method=S256&state=xyz'
        )

    def test_optional_values_omitted(self, session):
        """Test scope and state are left out when not given"""
        url = session.get_authorize_url({'code_challenge': 'c', 'code_challenge_method': 'plain'})

        assert 'scope=' not in url
        assert 'state=' not in url
        assert url.endswith('code_challenge=c&code_challenge_method=plain')

    def test_single_scope_string(self, session):
        """Test a scope string is not split into characters"""
        url = session.get_authorize_url({'code_challenge': 'c', 'scope': 'user.read'})

        assert 'scope=user.read&' in url

    def test_code_challenge_required(self, session):
        """Test a missing challenge is rejected"""
        with pytest.raises(ValueError):
            session.get_authorize_url({'scope': ['user.read']})


class TestGrants:
    """Test token grants"""

    @patch('tidal_api.auth.session.time.time', return_value=1000)
    def test_request_access_token(self, mock_time, session, http, http_response):
        """Test the authorization code grant stores both tokens"""
        http.request.return_value = http_response(200, {
            'access_token': 'new-access',
            'refresh_token': 'new-refresh',
            'expires_in': 3600,
            'scope': 'user.read collection.read',
        })

        assert session.request_access_token('auth-code', 'verifier') is True

        args, kwargs = http.request.call_args
        assert args == ('POST', 'https://auth.tidal.com/v1/oauth2/token')
        assert kwargs['data'] == (
            'client_id=client-id&code=auth-code&grant_type=authorization_code'
            '&redirect_uri=https%3A%2F%2Fexample.com%2Fcallback&code_verifier=verifier'
        )
        assert session.access_token == 'new-access'
        assert session.refresh_token == 'new-refresh'
        assert session.token_expiration == 4600
        assert session.scope == ['user.read', 'collection.read']

    def test_request_access_token_missing_access_token(self, session, http, http_response):
        """Test a response without access_token leaves state unchanged"""
        http.request.return_value = http_response(200, {'refresh_token': 'new-refresh'})

        assert session.request_access_token('auth-code', 'verifier') is False

        assert session.access_token == 'old-access'
        assert session.refresh_token == 'stored-refresh'
        assert session.token_expiration == 0

    def test_request_access_token_requires_refresh_token(self, session, http, http_response):
        """Test the code grant also needs a refresh token"""
        http.request.return_value = http_response(200, {'access_token': 'new-access'})

        assert session.request_access_token('auth-code') is False
        assert session.access_token == 'old-access'

    def test_request_credentials_token(self, session, http, http_response):
        """Test the client credentials grant uses Basic auth"""
        http.request.return_value = http_response(200, {'access_token': 'app-token', 'expires_in': 60})

        assert session.request_credentials_token() is True

        _, kwargs = http.request.call_args
        assert kwargs['data'] == 'grant_type=client_credentials'
        assert kwargs['headers']['Authorization'] == BASIC_AUTH
        assert session.access_token == 'app-token'
        assert session.scope == []

    def test_request_credentials_token_failure(self, session, http, http_response):
        """Test a non-object body returns False"""
        http.request.return_value = http_response(200, '[]')

        assert session.request_credentials_token() is False
        assert session.access_token == 'old-access'

    def test_refresh_keeps_stored_refresh_token(self, session, http, http_response):
        """Test refreshing with the stored token"""
        http.request.return_value = http_response(200, {'access_token': 'new-access', 'expires_in': 60})

        assert session.refresh_access_token() is True

        _, kwargs = http.request.call_args
        assert kwargs['data'] == 'grant_type=refresh_token&refresh_token=stored-refresh'
        assert kwargs['headers']['Authorization'] == BASIC_AUTH
        assert session.access_token == 'new-access'
        assert session.refresh_token == 'stored-refresh'

    def test_refresh_rotated_token(self, session, http, http_response):
        """Test a rotated refresh token replaces the stored one"""
        http.request.return_value = http_response(200, {'access_token': 'a', 'refresh_token': 'rotated'})

        assert session.refresh_access_token() is True
        assert session.refresh_token == 'rotated'

    def test_refresh_adopts_given_token(self, transport, http, http_response):
        """Test a public client adopts the refresh token it was given"""
        public = Session('client-id', request=transport)
        http.request.return_value = http_response(200, {'access_token': 'a'})

        assert public.refresh_access_token('given-refresh') is True

        _, kwargs = http.request.call_args
        assert 'Authorization' not in kwargs['headers']
        assert public.refresh_token == 'given-refresh'

    def test_refresh_failure(self, session, http, http_response):
        """Test a refresh response without access_token"""
        http.request.return_value = http_response(200, {})

        assert session.refresh_access_token() is False
        assert session.access_token == 'old-access'

    def test_grant_error_propagates(self, session, http, http_response):
        """Test token endpoint errors raise instead of returning False"""
        http.request.return_value = http_response(
            400, {'error': 'invalid_grant', 'error_description': 'Invalid refresh token'}
        )

        with pytest.raises(AuthFlowError) as exc_info:
            session.refresh_access_token()

        assert exc_info.value.has_invalid_refresh_token()
        assert session.access_token == 'old-access'


class TestSessionState:
    """Test credential and token accessors"""

    def test_credentials_replaced(self, session):
        """Test setters replace the frozen credentials"""
        original = session.credentials
        session.client_secret = 'other'

        assert session.client_secret == 'other'
        assert original.client_secret == 'client-secret'

    @patch('tidal_api.auth.session.time.time', return_value=1000)
    def test_is_token_expired(self, mock_time, session):
        """Test expiry check with a buffer"""
        assert session.is_token_expired()

        session.tokens.expiration_time = 1030
        assert not session.is_token_expired()
        assert session.is_token_expired(buffer_seconds=60)
