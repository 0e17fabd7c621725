"""Test the TidalApi facade and its recovery policy"""

from unittest.mock import patch

import pytest
import requests

from tidal_api.api.client import TidalApi
from tidal_api.core.config import ApiConfig, ClientConfig, Config, LoggingConfig
from tidal_api.core.exceptions import (
    GenericApiError,
    RetryExhaustedError,
    StructuredApiError,
    TokenRefreshError,
    TransportError,
    UnknownApiError,
)


class TestOptions:
    """Test option handling"""

    def test_defaults(self):
        """Test default options"""
        api = TidalApi()

        assert api.options == {
            'auto_refresh': False,
            'auto_retry': False,
            'return_assoc': False,
            'max_retries': 3,
            'default_retry_after': 1,
        }

    def test_unknown_option(self):
        """Test unknown options are rejected"""
        with pytest.raises(ValueError):
            TidalApi({'auto_retyr': True})

    def test_negative_max_retries(self):
        """Test max_retries must not be negative"""
        with pytest.raises(ValueError):
            TidalApi().set_options({'max_retries': -1})

    def test_from_config(self):
        """Test the factory wires a shared transport"""
        config = Config(
            client=ClientConfig('client-id', 'secret', 'https://example.com/cb'),
            api=ApiConfig(auto_refresh=True, max_retries=5, timeout=10),
            logging=LoggingConfig(),
        )

        api = TidalApi.from_config(config)

        assert api.session.client_id == 'client-id'
        assert api.session.request is api.request
        assert api.options['auto_refresh'] is True
        assert api.options['max_retries'] == 5
        assert api.request.options['request_options']['timeout'] == 10


class TestAuthorization:
    """Test bearer token selection"""

    def test_session_token_preferred(self, api, http):
        """Test the Session's token wins over a directly set token"""
        api.set_access_token('direct-token')
        api.send_request('GET', '/v2/albums/1')

        _, kwargs = http.request.call_args
        assert kwargs['headers']['Authorization'] == 'Bearer old-access'

    def test_direct_token_without_session(self, transport, http):
        """Test the direct token is used without a Session"""
        api = TidalApi(request=transport).set_access_token('direct-token')
        api.send_request('GET', '/v2/albums/1', headers={'Accept': 'application/vnd.api+json'})

        _, kwargs = http.request.call_args
        assert kwargs['headers'] == {
            'Accept': 'application/vnd.api+json',
            'Authorization': 'Bearer direct-token',
        }

    def test_no_token(self, transport, http):
        """Test no Authorization header without any token"""
        TidalApi(request=transport).send_request('GET', '/v2/providers')

        _, kwargs = http.request.call_args
        assert 'Authorization' not in kwargs['headers']


class TestAutoRefresh:
    """Test expired token recovery"""

    def test_refresh_and_resend_once(self, api, http, http_response, expired_token_body):
        """Test the request is resent exactly once after a successful refresh"""
        api.set_options({'auto_refresh': True})
        http.request.side_effect = [
            http_response(401, expired_token_body),
            http_response(200, {'access_token': 'new-access', 'expires_in': 3600},
                          url='https://auth.tidal.com/v1/oauth2/token'),
            http_response(200, {'data': {'id': '1', 'type': 'albums'}}),
        ]

        body = api.get_album('1', 'US')

        assert body == {'data': {'id': '1', 'type': 'albums'}}
        assert http.request.call_count == 3

        first, refresh, resend = http.request.call_args_list
        assert first.args == resend.args == ('GET', 'https://openapi.tidal.com/v2/albums/1?countryCode=US')
        assert refresh.args == ('POST', 'https://auth.tidal.com/v1/oauth2/token')
        assert first.kwargs['headers']['Authorization'] == 'Bearer old-access'
        assert resend.kwargs['headers']['Authorization'] == 'Bearer new-access'

    def test_refresh_failure(self, api, http, http_response, expired_token_body):
        """Test a refresh that grants no token raises TokenRefreshError"""
        api.set_options({'auto_refresh': True})
        http.request.side_effect = [
            http_response(401, expired_token_body),
            http_response(200, {}),
        ]

        with pytest.raises(TokenRefreshError) as exc_info:
            api.get_album('1', 'US')

        assert exc_info.value.message == "Could not refresh access token."
        assert isinstance(exc_info.value.__cause__, StructuredApiError)

    def test_disabled(self, api, http, http_response, expired_token_body):
        """Test expired tokens propagate when auto_refresh is off"""
        http.request.return_value = http_response(401, expired_token_body)

        with pytest.raises(StructuredApiError) as exc_info:
            api.get_album('1', 'US')

        assert exc_info.value.has_expired_token()
        assert http.request.call_count == 1

    def test_requires_session(self, transport, http, http_response, expired_token_body):
        """Test a directly set token is never refreshed"""
        api = TidalApi({'auto_refresh': True}, request=transport).set_access_token('direct')
        http.request.return_value = http_response(401, expired_token_body)

        with pytest.raises(StructuredApiError):
            api.get_album('1', 'US')

        assert http.request.call_count == 1

    def test_exhausted(self, api, http, http_response, expired_token_body):
        """Test a server that keeps rejecting fresh tokens"""
        api.set_options({'auto_refresh': True, 'max_retries': 2})
        http.request.side_effect = [
            http_response(401, expired_token_body),
            http_response(200, {'access_token': 'a1'}),
            http_response(401, expired_token_body),
            http_response(200, {'access_token': 'a2'}),
            http_response(401, expired_token_body),
        ]

        with pytest.raises(RetryExhaustedError) as exc_info:
            api.get_album('1', 'US')

        assert exc_info.value.attempts == 2
        assert exc_info.value.last_error.has_expired_token()
        assert http.request.call_count == 5


class TestAutoRetry:
    """Test rate limit recovery"""

    @patch('tidal_api.api.client.time.sleep')
    def test_sleep_retry_after(self, mock_sleep, api, http, http_response):
        """Test the caller blocks for retry-after seconds before resending"""
        api.set_options({'auto_retry': True})
        http.request.side_effect = [
            http_response(429, headers={'Retry-After': '2'}),
            http_response(200, {'data': []}),
        ]

        body = api.get_albums('US', {'filter[id]': ['1', '2']})

        assert body == {'data': []}
        mock_sleep.assert_called_once_with(2.0)
        assert http.request.call_count == 2

    @patch('tidal_api.api.client.time.sleep')
    def test_missing_retry_after(self, mock_sleep, api, http, http_response):
        """Test the default delay when retry-after is absent or invalid"""
        api.set_options({'auto_retry': True, 'default_retry_after': 5})
        http.request.side_effect = [
            http_response(429),
            http_response(429, headers={'Retry-After': 'soon'}),
            http_response(200, {}),
        ]

        api.send_request('GET', '/v2/providers')

        assert [call.args for call in mock_sleep.call_args_list] == [(5.0,), (5.0,)]

    @patch('tidal_api.api.client.time.sleep')
    def test_exhausted(self, mock_sleep, api, http, http_response):
        """Test a server that keeps answering 429"""
        api.set_options({'auto_retry': True, 'max_retries': 2})
        http.request.return_value = http_response(429, headers={'Retry-After': '1'})

        with pytest.raises(RetryExhaustedError) as exc_info:
            api.get_providers()

        assert exc_info.value.attempts == 2
        assert isinstance(exc_info.value.__cause__, UnknownApiError)
        assert mock_sleep.call_count == 2
        assert http.request.call_count == 3

    @patch('tidal_api.api.client.time.sleep')
    def test_zero_retries(self, mock_sleep, api, http, http_response):
        """Test max_retries=0 gives up on the first recoverable error"""
        api.set_options({'auto_retry': True, 'max_retries': 0})
        http.request.return_value = http_response(429)

        with pytest.raises(RetryExhaustedError):
            api.get_providers()

        mock_sleep.assert_not_called()

    def test_disabled(self, api, http, http_response):
        """Test 429 propagates when auto_retry is off"""
        http.request.return_value = http_response(429, 'slow down')

        with pytest.raises(GenericApiError) as exc_info:
            api.get_providers()

        assert exc_info.value.is_rate_limited()

    @patch('tidal_api.api.client.time.sleep')
    def test_transport_error_not_retried(self, mock_sleep, api, http):
        """Test network failures are never retried"""
        api.set_options({'auto_retry': True, 'auto_refresh': True})
        http.request.side_effect = requests.Timeout("read timed out")

        with pytest.raises(TransportError):
            api.get_providers()

        assert http.request.call_count == 1
        mock_sleep.assert_not_called()


class TestResponses:
    """Test decoded bodies and last_response"""

    def test_object_mode(self, api, http, http_response):
        """Test bodies decode to objects when return_assoc is off"""
        api.set_options({'return_assoc': False})
        http.request.return_value = http_response(200, {'data': {'attributes': {'title': 'T'}}})

        assert api.get_album('1', 'US').data.attributes.title == 'T'

    def test_send_request_returns_response(self, api, http, http_response):
        """Test each call returns its own Response"""
        http.request.side_effect = [
            http_response(200, {'n': 1}, headers={'X-Call': 'one'}),
            http_response(200, {'n': 2}, headers={'X-Call': 'two'}),
        ]

        first = api.send_request('GET', '/v2/providers')
        second = api.send_request('GET', '/v2/providers')

        assert first.headers['x-call'] == 'one'
        assert second.headers['x-call'] == 'two'
        assert api.last_response is second
