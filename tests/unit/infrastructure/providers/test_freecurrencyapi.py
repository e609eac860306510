# nosec B101


import pytest
from unittest.mock import Mock
import httpx

from infrastructure.providers import ExchangeRateProvider
from infrastructure.providers.freecurrencyapi import FreeCurrencyAPIProvider
from domain.exceptions.rates import SourceRejection, TransportFailure


def make_response(status_code=200, json_data=None, text='', reason_phrase='OK', json_error=None):
    response = Mock(spec=httpx.Response)
    response.status_code = status_code
    response.reason_phrase = reason_phrase
    response.text = text
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def mock_client():
    return Mock(spec=httpx.Client)


@pytest.fixture
def provider(mock_client):
    return FreeCurrencyAPIProvider(api_key='test_key', client=mock_client)


# ============================================================================
# TEST: fetch_latest_rates() - Success Scenarios
# ============================================================================

def test_fetch_latest_rates_success_unwraps_data(provider, mock_client):
    mock_client.get.return_value = make_response(json_data={
        'data': {'SEK': 1.02, 'DKK': 0.69, 'USD': 0.091, 'EUR': 0.086}
    })

    rates = provider.fetch_latest_rates('NOK', {'SEK', 'DKK', 'USD', 'EUR'})

    assert rates == {'SEK': 1.02, 'DKK': 0.69, 'USD': 0.091, 'EUR': 0.086}
    mock_client.get.assert_called_once()
    call_args = mock_client.get.call_args
    assert call_args[0][0] == 'https://api.freecurrencyapi.com/v1/latest'
    assert call_args[1]['params'] == {'base_currency': 'NOK', 'currencies': 'DKK,EUR,SEK,USD'}


def test_fetch_latest_rates_without_options_sends_no_params(provider, mock_client):
    mock_client.get.return_value = make_response(json_data={'data': {'EUR': 0.92}})

    provider.fetch_latest_rates()

    assert mock_client.get.call_args[1]['params'] == {}


def test_fetch_latest_rates_accepts_payload_without_data_key(provider, mock_client):
    mock_client.get.return_value = make_response(json_data={'EUR': 1, 'GBP': 0.79})

    rates = provider.fetch_latest_rates('USD')

    assert rates == {'EUR': 1.0, 'GBP': 0.79}
    assert all(isinstance(rate, float) for rate in rates.values())


def test_default_client_sends_api_key_header():
    provider = FreeCurrencyAPIProvider(api_key='secret', timeout=3)
    try:
        assert provider._client.headers['apikey'] == 'secret'
        assert provider._client.timeout.read == 3
    finally:
        provider.close()


def test_custom_base_url(mock_client):
    provider = FreeCurrencyAPIProvider(api_key='k', client=mock_client, base_url='http://localhost:8080/v1/')
    mock_client.get.return_value = make_response(json_data={'data': {}})

    provider.fetch_latest_rates()

    assert mock_client.get.call_args[0][0] == 'http://localhost:8080/v1/latest'


def test_provider_satisfies_protocol(provider):
    assert isinstance(provider, ExchangeRateProvider)
    assert provider.name == 'freecurrencyapi.com'


# ============================================================================
# TEST: fetch_latest_rates() - Failure Scenarios
# ============================================================================

def test_fetch_latest_rates_http_429_is_rejection(provider, mock_client):
    body = '{"message": "API rate limit exceeded"}'
    mock_client.get.return_value = make_response(
        status_code=429, reason_phrase='Too Many Requests', text=body
    )

    with pytest.raises(SourceRejection) as exc_info:
        provider.fetch_latest_rates('USD')

    assert exc_info.value.status_code == 429
    assert exc_info.value.status_text == 'Too Many Requests'
    assert exc_info.value.raw_body == body


def test_fetch_latest_rates_http_500_is_rejection(provider, mock_client):
    mock_client.get.return_value = make_response(
        status_code=500, reason_phrase='Internal Server Error', text='oops'
    )

    with pytest.raises(SourceRejection) as exc_info:
        provider.fetch_latest_rates()

    assert '500' in str(exc_info.value)


def test_fetch_latest_rates_invalid_json_is_rejection(provider, mock_client):
    mock_client.get.return_value = make_response(text='<html>', json_error=ValueError('Invalid JSON'))

    with pytest.raises(SourceRejection) as exc_info:
        provider.fetch_latest_rates()

    assert exc_info.value.status_code == 200
    assert exc_info.value.raw_body == '<html>'


@pytest.mark.parametrize('payload', [
    ['EUR', 'USD'],
    {'data': {'EUR': 'not-a-number'}},
    {'data': {'EUR': None}},
    {'data': {'EUR': True}},
    {'data': {'EUR': 0}},
    {'data': {'EUR': -1.5, 'USD': 1.0}},
    {'data': {'EUR': float('nan')}},
])
def test_fetch_latest_rates_unexpected_payload_is_rejection(provider, mock_client, payload):
    mock_client.get.return_value = make_response(json_data=payload)

    with pytest.raises(SourceRejection):
        provider.fetch_latest_rates()


def test_fetch_latest_rates_network_timeout(provider, mock_client):
    mock_client.get.side_effect = httpx.ReadTimeout('Request timed out')

    with pytest.raises(TransportFailure) as exc_info:
        provider.fetch_latest_rates()

    assert 'request failed' in str(exc_info.value).lower()
    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)


def test_fetch_latest_rates_connection_error(provider, mock_client):
    mock_client.get.side_effect = httpx.ConnectError('Connection refused')

    with pytest.raises(TransportFailure):
        provider.fetch_latest_rates()


def test_close_closes_client(provider, mock_client):
    provider.close()

    mock_client.close.assert_called_once()
