import logging

import pytest

from application.services.error_policy import FetchErrorPolicy
from domain.exceptions.rates import SourceRejection, TransportFailure


@pytest.fixture
def policy():
    return FetchErrorPolicy(logger=logging.getLogger('tests.error_policy'))


def test_source_rejection_logged_as_warning_with_details(policy, caplog):
    error = SourceRejection(429, 'Too Many Requests', '{"message": "quota exceeded"}')

    with caplog.at_level(logging.WARNING, logger='tests.error_policy'):
        policy.handle(error)

    assert len(caplog.records) == 1
    record = caplog.records[0]
    assert record.levelno == logging.WARNING
    assert '429 Too Many Requests' in record.getMessage()
    assert 'quota exceeded' in record.getMessage()
    assert record.extra_data == {
        'kind': 'source_rejection',
        'status_code': 429,
        'status_text': 'Too Many Requests',
        'raw_body': '{"message": "quota exceeded"}',
    }


def test_transport_failure_logged_as_warning(policy, caplog):
    with caplog.at_level(logging.WARNING, logger='tests.error_policy'):
        policy.handle(TransportFailure('request failed: ConnectError'))

    record = caplog.records[0]
    assert record.levelno == logging.WARNING
    assert 'transport error' in record.getMessage()
    assert record.extra_data['kind'] == 'transport_failure'


def test_unexpected_error_logged_with_traceback(policy, caplog):
    try:
        raise KeyError('data')
    except KeyError as e:
        error = e

    with caplog.at_level(logging.WARNING, logger='tests.error_policy'):
        policy.handle(error)

    record = caplog.records[0]
    assert record.levelno == logging.ERROR
    assert record.exc_info[1] is error
    assert record.extra_data['error_type'] == 'KeyError'


def test_handle_never_raises(policy):
    assert policy.handle(SourceRejection(500, 'Internal Server Error', '')) is None
    assert policy.handle(TransportFailure('boom')) is None
    assert policy.handle(RuntimeError('bug')) is None
