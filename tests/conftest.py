"""
Shared fixtures for the rates watcher tests.
"""

import threading
import time
from unittest.mock import Mock

import pytest

from infrastructure.providers import ExchangeRateProvider

NOK_RATES = {"SEK": 1.02, "DKK": 0.69, "USD": 0.091, "EUR": 0.086}

# Generous upper bound for waiting on background threads
WAIT_TIMEOUT = 5


@pytest.fixture
def rate_source():
    """Mock rate source returning NOK-based rates"""
    source = Mock(spec=ExchangeRateProvider)
    source.name = "mock"
    source.fetch_latest_rates.return_value = dict(NOK_RATES)
    return source


@pytest.fixture
def nok_rates():
    """The rates the mock rate source returns"""
    return dict(NOK_RATES)


class RecordingListener:
    """Listener that records every snapshot and signals each delivery"""

    def __init__(self):
        self.calls = []
        self.delivered = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, rates):
        with self._lock:
            self.calls.append(rates)
        self.delivered.set()

    def wait_for_calls(self, count: int, timeout: float = WAIT_TIMEOUT) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            with self._lock:
                if len(self.calls) >= count:
                    return True
            time.sleep(0.01)
        return False


@pytest.fixture
def listener():
    return RecordingListener()
