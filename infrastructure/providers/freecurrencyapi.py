import logging
from collections.abc import Set
from datetime import datetime

import httpx

from domain.exceptions.rates import SourceRejection, TransportFailure

logger = logging.getLogger(__name__)


class FreeCurrencyAPIProvider:
    """Latest exchange rates from https://freecurrencyapi.com/.

    Without a base currency the API answers relative to USD; without a
    currency list it answers with every currency it supports.
    """

    BASE_URL = "https://api.freecurrencyapi.com/v1"
    LATEST_ENDPOINT = "latest"

    def __init__(
        self,
        api_key: str,
        client: httpx.Client | None = None,
        timeout: float = 5.0,
        base_url: str | None = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"apikey": api_key, "accept": "application/json"},
        )

    @property
    def name(self) -> str:
        return "freecurrencyapi.com"

    def _build_params(self, base_currency: str | None, currencies: Set[str] | None) -> dict[str, str]:
        params = {}
        if base_currency:
            params["base_currency"] = base_currency
        if currencies:
            params["currencies"] = ",".join(sorted(currencies))
        return params

    def _request(self, endpoint: str, params: dict[str, str]) -> httpx.Response:
        url = f"{self.base_url}/{endpoint}"
        start_time = datetime.now()
        try:
            response = self._client.get(url, params=params)
        except httpx.RequestError as e:
            logger.warning(f"{self.name} request to {endpoint} failed: {e.__class__.__name__}: {e}")
            raise TransportFailure(f"{self.name} request failed: {e.__class__.__name__}: {e}") from e

        response_time_ms = int((datetime.now() - start_time).total_seconds() * 1000)
        message = f"Request returned with status {response.status_code} {response.reason_phrase}"
        extra = {
            "extra_data": {
                "provider": self.name,
                "endpoint": endpoint,
                "status_code": response.status_code,
                "response_time_ms": response_time_ms,
            }
        }
        if response.status_code < 300:
            logger.info(message, extra=extra)
        else:
            logger.warning(message, extra=extra)
        return response

    def _parse_rates(self, response: httpx.Response) -> dict[str, float]:
        rejection = SourceRejection(response.status_code, response.reason_phrase, response.text)
        if response.status_code >= 300:
            raise rejection

        try:
            payload = response.json()
        except ValueError as e:
            raise rejection from e

        if isinstance(payload, dict) and "data" in payload:
            payload = payload["data"]
        if not isinstance(payload, dict):
            raise rejection

        rates = {}
        for currency, value in payload.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise rejection
            if not value > 0:
                raise rejection
            rates[currency] = float(value)
        return rates

    def fetch_latest_rates(
        self, base_currency: str | None = None, currencies: Set[str] | None = None
    ) -> dict[str, float]:
        response = self._request(self.LATEST_ENDPOINT, self._build_params(base_currency, currencies))
        return self._parse_rates(response)

    def close(self) -> None:
        self._client.close()
