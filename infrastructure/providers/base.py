from collections.abc import Set
from typing import Protocol, runtime_checkable


@runtime_checkable
class ExchangeRateProvider(Protocol):
    """Anything that can synchronously fetch the latest rates.

    Implementations raise ``TransportFailure`` when the source cannot be
    reached and ``SourceRejection`` when it answers without usable rates.
    """

    @property
    def name(self) -> str:
        ...

    def fetch_latest_rates(
        self, base_currency: str | None = None, currencies: Set[str] | None = None
    ) -> dict[str, float]:
        ...

    def close(self) -> None:
        ...
