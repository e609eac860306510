import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from domain.exceptions.rates import InvalidArgumentError

CURRENCY_CODE_PATTERN = re.compile(r'^[A-Z]{3}$')


def normalize_currency_code(code: str) -> str:
    normalized = code.strip().upper()
    if not CURRENCY_CODE_PATTERN.match(normalized):
        raise InvalidArgumentError(f'Invalid currency code: {code!r} (must be 3 letters)')
    return normalized


class TimeUnit(Enum):
    MILLISECONDS = 'milliseconds'
    SECONDS = 'seconds'
    MINUTES = 'minutes'
    HOURS = 'hours'
    DAYS = 'days'

    @property
    def seconds(self) -> float:
        return _SECONDS_PER_UNIT[self]

    def to_seconds(self, value: float) -> float:
        return value * self.seconds

    @classmethod
    def parse(cls, name: 'str | TimeUnit') -> 'TimeUnit':
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError as e:
            raise InvalidArgumentError(f'Unknown time unit: {name!r}') from e


_SECONDS_PER_UNIT = {
    TimeUnit.MILLISECONDS: 0.001,
    TimeUnit.SECONDS: 1.0,
    TimeUnit.MINUTES: 60.0,
    TimeUnit.HOURS: 3600.0,
    TimeUnit.DAYS: 86400.0,
}


@dataclass(frozen=True)
class ManagerConfig:
    """Which rates a manager asks for.

    ``base_currency=None`` lets the source use its native default base and
    ``currencies=None`` asks for every currency the source knows about.
    """

    base_currency: str | None = None
    currencies: frozenset[str] | None = None

    @classmethod
    def from_options(
        cls, base_currency: str | None = None, currencies: Iterable[str] | None = None
    ) -> 'ManagerConfig':
        base = None
        if base_currency is not None and base_currency.strip():
            base = normalize_currency_code(base_currency)

        if isinstance(currencies, str):
            currencies = currencies.split(',')
        codes = frozenset(normalize_currency_code(c) for c in currencies or () if c and c.strip())

        return cls(base_currency=base, currencies=codes or None)


class RateSnapshot(Mapping[str, float]):
    """Read-only currency -> rate mapping produced by one successful fetch."""

    __slots__ = ('_rates', 'base_currency', 'fetched_at')

    def __init__(
        self,
        rates: Mapping[str, float],
        base_currency: str | None = None,
        fetched_at: datetime | None = None,
    ):
        object.__setattr__(self, '_rates', {code: float(rate) for code, rate in rates.items()})
        object.__setattr__(self, 'base_currency', base_currency)
        object.__setattr__(self, 'fetched_at', fetched_at or datetime.now(UTC))

    def __getitem__(self, code: str) -> float:
        return self._rates[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rates)

    def __len__(self) -> int:
        return len(self._rates)

    def __setattr__(self, name, value):
        raise AttributeError(f'{type(self).__name__} is immutable')

    def __repr__(self) -> str:
        return f'RateSnapshot(base={self.base_currency!r}, rates={self._rates!r})'

    def as_dict(self) -> dict[str, float]:
        return dict(self._rates)
