import contextlib
import logging
import math
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from application.services.error_policy import FetchErrorPolicy
from application.services.listener_registry import ListenerRegistry, RatesUpdateListener
from domain.exceptions.rates import AlreadyRunningError, InvalidArgumentError, NotRunningError
from domain.models.rates import ManagerConfig, RateSnapshot, TimeUnit
from infrastructure.providers import ExchangeRateProvider, FreeCurrencyAPIProvider


def next_tick(origin: float, interval: float, tick: int, now: float) -> tuple[int, float]:
	"""Return ``(tick, delay)`` for the cycle after ``tick`` on a fixed-rate grid.

	Tick ``k`` is due at ``origin + k * interval``. When a cycle overran past
	several ticks, only the latest missed one fires, immediately.
	"""
	tick += 1
	behind = int((now - origin) // interval)
	if behind > tick:
		tick = behind
	return tick, max(0.0, origin + tick * interval - now)


@dataclass
class ScheduleHandle:
	interval: float
	cancelled: threading.Event = field(default_factory=threading.Event)
	thread: threading.Thread | None = None
	started_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class RatesManager:
	"""
	Periodically fetches the latest exchange rates and hands them to listeners.

	The first fetch happens as soon as ``start`` is called, then every interval
	on a fixed-rate schedule driven by one background thread. Failed fetches are
	logged by the error policy and the schedule carries on.
	"""

	def __init__(
		self,
		rate_source: ExchangeRateProvider,
		config: ManagerConfig | None = None,
		logger: logging.Logger | None = None,
		error_policy: FetchErrorPolicy | None = None,
		owns_rate_source: bool = False,
	):
		self.rate_source = rate_source
		self.config = config or ManagerConfig()
		self.logger = logger or logging.getLogger(__name__)
		self.listeners = ListenerRegistry(logger=self.logger)
		self.error_policy = error_policy or FetchErrorPolicy(logger=self.logger)
		self._owns_rate_source = owns_rate_source

		self._lock = threading.Lock()  # guards _schedule
		self._cycle_lock = threading.Lock()  # one cycle at a time
		self._cycle_owner: int | None = None  # thread ident holding _cycle_lock
		self._schedule: ScheduleHandle | None = None
		self.cycle_count = 0

	@classmethod
	def from_api_key(
		cls,
		api_key: str,
		base_currency: str | None = None,
		currencies: Iterable[str] | None = None,
		timeout: float = 5.0,
		base_url: str | None = None,
		logger: logging.Logger | None = None,
	) -> 'RatesManager':
		if not api_key or not api_key.strip():
			raise InvalidArgumentError('An API key is required')

		config = ManagerConfig.from_options(base_currency, currencies)
		provider = FreeCurrencyAPIProvider(api_key.strip(), timeout=timeout, base_url=base_url)
		return cls(provider, config=config, logger=logger, owns_rate_source=True)

	@classmethod
	def from_settings(cls, settings, logger: logging.Logger | None = None) -> 'RatesManager':
		return cls.from_api_key(
			settings.FREECURRENCYAPI_API_KEY,
			base_currency=settings.BASE_CURRENCY,
			currencies=settings.currency_set,
			timeout=settings.REQUEST_TIMEOUT,
			base_url=settings.FREECURRENCYAPI_BASE_URL,
			logger=logger,
		)

	@property
	def is_running(self) -> bool:
		with self._lock:
			return self._schedule is not None

	def add_listener(self, listener: RatesUpdateListener) -> RatesUpdateListener:
		return self.listeners.add_listener(listener)

	def update_rates(self) -> RateSnapshot | None:
		"""Run one fetch-and-notify cycle on the calling thread."""
		with self._cycle():
			return self._run_cycle()

	@contextlib.contextmanager
	def _cycle(self):
		with self._cycle_lock:
			self._cycle_owner = threading.get_ident()
			try:
				yield
			finally:
				self._cycle_owner = None

	def _run_cycle(self) -> RateSnapshot | None:
		self.cycle_count += 1
		try:
			rates = self.rate_source.fetch_latest_rates(self.config.base_currency, self.config.currencies)
			snapshot = RateSnapshot(rates, base_currency=self.config.base_currency)
		except Exception as e:
			self.error_policy.handle(e)
			return None

		delivered = self.listeners.notify_all(snapshot)
		self.logger.debug(
			f'Rates cycle #{self.cycle_count}: {len(snapshot)} rates delivered to {delivered} listeners',
			extra={'extra_data': {'cycle': self.cycle_count, 'rates': len(snapshot), 'listeners': delivered}},
		)
		return snapshot

	def _run(self, schedule: ScheduleHandle) -> None:
		origin = time.monotonic()
		tick = 0
		while True:
			with self._cycle():
				with self._lock:
					if schedule.cancelled.is_set():
						break
				self._run_cycle()

			tick, delay = next_tick(origin, schedule.interval, tick, time.monotonic())
			if schedule.cancelled.wait(delay):
				break
		self.logger.debug('Rates update worker exited')

	def start(self, interval: float, unit: TimeUnit | str = TimeUnit.SECONDS) -> None:
		"""
		Start fetching rates every ``interval`` ``unit``s, beginning now.

		Raises:
			InvalidArgumentError: If the interval is not a positive number of
				at most ``threading.TIMEOUT_MAX`` seconds
			AlreadyRunningError: If this manager is already running
		"""
		if isinstance(interval, bool) or not isinstance(interval, (int, float)):
			raise InvalidArgumentError(f'Interval must be a number, got {interval!r}')
		try:
			seconds = TimeUnit.parse(unit).to_seconds(interval)
		except OverflowError as e:
			raise InvalidArgumentError(f'Interval is too large: {interval} {unit}') from e
		if not seconds > 0:
			raise InvalidArgumentError(f'Interval must be positive, got {interval} {unit}')
		if not math.isfinite(seconds) or seconds > threading.TIMEOUT_MAX:
			raise InvalidArgumentError(f'Interval is too large: {interval} {unit}')

		with self._lock:
			if self._schedule is not None:
				raise AlreadyRunningError('This RatesManager is already running')

			schedule = ScheduleHandle(interval=seconds)
			schedule.thread = threading.Thread(
				target=self._run, args=(schedule,), name='rates-manager', daemon=True
			)
			self._schedule = schedule
			schedule.thread.start()

		self.logger.info(
			f'Rates manager started, updating every {seconds:g}s',
			extra={'extra_data': {
				'interval_seconds': seconds,
				'base_currency': self.config.base_currency,
				'currencies': self.config.currencies,
			}},
		)

	def stop(self, wait: bool = False) -> None:
		"""
		Stop fetching rates. An update already in progress finishes and its
		listeners are still notified, but no further update begins.

		Raises:
			NotRunningError: If this manager is already stopped
		"""
		with self._lock:
			if self._schedule is None:
				raise NotRunningError('This RatesManager is already stopped')
			schedule, self._schedule = self._schedule, None
			schedule.cancelled.set()

		running_for = datetime.now(UTC) - schedule.started_at
		self.logger.info(f'Rates manager stopped after {running_for.total_seconds():.1f}s')

		# joining from a listener would wait on a worker that needs our cycle lock
		if wait and schedule.thread is not threading.current_thread() and self._cycle_owner != threading.get_ident():
			schedule.thread.join()

	def close(self) -> None:
		if self.is_running:
			with contextlib.suppress(NotRunningError):
				self.stop(wait=True)
		if self._owns_rate_source:
			self.rate_source.close()

	def __enter__(self) -> 'RatesManager':
		return self

	def __exit__(self, exc_type, exc_val, exc_tb) -> None:
		self.close()
