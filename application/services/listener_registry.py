import logging
import threading
from collections.abc import Callable, Mapping

# Any callable taking the rates; bound methods such as ``obj.on_update`` qualify.
RatesUpdateListener = Callable[[Mapping[str, float]], None]


class ListenerRegistry:
	"""Set of rate listeners, safe to modify while a notification pass runs."""

	def __init__(self, logger: logging.Logger | None = None):
		self.logger = logger or logging.getLogger(__name__)
		self._listeners: set[RatesUpdateListener] = set()
		self._lock = threading.Lock()

	def add_listener(self, listener: RatesUpdateListener) -> RatesUpdateListener:
		if not callable(listener):
			raise TypeError(f'Listener must be callable, got {type(listener).__name__}')
		with self._lock:
			self._listeners.add(listener)
		return listener

	def notify_all(self, rates: Mapping[str, float]) -> int:
		"""Call every listener with ``rates``; returns how many succeeded.

		Listeners run on the calling thread, one after another. A listener that
		raises is logged and skipped.
		"""
		with self._lock:
			listeners = list(self._listeners)

		delivered = 0
		for listener in listeners:
			try:
				listener(rates)
			except Exception:
				self.logger.exception(
					f'Rates listener {listener!r} failed',
					extra={'extra_data': {'listener': repr(listener)}},
				)
			else:
				delivered += 1
		return delivered

	def __len__(self) -> int:
		with self._lock:
			return len(self._listeners)

	def __contains__(self, listener: object) -> bool:
		with self._lock:
			return listener in self._listeners
