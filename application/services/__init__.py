from .error_policy import FetchErrorPolicy
from .listener_registry import ListenerRegistry, RatesUpdateListener
from .rates_manager import RatesManager, ScheduleHandle

__all__ = ['FetchErrorPolicy', 'ListenerRegistry', 'RatesManager', 'RatesUpdateListener', 'ScheduleHandle']
