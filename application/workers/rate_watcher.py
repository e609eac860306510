import logging
import signal
import sys
import threading
from collections.abc import Mapping

from application.services import RatesManager
from config.settings import Settings, get_settings
from domain.exceptions.rates import RatesException
from infrastructure.monitoring.logger import configure_logging

logger = logging.getLogger(__name__)


def log_rates(rates: Mapping[str, float]) -> None:
    """Default listener: write every snapshot to the log."""
    base = getattr(rates, 'base_currency', None) or 'default base'
    formatted = ', '.join(f'{code}={rate:g}' for code, rate in sorted(rates.items()))
    logger.info(f'Rates updated ({base}): {formatted}', extra={'extra_data': {'rates': dict(rates)}})


def run(settings: Settings, shutdown: threading.Event) -> None:
    """Watch rates until ``shutdown`` is set."""
    with RatesManager.from_settings(settings) as manager:
        manager.add_listener(log_rates)
        manager.start(settings.UPDATE_INTERVAL, settings.interval_unit)
        shutdown.wait()
        manager.stop(wait=True)


def main() -> None:
    """Entry point for the rate watcher worker."""
    settings = get_settings()
    configure_logging(settings)

    logger.info("=" * 60)
    logger.info(f"{settings.APP_NAME.upper()} STARTING")
    logger.info("=" * 60)
    logger.info(f"Base currency: {settings.BASE_CURRENCY or 'provider default'}")
    logger.info(f"Currencies: {sorted(settings.currency_set) or 'all available'}")
    logger.info(f"Update interval: {settings.UPDATE_INTERVAL} {settings.UPDATE_INTERVAL_UNIT}")
    logger.info("=" * 60)

    shutdown = threading.Event()

    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}, shutting down gracefully...")
        shutdown.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        run(settings, shutdown)
    except RatesException as e:
        logger.error(f"Invalid rate watcher configuration: {e}")
        sys.exit(1)
    logger.info("Rate watcher stopped")


if __name__ == "__main__":
    main()
