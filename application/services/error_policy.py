import logging

from domain.exceptions.rates import SourceRejection, TransportFailure


class FetchErrorPolicy:
	"""Logs failed fetch cycles and swallows the error so the schedule keeps going."""

	def __init__(self, logger: logging.Logger | None = None):
		self.logger = logger or logging.getLogger(__name__)

	def handle(self, error: Exception) -> None:
		if isinstance(error, SourceRejection):
			self.logger.warning(
				f'A request for updating rates was rejected: '
				f'{error.status_code} {error.status_text} | body: {error.raw_body}',
				extra={'extra_data': {
					'kind': error.kind,
					'status_code': error.status_code,
					'status_text': error.status_text,
					'raw_body': error.raw_body,
				}},
			)
		elif isinstance(error, TransportFailure):
			self.logger.warning(
				f'Updating rates failed due to a transport error: {error}',
				extra={'extra_data': {'kind': error.kind, 'message': str(error)}},
			)
		else:
			self.logger.error(
				f'Updating rates failed unexpectedly: {error}',
				exc_info=(type(error), error, error.__traceback__),
				extra={'extra_data': {'kind': 'unexpected', 'error_type': type(error).__name__}},
			)
