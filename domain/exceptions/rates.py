class RatesException(Exception):
    pass


class InvalidArgumentError(RatesException, ValueError):
    pass


class AlreadyRunningError(RatesException):
    pass


class NotRunningError(RatesException):
    pass


class RateSourceError(RatesException):
    """Base class for failures raised by a rate source during a fetch."""

    kind = 'rate_source_error'


class TransportFailure(RateSourceError):
    """The rate source could not be reached (timeout, connection error, ...)."""

    kind = 'transport_failure'


class SourceRejection(RateSourceError):
    """The rate source answered, but not with a usable rate payload."""

    kind = 'source_rejection'

    def __init__(self, status_code: int, status_text: str, raw_body: str):
        self.status_code = status_code
        self.status_text = status_text
        self.raw_body = raw_body
        super().__init__(f'Response status: {status_code} {status_text} | Response data: {raw_body}')
