import logging
import contextvars
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

# Correlation id shared by every log line emitted while serving one caller operation
request_id_context = contextvars.ContextVar('request_id', default=None)


class RequestAwareLogger:
    """
    A logger wrapper that stamps every record with the current request ID.

    Callers do not pass the ID around; it is read from ``request_id_context``
    unless an explicit ``request_id`` keyword is given.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.name = name

    def _log_with_context(self, level: int, msg: str, *args, **kwargs):
        request_id = kwargs.pop('request_id', None) or request_id_context.get()

        if request_id:
            extra = kwargs.get('extra', {})
            extra['request_id'] = request_id
            kwargs['extra'] = extra

        self.logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log_with_context(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log_with_context(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log_with_context(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log_with_context(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        self._log_with_context(logging.ERROR, msg, *args, **kwargs, exc_info=True)


def get_logger(name: str) -> RequestAwareLogger:
    """
    Get a request-aware logger for the specified name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        RequestAwareLogger: A logger that automatically includes request context
    """
    return RequestAwareLogger(name)


def set_request_context(request_id: str):
    """Set the request ID in the current context."""
    request_id_context.set(request_id)


def get_request_context() -> Optional[str]:
    return request_id_context.get()


def clear_request_context():
    request_id_context.set(None)


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a request ID for the duration of a block.

    A new UUID4 is generated when none is supplied. The previous value is
    restored on exit so scopes can nest.

    Usage:
        with request_scope() as request_id:
            await create_post(db, user_id, data)
    """
    request_id = request_id or str(uuid.uuid4())
    token = request_id_context.set(request_id)
    try:
        yield request_id
    finally:
        request_id_context.reset(token)
