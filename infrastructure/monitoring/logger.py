import json
import logging
import sys
import traceback
from collections.abc import Mapping
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path


class CustomJSONEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, datetime):
            return o.isoformat()
        if isinstance(o, (set, frozenset)):
            return sorted(o)
        if isinstance(o, Mapping):
            return dict(o)
        return super().default(o)


class JSONFormatter(logging.Formatter):
    """
    Formatter that writes one JSON object per record.

    Structured fields passed as ``extra={"extra_data": {...}}`` end up under
    the ``data`` key.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'thread': record.threadName,
        }

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if hasattr(record, 'extra_data'):
            log_entry['data'] = record.extra_data

        return json.dumps(log_entry, ensure_ascii=False, cls=CustomJSONEncoder)


class AppLogger:
    """
    Logging setup for the worker process: console output plus rotating JSON
    files for everything and for warnings and above.
    """
    def __init__(self,
                 log_directory: str = "logs",
                 console_level: str = "INFO",
                 file_level: str = "DEBUG",
                 log_to_file: bool = True,
                 max_file_size: int = 10 * 1024 * 1024,
                 backup_count: int = 5):
        self.log_directory = Path(log_directory)
        self.console_level = getattr(logging, console_level.upper())
        self.file_level = getattr(logging, file_level.upper())
        self.log_to_file = log_to_file
        self.max_file_size = max_file_size
        self.backup_count = backup_count

    def setup(self, root_logger: logging.Logger | None = None) -> logging.Logger:
        root_logger = root_logger or logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(logging.DEBUG)

        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

        self._setup_console_handler(root_logger)
        if self.log_to_file:
            self.log_directory.mkdir(parents=True, exist_ok=True)
            self._setup_file_handler(root_logger, "system", "app.log", self.file_level)
            self._setup_file_handler(root_logger, "errors", "errors.log", logging.WARNING)
        return root_logger

    def _setup_console_handler(self, logger: logging.Logger) -> None:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.console_level)
        console_format = '%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s'
        console_formatter = logging.Formatter(console_format, datefmt='%H:%M:%S')
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    def _setup_file_handler(self, logger: logging.Logger, subdirectory: str,
                            filename: str, level: int) -> None:
        log_dir = self.log_directory / subdirectory
        log_dir.mkdir(exist_ok=True)

        file_handler = RotatingFileHandler(
            log_dir / filename,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)


def configure_logging(settings) -> logging.Logger:
    """Configure the root logger from application settings."""
    return AppLogger(
        log_directory=settings.LOG_DIRECTORY,
        console_level=settings.LOG_LEVEL,
        log_to_file=settings.LOG_TO_FILE,
    ).setup()
