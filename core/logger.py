"""HookgramLogger — Singleton JSON logger with console and rotating file output.

Every module obtains the same ``hookgram`` logger, which writes one JSON
object per line to stdout and to ``logs/hookgram.log``.
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional


class _JsonFormatter(logging.Formatter):
    """Render a log record as a single-line JSON object.

    The fixed keys are timestamp, level, logger, message, module and
    func_name.  Keys passed through ``extra`` are copied in as-is, which is
    how call sites attach API context::

        logger.warning(
            "API call failed",
            extra={"api_method": "sendMessage", "error_code": 400},
        )
    """

    _BUILTIN_ATTRS: frozenset[str] = frozenset(vars(logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None,
    )))

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func_name": record.funcName,
        }

        for key, value in record.__dict__.items():
            if key not in self._BUILTIN_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def _env_level() -> int:
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


class HookgramLogger:
    """Process-wide logger with a console handler and a rotating file handler.

    Usage::

        from core.logger import HookgramLogger

        logger = HookgramLogger.get_logger()
        logger.info("Webhook received", extra={"update_id": 42})
    """

    _instance: Optional["HookgramLogger"] = None
    _logger: Optional[logging.Logger] = None

    _LOG_FILE: str = "hookgram.log"
    _MAX_BYTES: int = 5 * 1024 * 1024  # 5 MB
    _BACKUP_COUNT: int = 5

    def __new__(cls, level: Optional[int] = None) -> "HookgramLogger":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_logger(level if level is not None else _env_level())
        return cls._instance

    def _init_logger(self, level: int) -> None:
        """Create the ``hookgram`` logger and attach both handlers once."""
        self._logger = logging.getLogger("hookgram")
        self._logger.setLevel(level)

        if self._logger.handlers:
            return

        formatter = _JsonFormatter()

        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        log_dir = os.environ.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        log_path = os.path.join(log_dir, self._LOG_FILE)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=self._MAX_BYTES,
            backupCount=self._BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)

    @staticmethod
    def get_logger(level: Optional[int] = None) -> logging.Logger:
        """Return the shared :class:`logging.Logger`.

        The *level* only matters on the very first call; it defaults to the
        ``LOG_LEVEL`` environment variable, then ``INFO``.  Log files go to
        ``LOG_DIR`` (default ``logs``).
        """
        instance = HookgramLogger(level)
        assert instance._logger is not None
        return instance._logger

    def cleanup(self) -> None:
        """Flush and close every handler attached to the logger."""
        if self._logger is None:
            return
        for handler in list(self._logger.handlers):
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)
