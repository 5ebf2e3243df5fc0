"""ReportHandler — forward ERROR log records to the operator chats.

Attach it to the project logger so that unexpected exceptions raised while
handling an update reach the same chats as failed API calls::

    client = get_default_client()
    HookgramLogger.get_logger().addHandler(ReportHandler(client))

The handler only needs an object with a ``send_report(text)`` method and an
optional ``update`` accessor, so this module stays independent of ``sdk``.
"""

import html
import logging
import threading
from typing import Any, Protocol


class _Reporter(Protocol):
    def send_report(self, text: Any) -> None: ...  # noqa: E704


class ReportHandler(logging.Handler):
    """Send each record at *level* or above through ``reporter.send_report``.

    Records that are themselves failure reports (``extra={"report": True}``)
    are skipped, and so is anything logged while a report is being sent.
    """

    _MESSAGE_LIMIT: int = 1500
    _TRACE_LIMIT: int = 2000

    def __init__(self, reporter: _Reporter, level: int = logging.ERROR) -> None:
        super().__init__(level=level)
        self._reporter = reporter
        self._local = threading.local()

    def _html_mode(self) -> bool:
        return (getattr(self._reporter, "parse_mode", "HTML") or "").lower() == "html"

    def format_record(self, record: logging.LogRecord) -> str:
        """Build the report text for *record*.

        HTML when the reporter's parse mode is HTML, plain text otherwise.
        The message and traceback are cut before escaping.
        """
        html_mode = self._html_mode()
        escape = html.escape if html_mode else str
        message = record.getMessage()[: self._MESSAGE_LIMIT]
        level = f"<b>{record.levelname}</b>" if html_mode else record.levelname
        text = f"{level} in {escape(record.module)}.{escape(record.funcName)}"
        text += f" (line {record.lineno})\n{escape(message)}"

        update = getattr(self._reporter, "update", None)
        update_type = update.get_update_type() if update is not None else None
        if update_type:
            text += f"\n\nWhile handling update {update.update_id} ({escape(update_type)})"
            if update.chat_id is not None:
                text += f" in chat {update.chat_id}"

        if record.exc_info:
            trace = logging.Formatter().formatException(record.exc_info)[-self._TRACE_LIMIT :]
            text += f"\n\n<pre>{html.escape(trace)}</pre>" if html_mode else f"\n\n{trace}"
        return text

    def emit(self, record: logging.LogRecord) -> None:
        if getattr(record, "report", False) or getattr(self._local, "busy", False):
            return
        self._local.busy = True
        try:
            self._reporter.send_report(self.format_record(record))
        except Exception:
            self.handleError(record)
        finally:
            self._local.busy = False
