"""Example bot application layer — webhook entry, polling loop, command handlers.

This package may import from ``core/``, ``sdk/`` and ``config`` only.
"""

from bot.dispatcher import handle_webhook, process_update, run
from bot.handlers import (
    handle_callback_query,
    handle_help,
    handle_hide,
    handle_keyboard,
    handle_start,
)

__all__ = [
    # Dispatcher
    "run",
    "process_update",
    "handle_webhook",
    # Command handlers
    "handle_start",
    "handle_help",
    "handle_keyboard",
    "handle_hide",
    # Callback handlers
    "handle_callback_query",
]
