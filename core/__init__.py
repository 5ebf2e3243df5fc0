"""Core helpers — update access, delivery guard, logging and error reports.

This package is framework-agnostic. It must NEVER import from ``bot/`` or ``sdk/``.
"""

from core.guard import DeliveryGuard
from core.logger import HookgramLogger
from core.report_handler import ReportHandler
from core.update import UpdateAccessor

__all__ = [
    "DeliveryGuard",
    "HookgramLogger",
    "ReportHandler",
    "UpdateAccessor",
]
