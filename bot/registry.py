"""Generic command registry — single source of truth for command → handler mapping.

Handlers are plain functions registered with ``@registry.register`` in
:mod:`bot.handlers`; the dispatcher looks commands up here instead of
maintaining its own if/elif chain, and ``/help`` lists the same entries.

Design:
- ``CommandHandler`` is a :class:`Protocol` describing the handler signature
  ``(client, update) -> None``.
- ``CommandRegistry`` is a singleton that stores ``CommandEntry`` metadata and
  exposes lookup / iteration helpers.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Protocol, runtime_checkable

from core.update import UpdateAccessor
from sdk.client import BotClient

# ── Handler protocol ─────────────────────────────────────────────────────────

@runtime_checkable
class CommandHandler(Protocol):
    """Handler invoked with the client and the accessor of the current update."""
    def __call__(self, client: BotClient, update: UpdateAccessor) -> None: ...  # noqa: E704


# ── Registry entry ───────────────────────────────────────────────────────────

@dataclasses.dataclass(frozen=True, slots=True)
class CommandEntry:
    """Metadata for a single registered slash-command."""
    command: str              # e.g. "/start"
    description: str          # shown in /help
    handler: CommandHandler


# ── Registry ─────────────────────────────────────────────────────────────────

class CommandRegistry:
    """Singleton command registry.

    Usage::

        @registry.register("/ping", description="Ping")
        def handle_ping(client, update): ...

        # In the dispatcher:
        registry.dispatch("/ping", client, update)
    """

    _instance: CommandRegistry | None = None
    _entries: dict[str, CommandEntry]

    def __new__(cls) -> CommandRegistry:
        if cls._instance is None:
            inst = super().__new__(cls)
            inst._entries = {}
            cls._instance = inst
        return cls._instance

    # ── decorator ────────────────────────────────────────────────────────

    def register(self, command: str, *, description: str) -> Callable[[Any], Any]:
        """Decorator that registers the decorated function for *command*."""
        def decorator(func: CommandHandler) -> CommandHandler:
            self._entries[command] = CommandEntry(command=command, description=description, handler=func)
            return func
        return decorator

    # ── lookup helpers ───────────────────────────────────────────────────

    def get(self, command: str) -> CommandEntry | None:
        """Return the entry for *command*, or ``None``."""
        return self._entries.get(command)

    def entries(self) -> dict[str, CommandEntry]:
        """Return a copy of all registered commands."""
        return dict(self._entries)

    def dispatch(self, command: str, client: BotClient, update: UpdateAccessor) -> bool:
        """Look up *command* and invoke its handler.

        Returns ``True`` if a handler was found and called, ``False`` otherwise.
        """
        entry = self._entries.get(command)
        if entry is None:
            return False
        entry.handler(client, update)
        return True


# Module-level singleton, import this everywhere.
registry = CommandRegistry()
