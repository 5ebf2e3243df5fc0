"""UpdateAccessor — short, never-raising lookups over one incoming update.

An update carries ``update_id`` plus exactly one *kind* field (``message``,
``callback_query``, ``inline_query``, …).  Most accessors search the kind
object first and then the ``message`` nested inside it, which is where a
callback query keeps the chat and message id of the button it came from.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Collection, Optional, Union

from core.logger import HookgramLogger

logger = HookgramLogger.get_logger()

Source = Callable[[], Union[str, bytes, None]]


class UpdateAccessor:
    """Wraps one decoded update mapping.

    Args:
        data: The decoded update.  May be omitted when *source* is given.
        source: Zero-argument callable returning the raw request body.  It is
            read at most once, on first access, and only if *data* was not
            supplied.
        nested_fallback: Controls the fallback from ``kind[field]`` to
            ``kind["message"][field]``.  ``True`` applies it to every kind,
            ``False`` disables it, and a collection of kind names applies it
            to those kinds only (e.g. ``{"callback_query"}``).
    """

    def __init__(
        self,
        data: Optional[dict] = None,
        source: Optional[Source] = None,
        nested_fallback: Union[bool, Collection[str]] = True,
    ) -> None:
        self._data: Optional[dict] = None
        self._source = source
        self._update_type: Optional[str] = None
        self.nested_fallback = nested_fallback
        if data is not None:
            self.set_data(data)

    # ------------------------------------------------------------------
    #  Raw data
    # ------------------------------------------------------------------

    def get_data(self) -> dict:
        """Return the held update, reading it from *source* on first use."""
        if self._data is None:
            self.set_data(self._read_source())
        return self._data

    def set_data(self, data: dict) -> None:
        """Replace the held update and recompute its kind."""
        self._data = data if isinstance(data, dict) else {}
        self._update_type = next(
            (key for key in self._data if key != "update_id"), None
        )

    def _read_source(self) -> dict:
        if self._source is None:
            return {}
        raw = self._source()
        if not raw:
            logger.warning("Empty update body")
            return {}
        try:
            decoded = json.loads(raw)
        except ValueError as exc:
            logger.warning("Update body is not valid JSON", extra={"error": str(exc)})
            return {}
        if not isinstance(decoded, dict):
            logger.warning("Update body is not a JSON object", extra={"body_type": type(decoded).__name__})
            return {}
        return decoded

    def get_update_type(self) -> Optional[str]:
        """Return the populated kind field (``"message"``, ``"callback_query"``, …)."""
        self.get_data()
        return self._update_type

    def _falls_back(self, kind: str) -> bool:
        if isinstance(self.nested_fallback, bool):
            return self.nested_fallback
        return kind in self.nested_fallback

    def get_value(self, field: str) -> Any:
        """Look *field* up under the kind object, then under ``kind.message``.

        Returns ``None`` when neither location holds a value.
        """
        kind = self.get_update_type()
        if kind is None:
            return None
        body = self._data.get(kind)
        if not isinstance(body, dict):
            return None
        value = body.get(field)
        if value is None and self._falls_back(kind):
            nested = body.get("message")
            if isinstance(nested, dict):
                value = nested.get(field)
        return value

    def _get_in(self, field: str, key: str) -> Any:
        obj = self.get_value(field)
        return obj.get(key) if isinstance(obj, dict) else None

    # ------------------------------------------------------------------
    #  Field shortcuts
    # ------------------------------------------------------------------

    @property
    def text(self) -> Optional[str]:
        return self.get_value("text")

    @property
    def caption(self) -> Optional[str]:
        return self.get_value("caption")

    @property
    def chat(self) -> Optional[dict]:
        return self.get_value("chat")

    @property
    def chat_id(self) -> Optional[int]:
        return self._get_in("chat", "id")

    @property
    def chat_type(self) -> Optional[str]:
        return self._get_in("chat", "type")

    @property
    def message_id(self) -> Optional[int]:
        return self.get_value("message_id")

    @property
    def date(self) -> Optional[int]:
        return self.get_value("date")

    @property
    def user_id(self) -> Optional[int]:
        return self._get_in("from", "id")

    @property
    def first_name(self) -> Optional[str]:
        return self._get_in("from", "first_name")

    @property
    def last_name(self) -> Optional[str]:
        return self._get_in("from", "last_name")

    @property
    def name(self) -> Optional[str]:
        """First name followed by the last name, when there is one."""
        first_name = self.first_name
        if not first_name:
            return None
        last_name = self.last_name
        return f"{first_name} {last_name}" if last_name else first_name

    @property
    def username(self) -> Optional[str]:
        return self._get_in("from", "username")

    @property
    def language(self) -> Optional[str]:
        return self._get_in("from", "language_code")

    @property
    def reply_to_message(self) -> Optional[dict]:
        return self.get_value("reply_to_message")

    @property
    def location(self) -> Optional[dict]:
        return self.get_value("location")

    @property
    def photo(self) -> Optional[list]:
        return self.get_value("photo")

    @property
    def video(self) -> Optional[dict]:
        return self.get_value("video")

    @property
    def document(self) -> Optional[dict]:
        return self.get_value("document")

    @property
    def forward_from(self) -> Optional[dict]:
        return self.get_value("forward_from")

    @property
    def forward_from_chat(self) -> Optional[dict]:
        return self.get_value("forward_from_chat")

    @property
    def entities(self) -> Optional[list]:
        """Text entities, or caption entities for media messages."""
        entities = self.get_value("entities")
        if entities is None:
            entities = self.get_value("caption_entities")
        return entities

    # Top-level kinds, never looked up under ``message``.

    @property
    def update_id(self) -> Optional[int]:
        return self.get_data().get("update_id")

    @property
    def inline_query(self) -> Optional[dict]:
        return self.get_data().get("inline_query")

    @property
    def chosen_inline_result(self) -> Optional[dict]:
        return self.get_data().get("chosen_inline_result")

    @property
    def shipping_query(self) -> Optional[dict]:
        return self.get_data().get("shipping_query")

    @property
    def pre_checkout_query(self) -> Optional[dict]:
        return self.get_data().get("pre_checkout_query")

    @property
    def callback_query(self) -> Optional[dict]:
        return self.get_data().get("callback_query")

    # ------------------------------------------------------------------
    #  Chat helpers
    # ------------------------------------------------------------------

    def is_group(self) -> bool:
        """Return ``True`` if the current chat is a group or supergroup."""
        return self.chat_type in ("group", "supergroup")

    def is_private(self) -> bool:
        """Return ``True`` if the current chat is a private chat."""
        return self.chat_type == "private"
