"""MethodResult — decoded response of one Bot API call.

A thin key/value container over the JSON body.  Lookups check the top level
first and then fall back into the ``result`` object, so ``res.get("message_id")``
works on the response of ``sendMessage`` without unwrapping it by hand.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from sdk.exceptions import APIException

if TYPE_CHECKING:
    from sdk.client import BotClient


class MethodResult:
    """Result of a single :meth:`sdk.client.BotClient.call`.

    Attributes:
        json: Raw response text exactly as received.
        data: Decoded response body (always a dict).
        method: Name of the Bot API method that produced this result.
    """

    def __init__(
        self,
        raw: str,
        client: Optional["BotClient"] = None,
        method: Optional[str] = None,
    ) -> None:
        self.method = method
        self._client = client
        self._load(raw)

    def _load(self, raw: str) -> None:
        self.json = raw
        try:
            decoded = json.loads(raw) if raw else None
        except ValueError:
            decoded = None
        if not isinstance(decoded, dict):
            decoded = {"ok": False, "description": "Response body is not a JSON object"}
        self.data: Dict[str, Any] = decoded

    @classmethod
    def failure(
        cls,
        description: str,
        client: Optional["BotClient"] = None,
        method: Optional[str] = None,
    ) -> "MethodResult":
        """Build an ``ok=false`` result for a call that never got an API answer."""
        raw = json.dumps({"ok": False, "description": description}, ensure_ascii=False)
        return cls(raw, client=client, method=method)

    # ------------------------------------------------------------------
    #  Lookup
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return *key* from the top level, else from ``result``, else *default*."""
        value = self.data.get(key)
        if value is None:
            nested = self.data.get("result")
            if isinstance(nested, dict):
                value = nested.get(key)
        return default if value is None else value

    def has(self, key: str) -> bool:
        """Return ``True`` if :meth:`get` would find a non-null value for *key*."""
        return self.get(key) is not None

    def __getitem__(self, key: str) -> Any:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    @property
    def ok(self) -> bool:
        return bool(self.data.get("ok", False))

    @property
    def result(self) -> Any:
        return self.data.get("result")

    @property
    def description(self) -> Optional[str]:
        return self.data.get("description")

    @property
    def error_code(self) -> Optional[int]:
        return self.data.get("error_code")

    @property
    def parameters(self) -> Optional[Dict[str, Any]]:
        return self.data.get("parameters")

    def raise_for_error(self) -> "MethodResult":
        """Raise :class:`APIException` if the call failed, else return ``self``."""
        if not self.ok:
            raise APIException(self.error_code, self.data, method=self.method)
        return self

    def __str__(self) -> str:
        return self.json

    def __repr__(self) -> str:
        return f"MethodResult(method={self.method!r}, ok={self.ok})"

    # ------------------------------------------------------------------
    #  Message shortcuts
    # ------------------------------------------------------------------

    def _message_ref(self) -> Optional[tuple]:
        """Return ``(chat_id, message_id)`` when this result holds a message."""
        if self._client is None:
            return None
        chat = self.get("chat")
        message_id = self.get("message_id")
        if not isinstance(chat, dict) or chat.get("id") is None or message_id is None:
            return None
        return chat["id"], message_id

    def edit(self, text: str, **params: Any) -> Optional["MethodResult"]:
        """Replace the text of the message this result describes.

        On success this object is reloaded with the edited message.
        """
        ref = self._message_ref()
        if ref is None:
            return None
        chat_id, message_id = ref
        payload: Dict[str, Any] = {"chat_id": chat_id, "message_id": message_id, "disable_web_page_preview": True}
        payload.update(params)
        payload["text"] = text
        edited = self._client.call("editMessageText", payload)
        if edited.ok:
            self._load(edited.json)
        return edited

    def append(self, text: str, **params: Any) -> Optional["MethodResult"]:
        """Append *text* to the current text of the message."""
        if self._message_ref() is None:
            return None
        return self.edit(f"{self.get('text', '')}{text}", **params)

    def reply(self, text: str, **params: Any) -> Optional["MethodResult"]:
        """Send *text* as a reply to the message."""
        ref = self._message_ref()
        if ref is None:
            return None
        chat_id, message_id = ref
        payload: Dict[str, Any] = {"chat_id": chat_id, "reply_to_message_id": message_id, "disable_web_page_preview": True}
        payload.update(params)
        payload["text"] = text
        return self._client.call("sendMessage", payload)

    def delete(self, **params: Any) -> Optional["MethodResult"]:
        """Delete the message."""
        ref = self._message_ref()
        if ref is None:
            return None
        chat_id, message_id = ref
        payload: Dict[str, Any] = {"chat_id": chat_id, "message_id": message_id}
        payload.update(params)
        return self._client.call("deleteMessage", payload)

    def forward(
        self, chat_id: Union[int, str, List[Union[int, str]]], **params: Any
    ) -> Union["MethodResult", List["MethodResult"], None]:
        """Forward the message to *chat_id*, or to every id in a list.

        Returns one result for a single target and a list for several.
        """
        ref = self._message_ref()
        if ref is None:
            return None
        from_chat_id, message_id = ref
        targets = chat_id if isinstance(chat_id, list) else [chat_id]
        results = []
        for target in targets:
            payload: Dict[str, Any] = {"from_chat_id": from_chat_id, "message_id": message_id}
            payload.update(params)
            payload["chat_id"] = target
            results.append(self._client.call("forwardMessage", payload))
        return results if isinstance(chat_id, list) else results[0]
