"""BotClient -- generic gateway to the Telegram Bot API.

Every Bot API method goes through :meth:`BotClient.call`, which POSTs the
arguments as form fields (multipart when a file is attached) to
``https://api.telegram.org/bot<token>/<method>`` and returns a
:class:`~sdk.result.MethodResult`.  Failed calls are returned, never raised,
and can be reported to one or more operator chats.

HTTP calls use the ``requests`` library.  The typed wrappers and shortcuts
further down are conveniences layered on :meth:`BotClient.call`.
"""

from __future__ import annotations

import contextlib
import dataclasses
import html
import inspect
import json
import logging
import os
import traceback
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import requests
from pydantic import BaseModel

from core.update import UpdateAccessor
from sdk.result import MethodResult

_sdk_logger = logging.getLogger("hookgram.sdk.client")

_SDK_DIR = os.path.dirname(os.path.abspath(__file__))

ChatId = Union[int, str]


@dataclasses.dataclass(frozen=True)
class InputFile:
    """A file to upload: a local path or in-memory bytes.

    *filename* is what Telegram shows to the user; it defaults to the base
    name of the path.
    """

    content: Union[str, bytes]
    filename: Optional[str] = None

    def open(self, stack: contextlib.ExitStack) -> Tuple[str, Any]:
        """Return a ``(filename, body)`` tuple for ``requests`` multipart."""
        if isinstance(self.content, bytes):
            return self.filename or "file", self.content
        handle = stack.enter_context(open(self.content, "rb"))
        return self.filename or os.path.basename(self.content), handle


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_none=True)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _encode_fields(
    arguments: Dict[str, Any], stack: contextlib.ExitStack
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split *arguments* into form fields and multipart files.

    ``None`` values are dropped.  Booleans become ``true``/``false``; dicts,
    lists and pydantic models become JSON strings.
    """
    data: Dict[str, Any] = {}
    files: Dict[str, Any] = {}
    for key, value in arguments.items():
        if value is None:
            continue
        if isinstance(value, InputFile):
            files[key] = value.open(stack)
        elif isinstance(value, bytes):
            files[key] = (key, value)
        elif hasattr(value, "read"):
            files[key] = value
        elif isinstance(value, bool):
            data[key] = "true" if value else "false"
        elif isinstance(value, BaseModel):
            data[key] = value.model_dump_json(exclude_none=True)
        elif isinstance(value, (dict, list, tuple)):
            data[key] = json.dumps(value, ensure_ascii=False, default=_json_default)
        else:
            data[key] = value
    return data, files


class BotClient:
    """Client for the Telegram Bot API.

    Args:
        bot_token: The bot token issued by BotFather.
        report_chats: Chat id, or list of chat ids, that receive a diagnostic
            whenever a call fails.  Reporting is off when empty.
        update: Accessor for the update being handled.  Shortcuts such as
            :meth:`send` and :meth:`reply` and the diagnostics read from it.
        api_url: Bot API server root.
        timeout: Per-request timeout in seconds.
        parse_mode: Default parse mode for shortcuts and diagnostics.
        report_mode: ``"message"`` sends diagnostics to *report_chats*;
            ``"log"`` writes them to the logger instead.
    """

    _DEFAULT_TIMEOUT: float = 10
    _MESSAGE_LIMIT: int = 4096
    _REPORT_JSON_LIMIT: int = 500
    _REPORT_STACK_LIMIT: int = 1000

    def __init__(
        self,
        bot_token: str,
        report_chats: Union[ChatId, List[ChatId], None] = None,
        update: Optional[UpdateAccessor] = None,
        *,
        api_url: str = "https://api.telegram.org",
        timeout: float = _DEFAULT_TIMEOUT,
        parse_mode: Optional[str] = "HTML",
        report_mode: str = "message",
    ) -> None:
        self._bot_token = bot_token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self.update = update if update is not None else UpdateAccessor()
        if report_chats is None or isinstance(report_chats, list):
            self.report_chats: List[ChatId] = list(report_chats or [])
        else:
            self.report_chats = [report_chats]
        self.debug = bool(self.report_chats)
        self.parse_mode = parse_mode
        self.report_mode = report_mode
        self.report_show_data = True
        self.report_show_stack = False
        self.report_obey_level = True
        self.report_max_args_len = 300
        self._quiet_depth = 0

    # ------------------------------------------------------------------
    #  Transport
    # ------------------------------------------------------------------

    def method_url(self, method: str) -> str:
        return f"{self._api_url}/bot{self._bot_token}/{method}"

    def file_url(self, file_path: str) -> str:
        return f"{self._api_url}/file/bot{self._bot_token}/{file_path}"

    def _post(self, method: str, arguments: Dict[str, Any], timeout: Optional[float] = None) -> MethodResult:
        """POST *arguments* to *method* and wrap the response.

        This is the raw transport: it never reports and never raises.
        """
        url = self.method_url(method)
        timeout = timeout or self._timeout
        try:
            with contextlib.ExitStack() as stack:
                data, files = _encode_fields(arguments, stack)
                if files:
                    response = requests.post(url, data=data, files=files, timeout=timeout)
                else:
                    response = requests.post(url, data=data, timeout=timeout)
        except (requests.RequestException, OSError) as exc:
            # The failure itself is reported by call(); the record must not be forwarded again.
            _sdk_logger.error("Bot API request error", extra={"api_method": method, "error": str(exc), "report": True})
            return MethodResult.failure(f"Request failed: {exc}", client=self, method=method)
        return MethodResult(response.text, client=self, method=method)

    def call(
        self, method: str, arguments: Optional[Dict[str, Any]] = None, *, timeout: Optional[float] = None
    ) -> MethodResult:
        """Call any Bot API *method* with *arguments* and return its result.

        The method name is forwarded verbatim; an unknown name comes back as
        the API's own "not found" error.  When the call fails and reporting
        is enabled, a diagnostic goes to the report chats.  *timeout*
        overrides the client timeout for this request.
        """
        result = self._post(method, arguments or {}, timeout)
        if result.ok:
            _sdk_logger.debug("Bot API call ok", extra={"api_method": method})
            return result

        _sdk_logger.warning(
            "Bot API call failed",
            extra={"api_method": method, "error_code": result.error_code, "description": result.description},
        )
        if self.debug and self._report_allowed():
            self._report_failure(method, result)
        return result

    # ------------------------------------------------------------------
    #  Failure reports
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def quiet(self) -> Iterator[None]:
        """Suppress failure reports for calls made inside the block.

        Only honoured while :attr:`report_obey_level` is ``True``.
        """
        self._quiet_depth += 1
        try:
            yield
        finally:
            self._quiet_depth -= 1

    def _report_allowed(self) -> bool:
        return not (self.report_obey_level and self._quiet_depth > 0)

    def _report_failure(self, method: str, result: MethodResult) -> None:
        try:
            text = self.format_report(method, result)
            if self.report_mode == "message":
                self.send_report(text)
            elif self.report_mode == "log":
                _sdk_logger.error(text, extra={"api_method": method, "report": True})
        except Exception as exc:
            _sdk_logger.error(
                "Failed to build or send error report",
                extra={"api_method": method, "error": str(exc), "report": True},
            )

    def send_report(self, text: Any) -> None:
        """Send *text* to every report chat.

        Goes through the raw transport rather than :meth:`call`, so a failing
        report is only logged and can never trigger another report.  Text over
        the message limit is cut and sent without a parse mode, since a cut
        can split a tag or entity.
        """
        if not isinstance(text, str):
            text = json.dumps(text, ensure_ascii=False, indent=2, default=str)
        parse_mode = self.parse_mode
        if len(text) > self._MESSAGE_LIMIT:
            text = text[: self._MESSAGE_LIMIT]
            parse_mode = None
        params: Dict[str, Any] = {
            "parse_mode": parse_mode,
            "disable_web_page_preview": True,
            "text": text,
        }
        for chat_id in self.report_chats:
            params["chat_id"] = chat_id
            sent = self._post("sendMessage", params)
            if not sent.ok:
                _sdk_logger.warning(
                    "Error report not delivered",
                    extra={"chat_id": chat_id, "description": sent.description, "report": True},
                )

    @staticmethod
    def _call_site() -> Tuple[str, int, str]:
        """Return ``(file, line, function)`` of the first frame outside ``sdk``."""
        frame = inspect.currentframe()
        try:
            while frame is not None and os.path.dirname(os.path.abspath(frame.f_code.co_filename)) == _SDK_DIR:
                frame = frame.f_back
            if frame is None:
                return "<unknown>", 0, "<unknown>"
            code = frame.f_code
            return code.co_filename, frame.f_lineno, getattr(code, "co_qualname", code.co_name)
        finally:
            del frame

    def format_report(self, method: str, result: MethodResult) -> str:
        """Build the diagnostic text for a failed call of *method*."""
        html_mode = (self.parse_mode or "").lower() == "html"
        escape = html.escape if html_mode else str
        filename, lineno, function = self._call_site()
        text = escape(
            f"{result.json[: self._REPORT_JSON_LIMIT]}\n\n"
            f"Error thrown by the method {method}, in {filename} on line {lineno}, "
            f"while calling {function}"
        )
        if self.report_show_data:
            text += "\n\n" + self._describe_update(html_mode)
        if self.report_show_stack:
            stack = "".join(traceback.format_stack()[:-2])
            text += "\n\n" + escape(stack[-self._REPORT_STACK_LIMIT :])
        return text

    def _describe_update(self, html_mode: bool) -> str:
        """Summarise the update being handled: excerpt, sender, chat, type."""
        kind = self.update.get_update_type()
        body = self.update.get_data().get(kind) if kind else None
        if not isinstance(body, dict):
            body = {}
        limit = self.report_max_args_len

        excerpt = kind
        for key in ("data", "query", "text", "caption", "result_id"):
            if isinstance(body.get(key), str):
                excerpt = body[key][:limit]
                break

        sender = body.get("from") if isinstance(body.get("from"), dict) else {}
        sender_id = sender.get("id")
        sender_name = (sender.get("first_name") or "")[:limit]
        message = body.get("message") if isinstance(body.get("message"), dict) else {}
        chat = body.get("chat") or message.get("chat")
        message_id = body.get("message_id") or message.get("message_id")

        if html_mode:
            text = html.escape(f'"{excerpt}", ')
            if sender_id:
                text += f"sent by <a href='tg://user?id={sender_id}'>{html.escape(sender_name)}</a>, "
        else:
            text = f'"{excerpt}", '
            if sender_id:
                text += f"sent by {sender_id} ({sender_name}), "
        if isinstance(chat, dict):
            mention = self._chat_mention(chat, sender_id, sender_name, message_id, html_mode)
            text += f"in {chat.get('id')} ({mention})."
        return text + f" Update type: '{kind}'."

    @staticmethod
    def _chat_mention(
        chat: Dict[str, Any],
        sender_id: Optional[int],
        sender_name: str,
        message_id: Optional[int],
        html_mode: bool,
    ) -> str:
        username = chat.get("username")
        if not html_mode:
            return f"@{username}" if username else (chat.get("title") or "")
        if chat.get("type") == "private":
            if username:
                return f"@{username}"
            return f"<a href='tg://user?id={sender_id}'>{html.escape(sender_name)}</a>"
        if username:
            return f"<a href='https://t.me/{username}/{message_id}'>@{username}</a>"
        return f"<i>{html.escape(chat.get('title') or '')}</i>"

    # ------------------------------------------------------------------
    #  Typed wrappers
    # ------------------------------------------------------------------

    def get_me(self) -> MethodResult:
        """A simple method for testing the bot's auth token."""
        return self.call("getMe")

    def get_updates(
        self,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        timeout: Optional[int] = None,
        allowed_updates: Optional[List[str]] = None,
    ) -> MethodResult:
        """Receive incoming updates using long polling.

        The HTTP timeout is stretched past the long-poll *timeout*.
        """
        http_timeout = max(self._timeout, timeout + 5) if timeout else None
        return self.call("getUpdates", {
            "offset": offset,
            "limit": limit,
            "timeout": timeout,
            "allowed_updates": allowed_updates,
        }, timeout=http_timeout)

    def send_message(
        self,
        chat_id: ChatId,
        text: str,
        parse_mode: Optional[str] = None,
        reply_markup: Optional[Union[str, Dict[str, Any], BaseModel]] = None,
        reply_to_message_id: Optional[int] = None,
        disable_web_page_preview: Optional[bool] = None,
        **extra: Any,
    ) -> MethodResult:
        """Send a text message."""
        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": parse_mode,
            "reply_markup": reply_markup,
            "reply_to_message_id": reply_to_message_id,
            "disable_web_page_preview": disable_web_page_preview,
        }
        payload.update(extra)
        return self.call("sendMessage", payload)

    def edit_message_text(
        self,
        text: str,
        chat_id: Optional[ChatId] = None,
        message_id: Optional[int] = None,
        inline_message_id: Optional[str] = None,
        parse_mode: Optional[str] = None,
        reply_markup: Optional[Union[str, Dict[str, Any], BaseModel]] = None,
        **extra: Any,
    ) -> MethodResult:
        """Edit the text of a message sent by the bot or via the bot (inline)."""
        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "message_id": message_id,
            "inline_message_id": inline_message_id,
            "text": text,
            "parse_mode": parse_mode,
            "reply_markup": reply_markup,
        }
        payload.update(extra)
        return self.call("editMessageText", payload)

    def delete_message(self, chat_id: ChatId, message_id: int) -> MethodResult:
        return self.call("deleteMessage", {"chat_id": chat_id, "message_id": message_id})

    def forward_message(self, chat_id: ChatId, from_chat_id: ChatId, message_id: int, **extra: Any) -> MethodResult:
        payload: Dict[str, Any] = {"chat_id": chat_id, "from_chat_id": from_chat_id, "message_id": message_id}
        payload.update(extra)
        return self.call("forwardMessage", payload)

    def send_document(
        self,
        chat_id: ChatId,
        document: Union[str, InputFile, bytes, Any],
        caption: Optional[str] = None,
        **extra: Any,
    ) -> MethodResult:
        """Send a file by file_id / URL, or upload an :class:`InputFile`."""
        payload: Dict[str, Any] = {"chat_id": chat_id, "document": document, "caption": caption}
        payload.update(extra)
        return self.call("sendDocument", payload)

    def send_chat_action(self, chat_id: ChatId, action: str) -> MethodResult:
        return self.call("sendChatAction", {"chat_id": chat_id, "action": action})

    def answer_callback_query(
        self,
        callback_query_id: str,
        text: Optional[str] = None,
        show_alert: Optional[bool] = None,
        **extra: Any,
    ) -> MethodResult:
        """Acknowledge a callback query so the button spinner disappears."""
        payload: Dict[str, Any] = {"callback_query_id": callback_query_id, "text": text, "show_alert": show_alert}
        payload.update(extra)
        return self.call("answerCallbackQuery", payload)

    def get_file(self, file_id: str) -> MethodResult:
        return self.call("getFile", {"file_id": file_id})

    def get_chat(self, chat_id: ChatId) -> MethodResult:
        return self.call("getChat", {"chat_id": chat_id})

    def get_chat_member(self, chat_id: ChatId, user_id: int) -> MethodResult:
        return self.call("getChatMember", {"chat_id": chat_id, "user_id": user_id})

    # ------------------------------------------------------------------
    #  Shortcuts for the current update
    # ------------------------------------------------------------------

    def _defaults(self, **base: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "chat_id": self.update.chat_id,
            "parse_mode": self.parse_mode,
            "disable_web_page_preview": True,
        }
        payload.update(base)
        return payload

    def send(self, text: str, **params: Any) -> MethodResult:
        """Send *text* to the current chat; *params* override the defaults."""
        payload = self._defaults(text=text)
        payload.update(params)
        return self.call("sendMessage", payload)

    def reply(self, text: str, **params: Any) -> MethodResult:
        """Reply to the current message."""
        payload = self._defaults(reply_to_message_id=self.update.message_id)
        payload.update(params)
        payload["text"] = text
        return self.call("sendMessage", payload)

    def edit(self, text: str, **params: Any) -> MethodResult:
        """Edit the current message (e.g. the one holding a pressed button)."""
        payload = self._defaults(message_id=self.update.message_id)
        payload.update(params)
        payload["text"] = text
        return self.call("editMessageText", payload)

    def action(self, action: str = "typing", **params: Any) -> MethodResult:
        """Send a chat action (``typing``, ``upload_document``, …) to the current chat."""
        payload: Dict[str, Any] = {"chat_id": self.update.chat_id, "action": action}
        payload.update(params)
        return self.call("sendChatAction", payload)

    def doc(self, document: str, **params: Any) -> MethodResult:
        """Send a document to the current chat.

        *document* is uploaded when it names an existing local file and is
        passed through as a file_id or URL otherwise.
        """
        if os.path.isfile(document):
            document = InputFile(document)
        with self.quiet():
            self.action("upload_document")
        payload = self._defaults(document=document)
        payload.pop("disable_web_page_preview")
        payload.update(params)
        return self.call("sendDocument", payload)

    # ------------------------------------------------------------------
    #  Chat helpers
    # ------------------------------------------------------------------

    def chat(self, chat_id: Optional[ChatId] = None) -> Optional[Dict[str, Any]]:
        """Return the Chat object for *chat_id* (default: current chat), or ``None``."""
        with self.quiet():
            info = self.get_chat(chat_id if chat_id is not None else self.update.chat_id)
        return info.result if info.ok else None

    def mention(self, user_id: int, parse_mode: str = "html") -> str:
        """Return ``@username``, or an inline mention link when there is none.

        Falls back to the bare id when the user cannot be looked up.
        """
        info = self.chat(user_id)
        if not info or not info.get("first_name"):
            return str(user_id)
        if info.get("username"):
            return f"@{info['username']}"
        if parse_mode.lower() == "html":
            return f"<a href='tg://user?id={user_id}'>{html.escape(info['first_name'])}</a>"
        return f"[{info['first_name']}](tg://user?id={user_id})"

    def _member_status(self, user_id: Optional[int], chat_id: Optional[ChatId]) -> Optional[str]:
        with self.quiet():
            member = self.get_chat_member(chat_id, user_id)
        if not member.ok:
            return None
        return member.get("status")

    def in_chat(self, user_id: int, chat_id: ChatId) -> bool:
        """Return ``True`` if *user_id* is a current member of *chat_id*."""
        status = self._member_status(user_id, chat_id)
        return status is not None and status not in ("left", "kicked")

    def is_admin(self, user_id: Optional[int] = None, chat_id: Optional[ChatId] = None) -> bool:
        """Return ``True`` if the user administers the chat (defaults: current sender and chat)."""
        if user_id is None:
            user_id = self.update.user_id
        if chat_id is None:
            chat_id = self.update.chat_id
        return self._member_status(user_id, chat_id) in ("administrator", "creator")

    # ------------------------------------------------------------------
    #  Files
    # ------------------------------------------------------------------

    def _resolve_file_path(self, file_id: str) -> Optional[str]:
        info = self.get_file(file_id)
        file_path = info.get("file_path")
        if not info.ok or not file_path:
            _sdk_logger.warning("getFile failed", extra={"file_id": file_id, "description": info.description})
            return None
        return file_path

    def _fetch(self, file_path: str) -> Optional[bytes]:
        try:
            response = requests.get(self.file_url(file_path), timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            _sdk_logger.error("File download error", extra={"file_path": file_path, "error": str(exc)})
            return None
        return response.content

    def read_file(self, file_id: str) -> Optional[bytes]:
        """Return the content of a file hosted by Telegram, or ``None``.

        The Bot API only serves files up to 20 MB; larger files fail at
        ``getFile``.
        """
        file_path = self._resolve_file_path(file_id)
        if file_path is None:
            return None
        return self._fetch(file_path)

    def download_file(self, file_id: str, local_path: Optional[str] = None) -> Optional[int]:
        """Save a Telegram-hosted file locally and return the bytes written.

        *local_path* defaults to the remote file's base name in the working
        directory.  Returns ``None`` when the file cannot be fetched.
        """
        file_path = self._resolve_file_path(file_id)
        if file_path is None:
            return None
        content = self._fetch(file_path)
        if content is None:
            return None
        target = local_path or os.path.basename(file_path)
        with open(target, "wb") as fh:
            fh.write(content)
        _sdk_logger.info("File downloaded", extra={"file_id": file_id, "local_path": target, "size": len(content)})
        return len(content)

    # ------------------------------------------------------------------
    #  Webhook reply
    # ------------------------------------------------------------------

    @staticmethod
    def respond_webhook(method: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """Return the JSON body that makes Telegram run *method* as the webhook reply.

        The host web server writes this string as its HTTP response with
        ``Content-Type: application/json``.
        """
        payload = {key: value for key, value in (arguments or {}).items() if value is not None}
        payload["method"] = method
        return json.dumps(payload, ensure_ascii=False, default=_json_default)


# ── Default client ───────────────────────────────────────────────────────────

_default_client: BotClient | None = None


def get_default_client() -> BotClient:
    """Return (and lazily create) a client configured from :mod:`config`."""
    global _default_client
    if _default_client is None:
        from config import API_URL, BOT_TOKEN, PARSE_MODE, REPORT_CHATS, REPORT_MODE, REQUEST_TIMEOUT

        if not BOT_TOKEN:
            raise EnvironmentError("BOT_TOKEN environment variable is not set or is empty.")
        _default_client = BotClient(
            BOT_TOKEN,
            report_chats=REPORT_CHATS,
            api_url=API_URL,
            timeout=REQUEST_TIMEOUT,
            parse_mode=PARSE_MODE,
            report_mode=REPORT_MODE,
        )
    return _default_client
