"""Tests for BotClient: transport, failure reports, wrappers and shortcuts."""

import json
import sys
import os
from unittest.mock import patch, MagicMock

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import sdk.client as client_module
from core.logger import HookgramLogger
from core.report_handler import ReportHandler
from core.update import UpdateAccessor
from sdk.client import BotClient, InputFile

OK_MESSAGE = {
    "ok": True,
    "result": {"message_id": 3, "date": 1, "chat": {"id": 5, "type": "private"}, "text": "hi"},
}
CHAT_NOT_FOUND = {"ok": False, "error_code": 400, "description": "Bad Request: chat not found"}

MESSAGE_UPDATE = {
    "update_id": 1,
    "message": {
        "message_id": 10,
        "date": 1,
        "text": "hi",
        "chat": {"id": 5, "type": "private"},
        "from": {"id": 7, "is_bot": False, "first_name": "Ann"},
    },
}


def _resp(payload: dict) -> MagicMock:
    mock_resp = MagicMock()
    mock_resp.text = json.dumps(payload)
    return mock_resp


def _url(call) -> str:
    return call[0][0]


def _data(call) -> dict:
    return call[1]["data"]


# ── Construction ─────────────────────────────────────────────────────────────


class TestClientInit:
    """Validate client initialisation."""

    def test_method_url(self) -> None:
        c = BotClient("123:abc")
        assert c.method_url("getMe") == "https://api.telegram.org/bot123:abc/getMe"

    def test_api_url_strip(self) -> None:
        c = BotClient("123:abc", api_url="http://localhost:8081/")
        assert c.file_url("docs/a.txt") == "http://localhost:8081/file/bot123:abc/docs/a.txt"

    def test_single_report_chat(self) -> None:
        c = BotClient("t", report_chats=42)
        assert c.report_chats == [42]
        assert c.debug is True

    def test_no_report_chats_disables_debug(self) -> None:
        c = BotClient("t")
        assert c.report_chats == []
        assert c.debug is False

    def test_defaults(self) -> None:
        c = BotClient("t")
        assert c._timeout == 10
        assert c.report_max_args_len == 300
        assert c.report_obey_level is True
        assert c.update.get_data() == {}


# ── Generic call ─────────────────────────────────────────────────────────────


class TestCall:
    """Validate the generic call gateway."""

    @patch("sdk.client.requests.post")
    def test_success(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        res = BotClient("t").call("sendMessage", {"chat_id": 5, "text": "hi"})

        assert res.ok is True
        assert res.get("message_id") == 3
        assert res.method == "sendMessage"
        assert _url(mock_post.call_args) == "https://api.telegram.org/bott/sendMessage"
        assert _data(mock_post.call_args) == {"chat_id": 5, "text": "hi"}

    @patch("sdk.client.requests.post")
    def test_unknown_method_forwarded(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp({"ok": False, "error_code": 404, "description": "Not Found"})
        res = BotClient("t").call("fooBar")
        assert res.ok is False
        assert res.error_code == 404
        assert _url(mock_post.call_args).endswith("/fooBar")

    @patch("sdk.client.requests.post")
    def test_api_error_does_not_raise(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(CHAT_NOT_FOUND)
        res = BotClient("t").call("sendMessage", {"chat_id": 0, "text": "x"})
        assert res.ok is False
        assert res.description == "Bad Request: chat not found"

    @patch("sdk.client.requests.post")
    def test_transport_error_becomes_result(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = requests.ConnectionError("boom")
        res = BotClient("t").call("getMe")
        assert res.ok is False
        assert res.description.startswith("Request failed")
        assert "boom" in res.description

    @patch("sdk.client.requests.post")
    def test_none_values_dropped(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t").send_message(5, "hi")
        assert _data(mock_post.call_args) == {"chat_id": 5, "text": "hi"}

    @patch("sdk.client.requests.post")
    def test_structured_values_encoded(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t").send_message(
            5, "hi",
            reply_markup={"inline_keyboard": [[{"text": "A", "callback_data": "a"}]]},
            disable_web_page_preview=True,
        )
        data = _data(mock_post.call_args)
        assert json.loads(data["reply_markup"]) == {"inline_keyboard": [[{"text": "A", "callback_data": "a"}]]}
        assert data["disable_web_page_preview"] == "true"
        assert "files" not in mock_post.call_args[1]

    @patch("sdk.client.requests.post")
    def test_multipart_only_with_file(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t").send_document(5, InputFile(b"data", "a.txt"), caption="doc")

        kwargs = mock_post.call_args[1]
        assert kwargs["files"] == {"document": ("a.txt", b"data")}
        assert kwargs["data"] == {"chat_id": 5, "caption": "doc"}

    @patch("sdk.client.requests.post")
    def test_upload_from_path(self, mock_post: MagicMock, tmp_path) -> None:
        path = tmp_path / "report.txt"
        path.write_bytes(b"hello")
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t").send_document(5, InputFile(str(path)))

        name, handle = mock_post.call_args[1]["files"]["document"]
        assert name == "report.txt"
        assert handle.closed

    @patch("sdk.client.requests.post")
    def test_missing_upload_file_is_failure(self, mock_post: MagicMock, tmp_path) -> None:
        res = BotClient("t").send_document(5, InputFile(str(tmp_path / "missing.txt")))
        assert res.ok is False
        mock_post.assert_not_called()

    @patch("sdk.client.requests.post")
    def test_get_updates_stretches_timeout(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp({"ok": True, "result": []})
        BotClient("t").get_updates(offset=3, timeout=30)
        assert mock_post.call_args[1]["timeout"] == 35
        assert _data(mock_post.call_args) == {"offset": 3, "timeout": 30}


# ── Failure reports ──────────────────────────────────────────────────────────


class TestReports:
    """Failed calls produce exactly one diagnostic per report chat."""

    @patch("sdk.client.requests.post")
    def test_one_report_per_failure(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = [_resp(CHAT_NOT_FOUND), _resp(OK_MESSAGE)]
        c = BotClient("t", report_chats=[42], update=UpdateAccessor(MESSAGE_UPDATE))

        res = c.call("sendMessage", {"chat_id": 0, "text": "x"})

        assert res.ok is False
        assert mock_post.call_count == 2
        report = mock_post.call_args_list[1]
        assert _url(report).endswith("/sendMessage")
        assert _data(report)["chat_id"] == 42
        text = _data(report)["text"]
        assert "Error thrown by the method sendMessage" in text
        assert "test_one_report_per_failure" in text
        assert "tg://user?id=7" in text
        assert "Update type: 'message'" in text

    @patch("sdk.client.requests.post")
    def test_report_to_every_chat(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = [_resp(CHAT_NOT_FOUND), _resp(OK_MESSAGE), _resp(OK_MESSAGE)]
        BotClient("t", report_chats=[1, 2]).call("getChat", {"chat_id": 0})
        assert [_data(c)["chat_id"] for c in mock_post.call_args_list[1:]] == [1, 2]

    @patch("sdk.client.requests.post")
    def test_failed_report_does_not_recurse(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(CHAT_NOT_FOUND)
        res = BotClient("t", report_chats=[42]).call("getChat", {"chat_id": 0})
        assert res.ok is False
        assert mock_post.call_count == 2

    @patch("sdk.client.requests.post")
    def test_transport_error_in_report_is_swallowed(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = requests.Timeout("slow")
        res = BotClient("t", report_chats=[42]).call("getMe")
        assert res.ok is False
        assert mock_post.call_count == 2

    @patch("sdk.client.requests.post")
    def test_success_is_not_reported(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t", report_chats=[42]).call("sendMessage", {"chat_id": 5, "text": "hi"})
        assert mock_post.call_count == 1

    @patch("sdk.client.requests.post")
    def test_debug_off(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(CHAT_NOT_FOUND)
        c = BotClient("t", report_chats=[42])
        c.debug = False
        c.call("getChat", {"chat_id": 0})
        assert mock_post.call_count == 1

    @patch("sdk.client.requests.post")
    def test_quiet_suppresses_report(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(CHAT_NOT_FOUND)
        c = BotClient("t", report_chats=[42])
        with c.quiet():
            c.call("getChat", {"chat_id": 0})
        assert mock_post.call_count == 1

        c.call("getChat", {"chat_id": 0})
        assert mock_post.call_count == 3

    @patch("sdk.client.requests.post")
    def test_quiet_ignored_without_obey_level(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(CHAT_NOT_FOUND)
        c = BotClient("t", report_chats=[42])
        c.report_obey_level = False
        with c.quiet():
            c.call("getChat", {"chat_id": 0})
        assert mock_post.call_count == 2

    @patch("sdk.client.requests.post")
    def test_log_mode_sends_nothing(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(CHAT_NOT_FOUND)
        BotClient("t", report_chats=[42], report_mode="log").call("getChat", {"chat_id": 0})
        assert mock_post.call_count == 1

    @patch("sdk.client.requests.post")
    def test_excerpt_truncated(self, mock_post: MagicMock) -> None:
        update = json.loads(json.dumps(MESSAGE_UPDATE))
        update["message"]["text"] = "a" * 1000
        mock_post.side_effect = [_resp(CHAT_NOT_FOUND), _resp(OK_MESSAGE)]
        c = BotClient("t", report_chats=[42], update=UpdateAccessor(update))
        c.call("getChat", {"chat_id": 0})
        text = _data(mock_post.call_args_list[1])["text"]
        assert "a" * 300 in text
        assert "a" * 301 not in text

    @patch("sdk.client.requests.post")
    def test_send_report_trims_long_text(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t", report_chats=[42]).send_report("x" * 5000)
        assert len(_data(mock_post.call_args)["text"]) == 4096

    def test_group_chat_mention(self) -> None:
        c = BotClient("t", report_chats=[42], update=UpdateAccessor({
            "update_id": 9,
            "message": {
                "message_id": 77, "date": 1, "text": "hey",
                "chat": {"id": -100, "type": "supergroup", "username": "room"},
                "from": {"id": 7, "is_bot": False, "first_name": "Ann"},
            },
        }))
        text = c._describe_update(html_mode=True)
        assert "<a href='https://t.me/room/77'>@room</a>" in text
        assert "in -100" in text


# ── Reports with the logging handler attached ────────────────────────────────


@pytest.fixture
def report_logging():
    """Attach a ReportHandler for the test's client to the project logger."""
    logger = HookgramLogger.get_logger()
    attached = []

    def attach(client: BotClient) -> None:
        handler = ReportHandler(client)
        logger.addHandler(handler)
        attached.append(handler)

    yield attach
    for handler in attached:
        logger.removeHandler(handler)


class TestReportsWithLogHandler:
    """SDK error records are not forwarded a second time by ReportHandler."""

    @patch("sdk.client.requests.post")
    def test_transport_failure_sends_one_diagnostic(self, mock_post: MagicMock, report_logging) -> None:
        mock_post.side_effect = requests.ConnectionError("boom")
        c = BotClient("t", report_chats=[42])
        report_logging(c)

        res = c.call("sendMessage", {"chat_id": 5, "text": "x"})

        assert res.ok is False
        diagnostics = [call for call in mock_post.call_args_list if _data(call).get("chat_id") == 42]
        assert len(diagnostics) == 1
        assert mock_post.call_count == 2

    @patch("sdk.client.requests.post")
    def test_undelivered_report_not_forwarded(self, mock_post: MagicMock, report_logging) -> None:
        mock_post.return_value = _resp(CHAT_NOT_FOUND)
        c = BotClient("t", report_chats=[42])
        report_logging(c)

        c.call("getChat", {"chat_id": 0})
        assert mock_post.call_count == 2

    @patch("sdk.client.requests.post")
    def test_quiet_transport_failure_not_forwarded(self, mock_post: MagicMock, report_logging) -> None:
        mock_post.side_effect = requests.ConnectionError("boom")
        c = BotClient("t", report_chats=[42])
        report_logging(c)

        with c.quiet():
            c.call("getChat", {"chat_id": 0})
        assert mock_post.call_count == 1


# ── Report size ──────────────────────────────────────────────────────────────


class TestReportSize:
    """Reports stay within the message limit without breaking markup."""

    @patch("sdk.client.requests.post")
    def test_over_limit_sent_as_plain_text(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t", report_chats=[42]).send_report("<b>" + "x" * 5000 + "</b>")
        data = _data(mock_post.call_args)
        assert len(data["text"]) == 4096
        assert "parse_mode" not in data

    @patch("sdk.client.requests.post")
    def test_short_report_keeps_html(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t", report_chats=[42]).send_report("<b>short</b>")
        assert _data(mock_post.call_args)["parse_mode"] == "HTML"

    @patch("sdk.client.requests.post")
    def test_huge_response_cut_before_escaping(self, mock_post: MagicMock) -> None:
        failure = {"ok": False, "error_code": 400, "description": "<&>" * 3000}
        mock_post.side_effect = [_resp(failure), _resp(OK_MESSAGE)]
        BotClient("t", report_chats=[42]).call("getChat", {"chat_id": 0})

        data = _data(mock_post.call_args_list[1])
        assert len(data["text"]) <= 4096
        assert data["parse_mode"] == "HTML"


# ── Shortcuts ────────────────────────────────────────────────────────────────


class TestShortcuts:
    """Shortcuts address the chat and message of the current update."""

    @patch("sdk.client.requests.post")
    def test_send(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t", update=UpdateAccessor(MESSAGE_UPDATE)).send("hello", parse_mode="Markdown")
        data = _data(mock_post.call_args)
        assert data["chat_id"] == 5
        assert data["text"] == "hello"
        assert data["parse_mode"] == "Markdown"

    @patch("sdk.client.requests.post")
    def test_reply(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t", update=UpdateAccessor(MESSAGE_UPDATE)).reply("ok")
        data = _data(mock_post.call_args)
        assert data["reply_to_message_id"] == 10
        assert data["parse_mode"] == "HTML"

    @patch("sdk.client.requests.post")
    def test_edit(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t", update=UpdateAccessor(MESSAGE_UPDATE)).edit("new")
        assert _url(mock_post.call_args).endswith("/editMessageText")
        assert _data(mock_post.call_args)["message_id"] == 10

    @patch("sdk.client.requests.post")
    def test_action(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp({"ok": True, "result": True})
        BotClient("t", update=UpdateAccessor(MESSAGE_UPDATE)).action()
        assert _data(mock_post.call_args) == {"chat_id": 5, "action": "typing"}

    @patch("sdk.client.requests.post")
    def test_doc_by_file_id(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t", update=UpdateAccessor(MESSAGE_UPDATE)).doc("BQACAgIAAxk")
        assert mock_post.call_count == 2
        assert _data(mock_post.call_args_list[0])["action"] == "upload_document"
        assert _data(mock_post.call_args)["document"] == "BQACAgIAAxk"
        assert "files" not in mock_post.call_args[1]

    @patch("sdk.client.requests.post")
    def test_doc_uploads_local_file(self, mock_post: MagicMock, tmp_path) -> None:
        path = tmp_path / "a.pdf"
        path.write_bytes(b"%PDF")
        mock_post.return_value = _resp(OK_MESSAGE)
        BotClient("t", update=UpdateAccessor(MESSAGE_UPDATE)).doc(str(path))
        assert mock_post.call_args[1]["files"]["document"][0] == "a.pdf"


# ── Chat helpers ─────────────────────────────────────────────────────────────


class TestChatHelpers:
    """Membership and mention helpers never report failures."""

    @patch("sdk.client.requests.post")
    def test_is_admin(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp({"ok": True, "result": {"status": "creator", "user": {"id": 7}}})
        c = BotClient("t", update=UpdateAccessor(MESSAGE_UPDATE))
        assert c.is_admin() is True
        assert _data(mock_post.call_args) == {"chat_id": 5, "user_id": 7}

    @patch("sdk.client.requests.post")
    def test_in_chat(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp({"ok": True, "result": {"status": "left", "user": {"id": 7}}})
        assert BotClient("t").in_chat(7, -100) is False
        mock_post.return_value = _resp({"ok": True, "result": {"status": "member", "user": {"id": 7}}})
        assert BotClient("t").in_chat(7, -100) is True

    @patch("sdk.client.requests.post")
    def test_lookup_failure_is_quiet(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _resp(CHAT_NOT_FOUND)
        c = BotClient("t", report_chats=[42])
        assert c.is_admin(7, -100) is False
        assert c.chat(-100) is None
        assert mock_post.call_count == 2

    @patch("sdk.client.requests.post")
    def test_mention(self, mock_post: MagicMock) -> None:
        c = BotClient("t")
        mock_post.return_value = _resp({"ok": True, "result": {"id": 7, "type": "private", "first_name": "Ann", "username": "ann"}})
        assert c.mention(7) == "@ann"
        mock_post.return_value = _resp({"ok": True, "result": {"id": 7, "type": "private", "first_name": "Ann"}})
        assert c.mention(7) == "<a href='tg://user?id=7'>Ann</a>"
        assert c.mention(7, parse_mode="markdown") == "[Ann](tg://user?id=7)"
        mock_post.return_value = _resp(CHAT_NOT_FOUND)
        assert c.mention(7) == "7"


# ── Files ────────────────────────────────────────────────────────────────────


class TestFiles:
    """Downloading files hosted by Telegram."""

    FILE = {"ok": True, "result": {"file_id": "F", "file_unique_id": "U", "file_path": "documents/a.txt"}}

    @patch("sdk.client.requests.get")
    @patch("sdk.client.requests.post")
    def test_read_file(self, mock_post: MagicMock, mock_get: MagicMock) -> None:
        mock_post.return_value = _resp(self.FILE)
        mock_get.return_value = MagicMock(content=b"abc")
        assert BotClient("t").read_file("F") == b"abc"
        assert mock_get.call_args[0][0] == "https://api.telegram.org/file/bott/documents/a.txt"

    @patch("sdk.client.requests.get")
    @patch("sdk.client.requests.post")
    def test_download_file(self, mock_post: MagicMock, mock_get: MagicMock, tmp_path) -> None:
        mock_post.return_value = _resp(self.FILE)
        mock_get.return_value = MagicMock(content=b"abc")
        target = tmp_path / "out.txt"
        assert BotClient("t").download_file("F", str(target)) == 3
        assert target.read_bytes() == b"abc"

    @patch("sdk.client.requests.get")
    @patch("sdk.client.requests.post")
    def test_get_file_failure(self, mock_post: MagicMock, mock_get: MagicMock) -> None:
        mock_post.return_value = _resp({"ok": False, "error_code": 400, "description": "Bad Request: file is too big"})
        assert BotClient("t").read_file("F") is None
        mock_get.assert_not_called()

    @patch("sdk.client.requests.get")
    @patch("sdk.client.requests.post")
    def test_download_error(self, mock_post: MagicMock, mock_get: MagicMock) -> None:
        mock_post.return_value = _resp(self.FILE)
        mock_get.side_effect = requests.ConnectionError("down")
        assert BotClient("t").read_file("F") is None


# ── Webhook reply & default client ───────────────────────────────────────────


class TestWebhookReply:
    """The webhook reply body names the method to run."""

    def test_respond_webhook(self) -> None:
        body = BotClient.respond_webhook("sendMessage", {"chat_id": 1, "text": "x", "parse_mode": None})
        assert json.loads(body) == {"chat_id": 1, "text": "x", "method": "sendMessage"}

    def test_respond_webhook_without_arguments(self) -> None:
        assert json.loads(BotClient.respond_webhook("getMe")) == {"method": "getMe"}


class TestDefaultClient:
    """The lazily built module-level client."""

    def test_missing_token_raises(self, monkeypatch) -> None:
        monkeypatch.setattr(client_module, "_default_client", None)
        monkeypatch.setattr("config.BOT_TOKEN", None)
        with pytest.raises(EnvironmentError):
            client_module.get_default_client()

    def test_built_from_config(self, monkeypatch) -> None:
        monkeypatch.setattr(client_module, "_default_client", None)
        monkeypatch.setattr("config.BOT_TOKEN", "123:abc")
        monkeypatch.setattr("config.REPORT_CHATS", [42])
        c = client_module.get_default_client()
        assert c.report_chats == [42]
        assert client_module.get_default_client() is c
