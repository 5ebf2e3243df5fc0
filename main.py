"""hookgram example bot — entry points.

``python main.py`` builds the default client from :mod:`config`, forwards
ERROR log records to the report chats and starts long polling.  A web server
receiving webhooks calls :func:`handle_request` with each raw request body
and writes the returned string as its ``application/json`` response.

    $ BOT_TOKEN=123:abc REPORT_CHATS=755764114 python main.py
"""

from bot.dispatcher import handle_webhook, run
from config import GUARD_DIR
from core.guard import DeliveryGuard
from core.logger import HookgramLogger
from core.report_handler import ReportHandler
from sdk.client import BotClient, get_default_client

logger = HookgramLogger.get_logger()

_guard = DeliveryGuard(GUARD_DIR)


def _attach_reports(client: BotClient) -> None:
    if not client.report_chats or client.report_mode != "message":
        return
    if not any(isinstance(h, ReportHandler) for h in logger.handlers):
        logger.addHandler(ReportHandler(client))


def handle_request(body: str | bytes) -> str:
    """Handle one webhook request body and return the response body."""
    client = get_default_client()
    _attach_reports(client)
    return handle_webhook(client, body, guard=_guard)


def main() -> None:
    """Start the bot in long-polling mode.

    Raises:
        EnvironmentError: If ``BOT_TOKEN`` is not set.
    """
    client = get_default_client()
    _attach_reports(client)

    me = client.get_me()
    if me.ok:
        logger.info("Authorised as bot", extra={"username": me.get("username"), "bot_id": me.get("id")})

    try:
        run(client)
    except KeyboardInterrupt:
        logger.info("Polling stopped by user")
    finally:
        HookgramLogger().cleanup()


if __name__ == "__main__":
    main()
