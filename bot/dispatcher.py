"""Update dispatcher, webhook entry point and long-polling loop.

Routes each incoming Telegram update to the appropriate handler in
:mod:`bot.handlers`.  The same :func:`process_update` serves both delivery
modes: :func:`handle_webhook` for one update per HTTP request, and
:func:`run` for a ``getUpdates`` long-polling loop.
"""

import json
import time

from pydantic import ValidationError

from core.guard import DeliveryGuard
from core.logger import HookgramLogger
from core.update import UpdateAccessor
from sdk.client import BotClient
from sdk.models import Update
from bot.registry import registry

# Import handlers module so @registry.register decorators execute.
from bot.handlers import handle_callback_query

logger = HookgramLogger.get_logger()

_RETRY_DELAY: float = 5


def process_update(client: BotClient, update: UpdateAccessor) -> None:
    """Dispatch the update held by *update* to the appropriate handler.

    The raw mapping is first projected onto the :class:`sdk.models.Update`
    model; an update that does not validate is logged and skipped.
    """
    update_id = update.update_id

    try:
        sdk_update = Update.model_validate(update.get_data())
    except ValidationError as exc:
        logger.warning("Failed to parse update into SDK model", extra={"update_id": update_id, "error": str(exc)})
        return

    # ── Callback queries (inline button presses) ─────────────────────────
    if sdk_update.callback_query:
        logger.debug("Processing callback_query", extra={"update_id": update_id})
        handle_callback_query(client, update)
        return

    # ── Message-based updates ────────────────────────────────────────────
    message = (
        sdk_update.message
        or sdk_update.edited_message
        or sdk_update.channel_post
        or sdk_update.edited_channel_post
    )
    if not message:
        logger.debug("Update has no message, skipping", extra={"update_id": update_id, "update_type": update.get_update_type()})
        return

    text = message.text or ""
    logger.debug("Processing update", extra={"update_id": update_id, "user_id": update.user_id, "text": text[:80]})

    # ── Registry-based command dispatch ──────────────────────────────────
    command = text.split()[0].split("@")[0] if text.startswith("/") else ""
    if command and registry.dispatch(command, client, update):
        return

    logger.debug("No command matched", extra={"update_id": update_id, "user_id": update.user_id})


def handle_webhook(client: BotClient, body: str | bytes, guard: DeliveryGuard | None = None) -> str:
    """Handle one webhook delivery and return the HTTP response body.

    *body* is the raw request body.  It is loaded into ``client.update`` and
    dispatched inside the guard's scope when a *guard* is given, so a
    re-delivery of an update still being handled is acknowledged and dropped.
    A handler exception is logged and does not reach the web server.  The
    returned body is always an empty JSON object.
    """
    try:
        data = json.loads(body) if body else {}
    except ValueError as exc:
        logger.warning("Webhook body is not valid JSON", extra={"error": str(exc)})
        return "{}"
    if not isinstance(data, dict) or "update_id" not in data:
        logger.warning("Webhook body is not an update", extra={"body_type": type(data).__name__})
        return "{}"

    client.update.set_data(data)
    update_id = data["update_id"]

    if guard is None:
        _process_logged(client, update_id)
        return "{}"

    with guard.protect(update_id) as proceed:
        if proceed:
            _process_logged(client, update_id)
    return "{}"


def _process_logged(client: BotClient, update_id: int) -> None:
    """Run :func:`process_update`, logging a handler exception instead of raising it."""
    try:
        process_update(client, client.update)
    except Exception:
        logger.exception("Unhandled error while processing update", extra={"update_id": update_id})


def run(client: BotClient, poll_timeout: int = 30) -> None:
    """Start the blocking long-polling loop.

    Each update from ``getUpdates`` is loaded into ``client.update`` and
    dispatched in turn.  A handler exception is logged and does not stop the
    loop.
    """
    offset: int | None = None

    logger.info("hookgram bot is running. Polling for updates...")
    while True:
        with client.quiet():
            data = client.get_updates(offset=offset, timeout=poll_timeout)
        if not data.ok:
            logger.warning("getUpdates returned ok=false, retrying in 5 s", extra={"api_method": "getUpdates", "description": data.description})
            time.sleep(_RETRY_DELAY)
            continue

        updates = data.result or []
        if updates:
            logger.debug("Received updates", extra={"count": len(updates)})
        for raw in updates:
            offset = raw["update_id"] + 1
            client.update.set_data(raw)
            _process_logged(client, raw["update_id"])
