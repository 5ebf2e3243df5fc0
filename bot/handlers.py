"""Command and callback handlers for the example bot.

Each public ``handle_*`` command function is registered with
:data:`bot.registry.registry` and invoked by :mod:`bot.dispatcher` with the
client and the accessor of the current update.  Replies go through the
client's update shortcuts (``send``, ``reply``, ``edit``).
"""

from core.logger import HookgramLogger
from core.update import UpdateAccessor
from sdk.client import BotClient
from sdk.markup import button, inline_keyboard, keyboard_button, remove_keyboard, reply_keyboard
from bot.registry import registry

logger = HookgramLogger.get_logger()

# ── Demo inline keyboard ─────────────────────────────────────────────────────

DEMO_BUTTONS: dict[str, str] = {
    "button 1": "You pressed button 1",
    "button 2": "You pressed button 2",
    "button 3": "You pressed button 3",
}


def _demo_keyboard() -> str:
    return inline_keyboard([
        [("Button 1", "button 1"), ("Button 2", "button 2")],
        [("Button 3", "button 3")],
        [button("Bot API docs", "https://core.telegram.org/bots/api", "url")],
    ])


# ── Commands ─────────────────────────────────────────────────────────────────


@registry.register("/start", description="Show the demo inline keyboard")
def handle_start(client: BotClient, update: UpdateAccessor) -> None:
    """Handle /start — greet the user and show the demo inline keyboard."""
    name = update.first_name or "there"
    logger.info("User invoked /start", extra={"user_id": update.user_id, "chat_id": update.chat_id, "command": "/start"})
    client.send(f"👋 Hello, {name}! Press a button:", reply_markup=_demo_keyboard())


@registry.register("/help", description="List the available commands")
def handle_help(client: BotClient, update: UpdateAccessor) -> None:
    """Handle /help — list every registered command with its description."""
    lines = ["📋 <b>Available commands:</b>"]
    for command, entry in sorted(registry.entries().items()):
        lines.append(f"{command} — {entry.description}")
    client.send("\n".join(lines))


@registry.register("/keyboard", description="Show a reply keyboard")
def handle_keyboard(client: BotClient, update: UpdateAccessor) -> None:
    """Handle /keyboard — show a reply keyboard with contact/location requests."""
    markup = reply_keyboard(
        [
            ["/help", "/hide"],
            [keyboard_button("📱 Share contact", request_contact=True),
             keyboard_button("📍 Share location", request_location=True)],
        ],
        resize=True,
    )
    client.reply("Choose an option:", reply_markup=markup)


@registry.register("/hide", description="Remove the reply keyboard")
def handle_hide(client: BotClient, update: UpdateAccessor) -> None:
    """Handle /hide — remove the reply keyboard."""
    client.reply("Keyboard removed.", reply_markup=remove_keyboard())


# ── Callback queries ─────────────────────────────────────────────────────────


def handle_callback_query(client: BotClient, update: UpdateAccessor) -> None:
    """Answer a button press from the demo keyboard.

    The message holding the keyboard is edited to show which button was
    pressed; unknown callback data is acknowledged without a reply.
    """
    callback_query = update.callback_query or {}
    cb_id = callback_query.get("id", "")
    data = update.get_value("data") or ""
    logger.info("Callback query", extra={"user_id": update.user_id, "callback_data": data})

    reply = DEMO_BUTTONS.get(data)
    if reply is None:
        logger.debug("Unknown callback data", extra={"callback_data": data, "user_id": update.user_id})
        client.answer_callback_query(cb_id)
        return

    client.answer_callback_query(cb_id, text=reply)
    # Pressing the same button twice leaves the text unchanged, which the API rejects.
    with client.quiet():
        client.edit(f"{reply}. Press another one:", reply_markup=_demo_keyboard())
