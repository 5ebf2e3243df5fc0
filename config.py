"""Application configuration — environment variables and derived constants.

Loads ``BOT_TOKEN``, ``REPORT_CHATS`` and the reporting / transport settings
from the environment via ``python-dotenv``.  Values are resolved at import
time so other modules can ``from config import …`` without repeated lookups.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import os

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── core ─────────────────────────────────────────────────────────────────────
from core.logger import HookgramLogger

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

logger = HookgramLogger.get_logger()


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_chat_ids(raw: str | None) -> list[int]:
    """Parse a comma-separated string of chat ids into a list of ints.

    Group ids are negative (``"-100123,755764114"``).  Non-numeric tokens are
    skipped.
    """
    if not raw:
        return []
    result: list[int] = []
    for token in raw.split(","):
        token = token.strip()
        if token:
            try:
                result.append(int(token))
            except ValueError:
                logger.warning("Skipping invalid chat id in REPORT_CHATS", extra={"token": token})
    return result


def _parse_float(raw: str | None, default: float) -> float:
    """Return *raw* as a float, or *default* when unset or malformed."""
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid numeric setting, using default", extra={"raw": raw, "default": default})
        return default


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("BOT_TOKEN")
API_URL: str = os.environ.get("API_URL", "https://api.telegram.org").rstrip("/")
REPORT_CHATS: list[int] = _parse_chat_ids(os.environ.get("REPORT_CHATS"))
REPORT_MODE: str = os.environ.get("REPORT_MODE", "message")
PARSE_MODE: str = os.environ.get("PARSE_MODE", "HTML")
REQUEST_TIMEOUT: float = _parse_float(os.environ.get("REQUEST_TIMEOUT"), 10.0)
GUARD_DIR: str = os.environ.get("GUARD_DIR", ".")


# ── Startup diagnostics ─────────────────────────────────────────────────────

if BOT_TOKEN:
    logger.info("Config loaded — BOT_TOKEN is set", extra={"api_url": API_URL})
else:
    logger.warning("Config loaded — BOT_TOKEN is NOT set")

if REPORT_CHATS:
    logger.info("Error reports enabled", extra={"report_chats": REPORT_CHATS, "report_mode": REPORT_MODE})
else:
    logger.info("No REPORT_CHATS configured, error reports disabled")
