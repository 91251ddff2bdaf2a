"""Telegram Bot API notification module."""

import logging

import httpx

from .config import TELEGRAM_API_BASE, Config

logger = logging.getLogger(__name__)


def normalize_chat_id(chat_id: str) -> str:
    """
    Group chat ids are negative; a purely numeric id is assumed to have
    lost its sign and gets a leading "-".
    """
    chat_id = chat_id.strip()
    if chat_id.isdigit() and chat_id.isascii():
        return "-" + chat_id
    return chat_id


async def send_telegram_message(
    client: httpx.AsyncClient,
    bot_token: str,
    chat_id: str,
    text: str,
) -> tuple[bool, str]:
    """
    Send a Markdown formatted message through the Bot API.

    Args:
        client: Shared HTTP client (carries the request timeout)
        bot_token: Telegram bot token
        chat_id: Destination chat id (numeric ids are auto-prefixed with "-")
        text: Message body, Telegram Markdown (*bold*)

    Returns:
        (True, "") if Telegram accepted the message, otherwise
        (False, description of the failure).
    """
    url = f"{TELEGRAM_API_BASE}/bot{bot_token}/sendMessage"
    payload = {
        "chat_id": normalize_chat_id(chat_id),
        "text": text,
        "parse_mode": "Markdown",
    }

    try:
        response = await client.post(url, json=payload)
    except httpx.TimeoutException as e:
        return False, f"Telegram request timed out: {e!r}"
    except httpx.RequestError as e:
        return False, f"Telegram request failed: {e}"

    try:
        body = response.json()
    except ValueError:
        return False, (
            f"failed to parse Telegram response "
            f"(status {response.status_code}): {response.text}"
        )

    if not isinstance(body, dict) or not body.get("ok"):
        description = body.get("description") if isinstance(body, dict) else None
        return False, f"Telegram API error: {description or response.status_code}"

    logger.info("Telegram message sent successfully")
    return True, ""


async def send_alert(client: httpx.AsyncClient, config: Config, text: str) -> bool:
    """Deliver ``text`` to the configured chat, logging any failure."""
    ok, error = await send_telegram_message(
        client, config.telegram_bot_token, config.telegram_chat_id, text
    )
    if not ok:
        logger.error(f"Failed to send Telegram alert: {error}")
    return ok


async def send_test_message(client: httpx.AsyncClient, config: Config) -> bool:
    """Send a test message to verify bot token and chat id."""
    return await send_alert(
        client,
        config,
        "*Bunker Price Alert*\n\nTest message: the bot can reach this chat.",
    )
