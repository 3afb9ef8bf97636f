"""Smoke/integration test for Telegram delivery.

This test talks to the real Telegram API and is skipped unless
TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID are set. With a comma-separated
TELEGRAM_CHAT_ID only the first id is used.

    TELEGRAM_BOT_TOKEN=123 TELEGRAM_CHAT_ID=123 python -m pytest -q -m telegram
"""

from __future__ import annotations

import asyncio
import os

import httpx
import pytest

from visarebook.telegram_notifier import send_telegram_message


def _first_chat_id(raw: str) -> str:
    return raw.split(",", 1)[0].strip()


@pytest.mark.telegram
@pytest.mark.skipif(
    not os.getenv("TELEGRAM_BOT_TOKEN") or not os.getenv("TELEGRAM_CHAT_ID"),
    reason="Set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID to run Telegram smoke test",
)
def test_telegram_message_delivery_smoke() -> None:
    async def scenario() -> None:
        async with httpx.AsyncClient() as client:
            await send_telegram_message(
                client,
                bot_token=os.environ["TELEGRAM_BOT_TOKEN"],
                chat_id=_first_chat_id(os.environ["TELEGRAM_CHAT_ID"]),
                text="visarebook: Telegram smoke test (pytest)",
            )

    asyncio.run(scenario())


def test_telegram_api_error_is_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/botTEST_TOKEN/sendMessage"
        return httpx.Response(200, json={"ok": False, "description": "chat not found"})

    async def scenario() -> None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await send_telegram_message(client, bot_token="TEST_TOKEN", chat_id="1", text="hi")

    with pytest.raises(RuntimeError, match="Telegram API error"):
        asyncio.run(scenario())
