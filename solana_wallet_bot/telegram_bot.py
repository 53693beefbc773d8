from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from solana_wallet_bot.config import Settings
from solana_wallet_bot.core.models import Interaction, InteractionKind, Reply
from solana_wallet_bot.core.router import SellRouter


class TelegramSellBot:
    """
    Long-polling Telegram transport for the sell flow.

    Each update is handled in its own task, so one user's swap never holds
    up another user's buttons.
    """

    def __init__(self, settings: Settings, router: SellRouter, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self.router = router
        self.token = settings.TELEGRAM_BOT_TOKEN
        # long polling holds the request open for TELEGRAM_POLL_TIMEOUT_SEC
        self.client = client or httpx.AsyncClient(
            timeout=settings.API_TIMEOUT_SEC + settings.TELEGRAM_POLL_TIMEOUT_SEC
        )
        self.logger = logging.getLogger("solana_wallet_bot.telegram")
        self._last_update_id = 0
        self._running = False
        self._tasks: set[asyncio.Task] = set()

    async def close(self) -> None:
        self._running = False
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.client.aclose()

    def stop(self) -> None:
        self._running = False

    async def run(self) -> None:
        if not self.token:
            self.logger.error("TELEGRAM_BOT_TOKEN not set; bot not started")
            return
        self._running = True
        self.logger.info("Telegram polling started")
        while self._running:
            updates = await self._get_updates()
            for update in updates:
                self._dispatch(update)
            if not updates:
                await asyncio.sleep(1)
        self.logger.info("Telegram polling stopped")

    def _dispatch(self, update: dict[str, Any]) -> None:
        update_id = update.get("update_id")
        if isinstance(update_id, int) and update_id >= self._last_update_id:
            self._last_update_id = update_id + 1
        interaction = parse_update(update)
        if interaction is None:
            return
        task = asyncio.create_task(self.handle_interaction(interaction))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_interaction(self, interaction: Interaction) -> None:
        async def notify(reply: Reply) -> None:
            await self.deliver(interaction, reply)

        try:
            reply = await self.router.handle(interaction, notify=notify)
        except Exception:
            self.logger.exception("Unhandled error for %s", interaction.user_id)
            reply = Reply(text="❌ An error occurred. Please try again.", toast="❌ Error")

        if reply is None:
            if interaction.callback_id:
                await self._answer_callback(interaction.callback_id, None)
            return
        await self.deliver(interaction, reply)
        if interaction.callback_id:
            await self._answer_callback(interaction.callback_id, reply.toast)

    async def deliver(self, interaction: Interaction, reply: Reply) -> None:
        payload: dict[str, Any] = {
            "chat_id": interaction.chat_id,
            "text": reply.text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        if reply.buttons:
            payload["reply_markup"] = build_keyboard(reply)
        if reply.edit and interaction.message_id is not None:
            payload["message_id"] = interaction.message_id
            await self._post("editMessageText", payload)
        else:
            await self._post("sendMessage", payload)

    async def _answer_callback(self, callback_id: str, text: str | None) -> None:
        payload: dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        await self._post("answerCallbackQuery", payload)

    async def _get_updates(self) -> list[dict[str, Any]]:
        payload = {
            "timeout": self.settings.TELEGRAM_POLL_TIMEOUT_SEC,
            "offset": self._last_update_id,
            "allowed_updates": '["message","callback_query"]',
        }
        data = await self._post("getUpdates", payload, method_type="get")
        if isinstance(data, dict) and isinstance(data.get("result"), list):
            return data["result"]
        return []

    async def _post(self, method: str, payload: dict[str, Any], method_type: str = "post") -> Any:
        url = f"https://api.telegram.org/bot{self.token}/{method}"
        try:
            if method_type == "get":
                response = await self.client.get(url, params=payload)
            else:
                response = await self.client.post(url, json=payload)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self.logger.warning("Telegram %s failed: %s", method, exc)
            return {}


def parse_update(update: dict[str, Any]) -> Interaction | None:
    """Turn a raw Telegram update into an Interaction, or None if it is not for us."""
    if "callback_query" in update:
        payload = update["callback_query"]
        data = payload.get("data")
        user_id = (payload.get("from") or {}).get("id")
        message = payload.get("message") or {}
        if not isinstance(data, str) or user_id is None:
            return None
        return Interaction(
            kind=InteractionKind.CALLBACK,
            user_id=str(user_id),
            payload=data,
            chat_id=(message.get("chat") or {}).get("id"),
            message_id=message.get("message_id"),
            callback_id=payload.get("id"),
        )
    if "message" in update:
        payload = update["message"]
        text = payload.get("text")
        user_id = (payload.get("from") or {}).get("id")
        if not isinstance(text, str) or user_id is None:
            return None
        kind = InteractionKind.COMMAND if text.startswith("/") else InteractionKind.TEXT
        return Interaction(
            kind=kind,
            user_id=str(user_id),
            payload=text,
            chat_id=(payload.get("chat") or {}).get("id"),
            message_id=payload.get("message_id"),
        )
    return None


def build_keyboard(reply: Reply) -> dict[str, Any]:
    return {
        "inline_keyboard": [
            [{"text": button.text, "callback_data": button.callback_data} for button in row]
            for row in reply.buttons
        ]
    }
