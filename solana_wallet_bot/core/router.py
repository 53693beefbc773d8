from __future__ import annotations

import logging

from solana_wallet_bot.constants import (
    CB_SELL_CUSTOM,
    CB_SELL_MENU,
    CB_SELL_PERCENT,
    CB_SELL_TOKEN,
)
from solana_wallet_bot.core.models import (
    AwaitingAmount,
    Interaction,
    InteractionKind,
    Reply,
)
from solana_wallet_bot.core.sell_flow import Notify, SellFlow

logger = logging.getLogger(__name__)


class SellRouter:
    """
    Maps inbound interactions onto sell-flow steps.

    Plain text only reaches the flow when the user has an open amount
    prompt; otherwise it is left for other handlers (returns None).
    """

    def __init__(self, flow: SellFlow) -> None:
        self.flow = flow

    async def handle(self, interaction: Interaction, notify: Notify | None = None) -> Reply | None:
        if interaction.kind == InteractionKind.TEXT:
            return await self._handle_text(interaction, notify)
        if interaction.kind == InteractionKind.COMMAND:
            return await self._handle_command(interaction)
        return await self._handle_callback(interaction, notify)

    async def _handle_text(self, interaction: Interaction, notify: Notify | None) -> Reply | None:
        expectation = self.flow.pending.expectation(interaction.user_id)
        if not isinstance(expectation, AwaitingAmount):
            return None
        return await self.flow.handle_text(interaction.user_id, interaction.payload, notify=notify)

    async def _handle_command(self, interaction: Interaction) -> Reply | None:
        command = interaction.payload.strip().split(maxsplit=1)[0].lower() if interaction.payload.strip() else ""
        # "/sell@MyBot" in group chats
        command = command.split("@", 1)[0]
        if command == "/sell":
            return await self.flow.show_menu(interaction.user_id)
        if command == "/cancel":
            return self.flow.cancel(interaction.user_id)
        return None

    async def _handle_callback(self, interaction: Interaction, notify: Notify | None) -> Reply | None:
        data = interaction.payload
        user_id = interaction.user_id

        if data == CB_SELL_MENU:
            return await self.flow.show_menu(user_id, edit=True)

        action, _, rest = data.partition(":")
        if not rest:
            return None

        if action == CB_SELL_TOKEN:
            return await self.flow.select_token(user_id, rest)
        if action == CB_SELL_CUSTOM:
            return await self.flow.request_custom_amount(user_id, rest)
        if action == CB_SELL_PERCENT:
            mint, _, pct = rest.rpartition(":")
            if not mint or not pct.isdigit():
                logger.warning(f"Malformed sell_percent callback: {data[:80]}")
                return None
            return await self.flow.execute_percentage(user_id, mint, int(pct), notify=notify)

        return None
