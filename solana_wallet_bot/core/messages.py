from __future__ import annotations

from decimal import Decimal
from html import escape

from solana_wallet_bot.constants import (
    CB_SELL_CUSTOM,
    CB_SELL_MENU,
    CB_SELL_PERCENT,
    CB_SELL_TOKEN,
    SELL_PERCENTAGES,
)
from solana_wallet_bot.core.models import Button, Reply, SwapResult, TokenHolding
from solana_wallet_bot.exceptions import BotException, ConfirmationTimeout
from solana_wallet_bot.utils.amounts import format_ui_amount


def short_mint(mint: str) -> str:
    return f"{mint[:8]}...{mint[-8:]}"


def build_sell_menu(holdings: list[TokenHolding]) -> Reply:
    lines = ["💰 <b>Select Token to Sell</b>", ""]
    buttons: list[list[Button]] = []
    for holding in holdings:
        mint_short = escape(short_mint(holding.mint))
        lines.append(f"🪙 <b>{mint_short}</b>")
        lines.append(f"   Amount: {format_ui_amount(holding.amount_ui)}")
        if holding.price_usd is not None:
            lines.append(f"   Price: {_format_price(holding.price_usd)}")
            lines.append(f"   Value: {_format_usd(holding.value_usd)}")
        lines.append("")
        buttons.append([
            Button(
                text=f"{short_mint(holding.mint)} ({format_ui_amount(holding.amount_ui, 2)})",
                callback_data=f"{CB_SELL_TOKEN}:{holding.mint}",
            )
        ])
    return Reply(text="\n".join(lines).rstrip(), buttons=buttons)


def build_percentage_prompt(holding: TokenHolding) -> Reply:
    mint = escape(holding.mint)
    lines = [
        "💸 <b>Sell Token</b>",
        "",
        f"🪙 <b>Token:</b> <code>{mint}</code>",
        f"💰 <b>Balance:</b> {format_ui_amount(holding.amount_ui)}",
    ]
    if holding.price_usd is not None:
        lines.append(f"💵 <b>Price:</b> {_format_price(holding.price_usd)}")
        lines.append(f"💲 <b>Total Value:</b> {_format_usd(holding.value_usd)}")
    lines.extend(["", "📊 <b>Select amount to sell:</b>"])

    pct_buttons = [
        Button(text=f"{pct}%", callback_data=f"{CB_SELL_PERCENT}:{holding.mint}:{pct}")
        for pct in SELL_PERCENTAGES
    ]
    buttons = [pct_buttons[i:i + 2] for i in range(0, len(pct_buttons), 2)]
    buttons.append([Button(text="Custom Amount", callback_data=f"{CB_SELL_CUSTOM}:{holding.mint}")])
    buttons.append([Button(text="← Back", callback_data=CB_SELL_MENU)])
    return Reply(text="\n".join(lines), buttons=buttons, edit=True)


def build_custom_prompt(holding: TokenHolding) -> Reply:
    text = (
        "💸 <b>Custom Sell Amount</b>\n\n"
        f"🪙 <b>Token:</b> <code>{escape(holding.mint)}</code>\n"
        f"💰 <b>Available:</b> {format_ui_amount(holding.amount_ui)}\n\n"
        "Please reply with the amount you want to sell.\n"
        "Example: <code>100</code> or <code>0.5</code>\n\n"
        "Use /cancel to cancel."
    )
    return Reply(
        text=text,
        buttons=[[Button(text="← Back", callback_data=f"{CB_SELL_TOKEN}:{holding.mint}")]],
        edit=True,
        toast="Please reply with the amount to sell",
    )


def build_processing(edit: bool) -> Reply:
    return Reply(text="⏳ Processing sell order... Please wait.", edit=edit)


def build_sell_success(
    result: SwapResult,
    explorer_url: str,
    percentage: int | None = None,
    edit: bool = False,
) -> Reply:
    amount = format_ui_amount(result.amount_ui)
    if percentage is not None:
        amount = f"{amount} ({percentage}%)"
    text = (
        "✅ <b>Sell Order Executed!</b>\n\n"
        f"🪙 <b>Token:</b> <code>{escape(result.input_mint)}</code>\n"
        f"💰 <b>Amount Sold:</b> {amount}\n"
        f"🔗 <b>Transaction:</b> <a href=\"{escape(explorer_url)}\">View on Explorer</a>\n\n"
        f"Signature: <code>{escape(result.signature)}</code>"
    )
    return Reply(text=text, edit=edit, toast="✅ Sell executed successfully!")


def build_error(exc: BotException, explorer_url: str | None = None, edit: bool = False) -> Reply:
    if isinstance(exc, ConfirmationTimeout) and exc.signature:
        text = f"⚠️ <b>Sell Pending</b>\n\n{escape(exc.user_message)}\n\n"
        if explorer_url:
            text += f"🔗 <a href=\"{escape(explorer_url)}\">View on Explorer</a>\n"
        text += f"Signature: <code>{escape(exc.signature)}</code>"
        return Reply(text=text, edit=edit, toast="⚠️ Sell not confirmed yet")
    return Reply(
        text=f"❌ <b>Sell Failed</b>\n\n{escape(exc.user_message)}",
        edit=edit,
        toast="❌ Sell failed",
    )


def build_notice(text: str, edit: bool = False, toast: str | None = None) -> Reply:
    return Reply(text=text, edit=edit, toast=toast)


def _format_price(value: Decimal) -> str:
    return f"${value:.6f}"


def _format_usd(value: Decimal | None) -> str:
    if value is None:
        return "n/a"
    return f"${value:,.2f}"
