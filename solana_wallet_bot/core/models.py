from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from solana_wallet_bot.utils.amounts import to_ui


@dataclass(frozen=True)
class User:
    telegram_id: str
    wallet_address: str
    encrypted_private_key: str
    username: str | None = None


@dataclass(frozen=True)
class TokenAccount:
    """One on-chain token account as reported by the holdings endpoint."""
    amount_native: int
    decimals: int


@dataclass
class TokenHolding:
    """All accounts of one mint folded into a single balance."""
    mint: str
    amount_native: int
    decimals: int
    price_usd: Decimal | None = None

    @property
    def amount_ui(self) -> Decimal:
        return to_ui(self.amount_native, self.decimals)

    @property
    def value_usd(self) -> Decimal | None:
        if self.price_usd is None:
            return None
        return self.amount_ui * self.price_usd


@dataclass(frozen=True)
class SwapRequest:
    signer: Any  # solders Keypair
    input_mint: str
    output_mint: str
    amount_ui: Decimal
    slippage_bps: int
    input_decimals: int | None = None
    user_id: str | None = None


class ConfirmationStatus(str, Enum):
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class SwapResult:
    signature: str
    input_mint: str
    output_mint: str
    amount_native: int
    amount_ui: Decimal
    status: ConfirmationStatus = ConfirmationStatus.CONFIRMED


# =========================================================================
# Free-text input expectation
# =========================================================================

@dataclass(frozen=True)
class NoExpectation:
    pass


@dataclass(frozen=True)
class AwaitingAmount:
    mint: str


InputExpectation = Union[NoExpectation, AwaitingAmount]


# =========================================================================
# Presentation payloads
# =========================================================================

@dataclass(frozen=True)
class Button:
    text: str
    callback_data: str


@dataclass
class Reply:
    """
    What the sell flow hands back to the messaging layer.

    `edit` asks the transport to replace the message the user tapped instead
    of sending a new one; `toast` is the short callback acknowledgement.
    """
    text: str
    buttons: list[list[Button]] = field(default_factory=list)
    edit: bool = False
    toast: str | None = None


class InteractionKind(str, Enum):
    CALLBACK = "CALLBACK"
    COMMAND = "COMMAND"
    TEXT = "TEXT"


@dataclass(frozen=True)
class Interaction:
    kind: InteractionKind
    user_id: str
    payload: str
    chat_id: int | str | None = None
    message_id: int | None = None
    callback_id: str | None = None
