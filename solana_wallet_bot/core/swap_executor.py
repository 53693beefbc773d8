from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol

from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from solana_wallet_bot.constants import DEFAULT_TOKEN_DECIMALS
from solana_wallet_bot.core.models import ConfirmationStatus, SwapRequest, SwapResult
from solana_wallet_bot.core.tx_confirmer import TxStatus
from solana_wallet_bot.exceptions import (
    ConfirmationTimeout,
    ExecutionRejected,
    InvalidAmount,
    QuoteUnavailable,
)
from solana_wallet_bot.utils.amounts import to_native, to_ui

if TYPE_CHECKING:
    from solana_wallet_bot.core.jupiter_client import JupiterUltraClient
    from solana_wallet_bot.core.tx_confirmer import TransactionConfirmer

logger = logging.getLogger(__name__)

DecimalsLookup = Callable[[str], Awaitable["int | None"]]


class TransactionLog(Protocol):
    def record_submitted_transaction(
        self, signature: str, telegram_id: str | None, input_mint: str,
        output_mint: str, amount_native: int,
    ) -> None: ...

    def mark_transaction(self, signature: str, status: str, error: str | None = None) -> None: ...


class SwapExecutor:
    """
    Quote, sign, submit and confirm one swap through Jupiter Ultra.

    Every failure surfaces as a typed exception and nothing is retried or
    rolled back. A swap accepted by /execute but not confirmed in time raises
    ConfirmationTimeout with the signature; the submitted signature is logged
    to `tx_log` first so the outcome can be reconciled later.
    """

    def __init__(
        self,
        jupiter: JupiterUltraClient,
        confirmer: TransactionConfirmer,
        decimals_lookup: DecimalsLookup | None = None,
        tx_log: TransactionLog | None = None,
    ) -> None:
        self.jupiter = jupiter
        self.confirmer = confirmer
        self.decimals_lookup = decimals_lookup
        self.tx_log = tx_log

    async def execute(self, request: SwapRequest) -> SwapResult:
        decimals = request.input_decimals
        if decimals is None:
            decimals = await self._resolve_decimals(request.input_mint)

        amount_native = to_native(request.amount_ui, decimals)
        if amount_native <= 0:
            raise InvalidAmount(
                f"Invalid amount: {request.amount_ui} (converted to {amount_native} native units)"
            )

        signer: Keypair = request.signer
        taker = str(signer.pubkey())

        order = await self.jupiter.get_order(
            request.input_mint,
            request.output_mint,
            amount_native,
            taker,
            request.slippage_bps,
        )
        tx_b64 = order.get("transaction")
        if not tx_b64:
            reason = order.get("errorMessage") or order.get("error") or "no transaction in order"
            raise QuoteUnavailable(
                "Failed to get order from Jupiter", mint=request.input_mint[:8], reason=reason
            )
        request_id = order.get("requestId")

        signed = sign_transaction(_b64decode(tx_b64), signer)

        execution = await self.jupiter.execute_order(
            request_id, base64.b64encode(signed).decode("ascii")
        )
        signature = execution.get("signature")
        if execution.get("status") == "Failed" or not signature:
            reason = execution.get("error") or execution.get("code") or "no signature returned"
            logger.error(f"SWAP rejected for {request.input_mint[:8]}...: {reason}")
            if signature:
                self._log_submitted(request, signature, amount_native)
                self._mark(signature, "failed", str(reason))
            raise ExecutionRejected(str(reason), request_id=request_id)

        logger.info(f"SWAP submitted {signature[:16]}... ({amount_native} native {request.input_mint[:8]}...)")
        self._log_submitted(request, signature, amount_native)

        result = await self.confirmer.confirm(signature)
        if result.status == TxStatus.FAILED:
            self._mark(signature, "failed", result.error)
            raise ExecutionRejected(f"Transaction failed on-chain: {result.error}", signature=signature[:16])
        if not result.is_success:
            self._mark(signature, "unconfirmed", result.error)
            raise ConfirmationTimeout(
                "Swap submitted but not confirmed", signature=signature, elapsed=f"{result.elapsed_seconds:.0f}s"
            )

        self._mark(signature, "confirmed")
        return SwapResult(
            signature=signature,
            input_mint=request.input_mint,
            output_mint=request.output_mint,
            amount_native=amount_native,
            amount_ui=to_ui(amount_native, decimals),
            status=(
                ConfirmationStatus.FINALIZED
                if result.status == TxStatus.FINALIZED
                else ConfirmationStatus.CONFIRMED
            ),
        )

    async def _resolve_decimals(self, mint: str) -> int:
        if self.decimals_lookup is None:
            return DEFAULT_TOKEN_DECIMALS
        try:
            decimals = await self.decimals_lookup(mint)
        except Exception as exc:
            logger.warning(f"Decimals lookup failed for {mint[:8]}...: {exc}")
            decimals = None
        if decimals is None:
            logger.info(f"Using default decimals={DEFAULT_TOKEN_DECIMALS} for {mint[:8]}...")
            return DEFAULT_TOKEN_DECIMALS
        return decimals

    def _log_submitted(self, request: SwapRequest, signature: str, amount_native: int) -> None:
        if self.tx_log is None:
            return
        try:
            self.tx_log.record_submitted_transaction(
                signature, request.user_id, request.input_mint, request.output_mint, amount_native
            )
        except Exception as exc:
            # the swap is already on its way; losing the record must not hide its outcome
            logger.error(f"Failed to record submitted swap {signature[:16]}...: {exc}")

    def _mark(self, signature: str, status: str, error: str | None = None) -> None:
        if self.tx_log is None:
            return
        try:
            self.tx_log.mark_transaction(signature, status, error)
        except Exception as exc:
            logger.error(f"Failed to update swap {signature[:16]}... to {status}: {exc}")


def sign_transaction(raw: bytes, signer: Keypair) -> bytes:
    """
    Add `signer`'s signature to a serialized transaction.

    Tries the versioned wire format first and falls back to legacy. Other
    signatures already present are preserved.
    """
    try:
        versioned = VersionedTransaction.from_bytes(raw)
    except Exception:
        versioned = None

    if versioned is not None:
        message = versioned.message
        index = _signer_index(message, signer)
        signatures = list(versioned.signatures)
        required = message.header.num_required_signatures
        signatures.extend([Signature.default()] * (required - len(signatures)))
        signatures[index] = signer.sign_message(to_bytes_versioned(message))
        return bytes(VersionedTransaction.populate(message, signatures))

    try:
        legacy = Transaction.from_bytes(raw)
    except Exception as exc:
        raise QuoteUnavailable("Could not decode swap transaction") from exc
    _signer_index(legacy.message, signer)
    legacy.partial_sign([signer], legacy.message.recent_blockhash)
    return bytes(legacy)


def _signer_index(message: Any, signer: Keypair) -> int:
    required = message.header.num_required_signatures
    signers = list(message.account_keys)[:required]
    try:
        return signers.index(signer.pubkey())
    except ValueError:
        raise QuoteUnavailable(
            "Swap transaction is not meant for this wallet", taker=str(signer.pubkey())[:8]
        ) from None


def _b64decode(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise QuoteUnavailable("Swap transaction is not valid base64") from exc
