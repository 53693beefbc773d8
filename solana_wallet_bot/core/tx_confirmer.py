"""
Transaction Confirmation Logic

Polls signature status until the requested commitment, an on-chain error,
or the timeout.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed, Finalized
from solders.signature import Signature

logger = logging.getLogger(__name__)


class TxStatus(Enum):
    """Transaction status"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"
    FAILED = "failed"
    EXPIRED = "expired"


@dataclass
class TxResult:
    """Transaction confirmation result"""
    signature: str
    status: TxStatus
    slot: Optional[int] = None
    error: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def is_success(self) -> bool:
        return self.status in (TxStatus.CONFIRMED, TxStatus.FINALIZED)


class TransactionConfirmer:
    """
    Transaction confirmation with backoff polling and a hard timeout.

    Usage:
        confirmer = TransactionConfirmer(client, timeout=60)
        result = await confirmer.confirm(signature)

        if result.is_success:
            print(f"Confirmed in {result.elapsed_seconds:.1f}s")
    """

    DEFAULT_TIMEOUT = 60.0  # seconds
    MIN_POLL_INTERVAL = 0.5
    MAX_POLL_INTERVAL = 2.0

    def __init__(self, client: AsyncClient, timeout: float = DEFAULT_TIMEOUT):
        self.client = client
        self.timeout = timeout
        self._pending: Dict[str, TxResult] = {}

    async def confirm(
        self,
        signature: str,
        commitment: Commitment = Confirmed,
        timeout: Optional[float] = None
    ) -> TxResult:
        """
        Wait until the transaction reaches `commitment`.

        Args:
            signature: Transaction signature
            commitment: Confirmed or Finalized
            timeout: Maximum time to wait (seconds); defaults to the instance timeout

        Returns:
            TxResult; EXPIRED when the timeout elapsed without a decision
        """
        timeout = self.timeout if timeout is None else timeout
        start_time = time.monotonic()
        poll_interval = self.MIN_POLL_INTERVAL

        result = TxResult(signature=signature, status=TxStatus.PENDING)
        self._pending[signature] = result

        try:
            while True:
                status = await self._check_status(signature)

                if status:
                    result.slot = status.get("slot")

                    if status.get("err"):
                        result.status = TxStatus.FAILED
                        result.error = str(status["err"])
                        result.elapsed_seconds = time.monotonic() - start_time
                        logger.error(f"Transaction {signature[:20]}... failed: {result.error}")
                        break

                    level = status.get("confirmationStatus") or ""

                    if "finalized" in level:
                        result.status = TxStatus.FINALIZED
                        result.elapsed_seconds = time.monotonic() - start_time
                        logger.info(f"Transaction {signature[:20]}... CONFIRMED (finalized) in {result.elapsed_seconds:.1f}s")
                        break

                    if "confirmed" in level and commitment != Finalized:
                        result.status = TxStatus.CONFIRMED
                        result.elapsed_seconds = time.monotonic() - start_time
                        logger.info(f"Transaction {signature[:20]}... CONFIRMED in {result.elapsed_seconds:.1f}s")
                        break

                elapsed = time.monotonic() - start_time
                if elapsed >= timeout:
                    result.status = TxStatus.EXPIRED
                    result.error = f"Timeout after {timeout}s"
                    result.elapsed_seconds = elapsed
                    logger.warning(f"Transaction {signature[:20]}... not confirmed after {elapsed:.1f}s")
                    break

                await asyncio.sleep(min(poll_interval, max(timeout - elapsed, 0)))
                poll_interval = min(poll_interval * 1.5, self.MAX_POLL_INTERVAL)

        finally:
            self._pending.pop(signature, None)

        return result

    async def _check_status(self, signature: str) -> Optional[Dict[str, Any]]:
        """Check transaction status from RPC; None while unknown or on RPC errors."""
        try:
            sig = Signature.from_string(signature)
            response = await self.client.get_signature_statuses([sig])
        except Exception as e:
            # a flaky RPC poll is not a verdict; keep polling until the timeout
            logger.debug(f"Status check error: {e}")
            return None

        if response and response.value:
            status = response.value[0]
            if status:
                level = status.confirmation_status
                return {
                    "slot": status.slot,
                    "err": status.err,
                    "confirmationStatus": str(level).lower() if level is not None else "",
                }
        return None

    def get_pending(self) -> List[TxResult]:
        """Transactions currently being awaited"""
        return list(self._pending.values())
