"""
Jupiter Ultra Client

Ultra bundles routing and transaction building in one call:
- GET /order returns a quote plus an unsigned, base64 transaction
- POST /execute takes the signed transaction back and lands it
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..exceptions import RemoteUnavailable

logger = logging.getLogger(__name__)


class JupiterUltraClient:
    """
    Client for the Jupiter Ultra Swap API.

    Both calls fail fast with RemoteUnavailable on network errors, timeouts,
    non-200 responses and non-JSON bodies. Nothing is retried here.
    """

    def __init__(self, session: aiohttp.ClientSession, settings):
        """
        Initialize Jupiter Ultra client.

        Args:
            session: aiohttp session for API calls
            settings: Settings with JUPITER_API_URL, JUPITER_API_KEY, SWAP_TIMEOUT_SEC
        """
        self.session = session
        self.base_url = settings.JUPITER_API_URL.rstrip("/")
        self.headers = settings.jupiter_headers
        self.timeout = aiohttp.ClientTimeout(total=settings.SWAP_TIMEOUT_SEC)

    async def get_order(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        taker: str,
        slippage_bps: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Get a quote and unsigned transaction from Jupiter Ultra.

        Args:
            input_mint: Input token mint address
            output_mint: Output token mint address
            amount: Amount in native units of the input token
            taker: Wallet that will sign the transaction
            slippage_bps: Slippage tolerance in basis points (50 = 0.5%)

        Returns:
            Order data; carries `transaction` and `requestId` when routable
        """
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "taker": taker,
        }
        if slippage_bps is not None:
            params["slippageBps"] = str(slippage_bps)

        logger.info(f"Getting Jupiter order: {amount} {input_mint[:8]}... → {output_mint[:8]}...")
        return await self._request("GET", "/order", params=params)

    async def execute_order(self, request_id: str, signed_transaction: str) -> Dict[str, Any]:
        """
        Submit a signed order transaction.

        Args:
            request_id: requestId returned by get_order
            signed_transaction: base64 signed transaction

        Returns:
            Execution data; carries `signature` and `status` when accepted
        """
        payload = {
            "requestId": request_id,
            "signedTransaction": signed_transaction,
        }
        logger.info(f"SWAP submitting order {str(request_id)[:12]}...")
        return await self._request("POST", "/execute", json=payload)

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with self.session.request(
                method,
                url,
                headers=self.headers,
                timeout=self.timeout,
                **kwargs
            ) as resp:
                if resp.status != 200:
                    error = await resp.text()
                    logger.error(f"Jupiter {path} failed: {resp.status} - {error[:200]}")
                    raise RemoteUnavailable(
                        f"Jupiter API error: {resp.status}",
                        endpoint=path,
                        detail=_error_detail(error)
                    )
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Jupiter {path} request error: {e!r}")
            raise RemoteUnavailable("Cannot connect to Jupiter API", endpoint=path) from e
        except ValueError as e:
            raise RemoteUnavailable("Invalid JSON from Jupiter API", endpoint=path) from e

        if not isinstance(data, dict):
            raise RemoteUnavailable("Unexpected Jupiter response", endpoint=path)
        return data


def _error_detail(body: str) -> str:
    """Keep the aggregator's error text short enough for a chat message."""
    return body.strip().replace("\n", " ")[:120]
