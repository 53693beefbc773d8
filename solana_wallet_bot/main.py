import asyncio
import logging
import platform
import signal
import sys

import aiohttp
from solana.rpc.async_api import AsyncClient

from solana_wallet_bot.config import Settings
from solana_wallet_bot.core.holdings import HoldingsGateway
from solana_wallet_bot.core.jupiter_client import JupiterUltraClient
from solana_wallet_bot.core.keystore import KeyStore
from solana_wallet_bot.core.pending_store import PendingActionStore
from solana_wallet_bot.core.router import SellRouter
from solana_wallet_bot.core.sell_flow import SellFlow
from solana_wallet_bot.core.swap_executor import SwapExecutor
from solana_wallet_bot.core.tx_confirmer import TransactionConfirmer
from solana_wallet_bot.core.user_locks import UserLocks
from solana_wallet_bot.db.database import DatabaseManager
from solana_wallet_bot.exceptions import ConfigurationException
from solana_wallet_bot.telegram_bot import TelegramSellBot
from solana_wallet_bot.utils.logging import setup_logging

logger = logging.getLogger(__name__)

PURGE_INTERVAL_SEC = 60


async def purge_pending_loop(store: PendingActionStore, shutdown_event: asyncio.Event):
    """Drop abandoned custom-amount prompts until shutdown."""
    while not shutdown_event.is_set():
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=PURGE_INTERVAL_SEC)
        except asyncio.TimeoutError:
            store.purge_expired()


async def main(settings: Settings):
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_shutdown(sig):
        logger.info(f"🛑 [SHUTDOWN] Received signal {sig}...")
        shutdown_event.set()

    if platform.system() != "Windows":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: handle_shutdown(s))

    db = DatabaseManager(settings.DB_PATH)
    keystore = KeyStore(settings.ENCRYPTION_KEY)
    holdings = HoldingsGateway(settings)
    session = aiohttp.ClientSession()
    rpc = AsyncClient(settings.active_rpc_url)

    jupiter = JupiterUltraClient(session, settings)
    confirmer = TransactionConfirmer(rpc, timeout=settings.CONFIRM_TIMEOUT_SEC)
    executor = SwapExecutor(
        jupiter,
        confirmer,
        decimals_lookup=holdings.fetch_token_decimals,
        tx_log=db,
    )
    pending = PendingActionStore(ttl_sec=settings.PENDING_INPUT_TTL_SEC)
    flow = SellFlow(db, keystore, holdings, executor, pending, UserLocks(), settings)
    bot = TelegramSellBot(settings, SellRouter(flow))

    unresolved = db.get_unresolved_transactions()
    if unresolved:
        logger.warning(f"⚠️ {len(unresolved)} submitted swaps still have no confirmed outcome")

    logger.info(f"🚀 Wallet bot starting ({settings.SOLANA_NETWORK}, rpc={settings.active_rpc_url})")
    bot_task = asyncio.create_task(bot.run())
    purge_task = asyncio.create_task(purge_pending_loop(pending, shutdown_event))

    try:
        done, _ = await asyncio.wait(
            {bot_task, asyncio.create_task(shutdown_event.wait())},
            return_when=asyncio.FIRST_COMPLETED,
        )
        if bot_task in done and not bot_task.cancelled() and bot_task.exception():
            logger.error(f"❌ Telegram loop crashed: {bot_task.exception()!r}")
    finally:
        logger.info("Initiating graceful shutdown...")
        shutdown_event.set()
        bot.stop()
        if not bot_task.done():
            bot_task.cancel()
            try:
                await asyncio.wait_for(bot_task, timeout=3.0)
            except (asyncio.CancelledError, asyncio.TimeoutError):
                pass
        await purge_task

        await bot.close()
        await holdings.close()
        if not session.closed:
            await session.close()
        await rpc.close()
        logger.info("Shutdown complete")


def run():
    try:
        settings = Settings.from_env()
        setup_logging(settings)
        if not settings.ENCRYPTION_KEY:
            raise ConfigurationException("ENCRYPTION_KEY is required")
        asyncio.run(main(settings))
    except ConfigurationException as e:
        print(f"🔥 Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("👋 Bot stopped by user.")


if __name__ == "__main__":
    run()
