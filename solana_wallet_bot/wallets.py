"""
Wallet registration for bot users.

The bot never creates or imports keys over chat; an operator registers a
wallet for a Telegram user id with this tool:

    python -m solana_wallet_bot.wallets generate <telegram_id> [--username NAME]
    python -m solana_wallet_bot.wallets import <telegram_id> <secret_key>
    python -m solana_wallet_bot.wallets reset <telegram_id>

Secret keys are accepted as base58 or as a JSON byte array and are stored
encrypted with ENCRYPTION_KEY.
"""

import argparse
import logging
import sys
from typing import Optional, Tuple

import base58
from solders.keypair import Keypair

from solana_wallet_bot.config import Settings
from solana_wallet_bot.core.keystore import KeyStore, keypair_from_secret
from solana_wallet_bot.core.models import User
from solana_wallet_bot.db.database import DatabaseManager
from solana_wallet_bot.exceptions import BotException, WalletRegistrationError

logger = logging.getLogger(__name__)


def generate_wallet(
    db: DatabaseManager,
    keystore: KeyStore,
    telegram_id: str,
    username: Optional[str] = None
) -> Tuple[User, Keypair]:
    """
    Create a fresh wallet for a user.

    Refuses when the user already has one; reset first to replace it.
    """
    existing = db.find_user(telegram_id)
    if existing is not None:
        raise WalletRegistrationError(
            "User already has a wallet", telegram_id=telegram_id, wallet=existing.wallet_address
        )
    keypair = Keypair()
    user = _store(db, keystore, telegram_id, keypair, username)
    return user, keypair


def import_wallet(
    db: DatabaseManager,
    keystore: KeyStore,
    telegram_id: str,
    secret: str,
    username: Optional[str] = None
) -> User:
    """Register an existing secret key, replacing the user's current wallet."""
    try:
        keypair = keypair_from_secret(secret)
    except (TypeError, ValueError) as e:
        raise WalletRegistrationError("Not a valid Solana secret key") from e

    owner = db.find_user_by_wallet(str(keypair.pubkey()))
    if owner is not None and owner.telegram_id != telegram_id:
        raise WalletRegistrationError(
            "Wallet already registered to another user", wallet=str(keypair.pubkey())
        )
    return _store(db, keystore, telegram_id, keypair, username)


def reset_wallet(db: DatabaseManager, telegram_id: str) -> bool:
    """Delete a user's wallet and swap records (e.g. after ENCRYPTION_KEY changed)."""
    return db.delete_user(telegram_id)


def _store(
    db: DatabaseManager,
    keystore: KeyStore,
    telegram_id: str,
    keypair: Keypair,
    username: Optional[str]
) -> User:
    address = str(keypair.pubkey())
    user = db.save_user(telegram_id, address, keystore.encrypt_keypair(keypair), username)
    logger.info(f"Wallet registered for {telegram_id}: {address[:8]}...")
    return user


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Register wallets for wallet bot users.")
    commands = parser.add_subparsers(dest="command", required=True)

    generate = commands.add_parser("generate", help="Create a new wallet for a user")
    generate.add_argument("telegram_id")
    generate.add_argument("--username", default=None)

    imported = commands.add_parser("import", help="Register an existing secret key")
    imported.add_argument("telegram_id")
    imported.add_argument("secret_key")
    imported.add_argument("--username", default=None)

    reset = commands.add_parser("reset", help="Delete a user's wallet")
    reset.add_argument("telegram_id")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings.from_env()
        db = DatabaseManager(settings.DB_PATH)

        if args.command == "reset":
            if reset_wallet(db, args.telegram_id):
                print(f"✅ Wallet reset for {args.telegram_id}")
            else:
                print(f"No wallet found for {args.telegram_id}")
            return 0

        keystore = KeyStore(settings.ENCRYPTION_KEY)
        if args.command == "generate":
            user, keypair = generate_wallet(db, keystore, args.telegram_id, args.username)
            print(f"✅ Wallet generated for {user.telegram_id}")
            print(f"Address: {user.wallet_address}")
            print(f"Private key: {base58.b58encode(bytes(keypair)).decode('ascii')}")
            print("⚠️ Hand the private key to the user securely; it is not shown again.")
        else:
            user = import_wallet(db, keystore, args.telegram_id, args.secret_key, args.username)
            print(f"✅ Wallet imported for {user.telegram_id}")
            print(f"Address: {user.wallet_address}")
        return 0
    except BotException as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
