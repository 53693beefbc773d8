"""
Database Manager for the Wallet Bot

Handles user wallet records and the log of submitted swaps.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.models import User

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    SQLite database manager.

    Features:
    - User wallet records (address + encrypted key, never plaintext)
    - Submitted swap log for reconciling unconfirmed outcomes
    - Deleting a user cascades to their swap records
    """

    def __init__(self, db_path: str = "wallet_bot.db"):
        """
        Initialize database manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._init_db()
        logger.info(f"Database initialized: {db_path}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_db(self):
        """Initialize database with schema"""
        schema_path = Path(__file__).parent / "schema.sql"

        if not schema_path.exists():
            logger.error(f"Schema file not found: {schema_path}")
            raise FileNotFoundError(f"Schema file not found: {schema_path}")

        with open(schema_path, 'r') as f:
            schema_sql = f.read()

        with self._connect() as conn:
            conn.executescript(schema_sql)

        logger.info("Database schema created/verified")

    # =========================================================================
    # User Operations
    # =========================================================================

    def save_user(
        self,
        telegram_id: str,
        wallet_address: str,
        encrypted_private_key: str,
        username: Optional[str] = None
    ) -> User:
        """Create or replace the wallet record for a user."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (telegram_id, wallet_address, encrypted_private_key, username)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(telegram_id) DO UPDATE SET
                    wallet_address = excluded.wallet_address,
                    encrypted_private_key = excluded.encrypted_private_key,
                    username = excluded.username
                """,
                (telegram_id, wallet_address, encrypted_private_key, username)
            )
        logger.info(f"User saved: {telegram_id} wallet={wallet_address[:8]}...")
        return User(telegram_id, wallet_address, encrypted_private_key, username)

    def find_user(self, telegram_id: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE telegram_id = ?", (telegram_id,)
            ).fetchone()
        return _row_to_user(row) if row else None

    def find_user_by_wallet(self, wallet_address: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE wallet_address = ?", (wallet_address,)
            ).fetchone()
        return _row_to_user(row) if row else None

    def delete_user(self, telegram_id: str) -> bool:
        """Remove a user and everything that belongs to them."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM users WHERE telegram_id = ?", (telegram_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"User deleted: {telegram_id}")
        return deleted

    # =========================================================================
    # Swap Log Operations
    # =========================================================================

    def record_submitted_transaction(
        self,
        signature: str,
        telegram_id: Optional[str],
        input_mint: str,
        output_mint: str,
        amount_native: int
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO pending_transactions (
                    signature, telegram_id, input_mint, output_mint, amount_native
                )
                VALUES (?, ?, ?, ?, ?)
                """,
                (signature, telegram_id, input_mint, output_mint, str(amount_native))
            )
        logger.debug(f"Swap recorded: {signature[:16]}...")

    def mark_transaction(self, signature: str, status: str, error: Optional[str] = None) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE pending_transactions
                SET status = ?, error = ?, updated_at = CURRENT_TIMESTAMP
                WHERE signature = ?
                """,
                (status, error, signature)
            )

    def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM pending_transactions WHERE signature = ?", (signature,)
            ).fetchone()
        return _row_to_tx(row) if row else None

    def get_unresolved_transactions(self) -> List[Dict[str, Any]]:
        """Swaps whose on-chain outcome is still unknown."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM pending_transactions
                WHERE status IN ('submitted', 'unconfirmed')
                ORDER BY created_at
                """
            ).fetchall()
        return [_row_to_tx(row) for row in rows]


def _row_to_tx(row: sqlite3.Row) -> Dict[str, Any]:
    data = dict(row)
    data["amount_native"] = int(data["amount_native"])
    return data


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        telegram_id=row["telegram_id"],
        wallet_address=row["wallet_address"],
        encrypted_private_key=row["encrypted_private_key"],
        username=row["username"],
    )
