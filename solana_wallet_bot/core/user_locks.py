from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

logger = logging.getLogger(__name__)


class UserLocks:
    """
    Non-blocking per-user single-flight guard.

    A second acquire for the same user while the first is held yields False
    instead of waiting, so a double tap cannot submit two swaps.
    """

    def __init__(self) -> None:
        self._busy: set[str] = set()

    def is_busy(self, user_id: str) -> bool:
        return user_id in self._busy

    @asynccontextmanager
    async def acquire(self, user_id: str) -> AsyncIterator[bool]:
        # Check and add happen with no await in between, so this is atomic on the loop
        if user_id in self._busy:
            logger.info(f"Sell already in progress for {user_id}")
            yield False
            return
        self._busy.add(user_id)
        try:
            yield True
        finally:
            self._busy.discard(user_id)
