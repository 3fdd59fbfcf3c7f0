"""
Opt-out registry.

Users in the registry never have their reactions counted toward anyone's
tally. Every change is written to disk immediately.
"""

import asyncio
import logging
from enum import Enum

from .storage import StorageError, TallyStorage

logger = logging.getLogger(__name__)


class OptOutResult(str, Enum):
    """Outcome of an opt-out registry change."""

    ADDED = "added"
    ALREADY_IGNORED = "already_ignored"
    REMOVED = "removed"
    NOT_IGNORED = "not_ignored"


class OptOutRegistry:
    """In-memory set of opted-out user IDs, persisted on every change."""

    def __init__(self, storage: TallyStorage):
        self.storage = storage
        self._ignored: set[int] = set()
        self._lock = asyncio.Lock()

    def load(self) -> None:
        """Replace the in-memory set with the persisted one."""
        try:
            self._ignored = self.storage.load_opt_outs()
        except StorageError as e:
            logger.error(f"Error loading ignored users: {e}", exc_info=True)
            self._ignored = set()

    def is_ignored(self, user_id: int) -> bool:
        return user_id in self._ignored

    def user_ids(self) -> set[int]:
        return set(self._ignored)

    def __len__(self) -> int:
        return len(self._ignored)

    async def add_ignored_user(self, user_id: int) -> OptOutResult:
        """
        Opt a user out of reaction tracking.

        Returns:
            ADDED, or ALREADY_IGNORED if the user was already in the set
        """
        async with self._lock:
            if user_id in self._ignored:
                logger.info(f"User {user_id} is already in the ignored users list")
                return OptOutResult.ALREADY_IGNORED

            self._ignored.add(user_id)
            await self._save()
            logger.info(f"User {user_id} added to ignored users")
            return OptOutResult.ADDED

    async def remove_ignored_user(self, user_id: int) -> OptOutResult:
        """
        Opt a user back in to reaction tracking.

        Returns:
            REMOVED, or NOT_IGNORED if the user was not in the set
        """
        async with self._lock:
            if user_id not in self._ignored:
                logger.info(f"User {user_id} is not in the ignored users list")
                return OptOutResult.NOT_IGNORED

            self._ignored.discard(user_id)
            await self._save()
            logger.info(f"User {user_id} removed from ignored users")
            return OptOutResult.REMOVED

    async def _save(self) -> None:
        # Caller holds the lock. A failed write leaves memory ahead of disk.
        snapshot = set(self._ignored)
        try:
            await asyncio.to_thread(self.storage.save_opt_outs, snapshot)
        except StorageError as e:
            logger.error(f"Error saving ignored users: {e}", exc_info=True)
