# reactionTally - Discord Reaction Tally Bot
# Copyright (c) 2025-2026 reactionTally contributors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""
Reaction counting engine.

Decides whether a reaction counts toward its message author's tally and
keeps the tally table on disk in step with memory.

Counting rules, checked in order:
  1. A reaction from the message author never counts.
  2. A reaction from an opted-out user never counts.
  3. Each (author, message) pair counts at most once, no matter how many
     people react to it.

Opted-out authors still accrue tallies from other people's reactions; the
opt-out only silences their own reactions.

The record of counted messages lives in memory only, so after a restart a
message seen before can be counted once more.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .optout import OptOutRegistry
from .storage import UNKNOWN_USER_NAME, StorageError, TallyRecord, TallyStorage

logger = logging.getLogger(__name__)

NameResolver = Callable[[int], Optional[str]]


class ReactionDecision(str, Enum):
    """What the engine did with a reaction."""

    COUNTED = "counted"
    SELF_REACTION = "self_reaction"
    OPTED_OUT = "opted_out"
    ALREADY_COUNTED = "already_counted"


@dataclass(frozen=True)
class ReactionEvent:
    """A reaction added to a message."""

    message_id: int
    message_author_id: int
    reactor_id: int


class ReactionCounter:
    """Per-author reaction tallies with per-message deduplication."""

    def __init__(
        self,
        storage: TallyStorage,
        opt_outs: OptOutRegistry,
        increment: int = 1,
        name_resolver: Optional[NameResolver] = None,
    ):
        """
        Initialize the counter.

        Args:
            storage: Where tallies are persisted
            opt_outs: Registry of users whose reactions are ignored
            increment: Amount added to a tally per counted reaction
            name_resolver: Returns a display name for a user ID, or None
        """
        self.storage = storage
        self.opt_outs = opt_outs
        self.increment = increment
        self.name_resolver = name_resolver

        self._tallies: dict[int, TallyRecord] = {}
        self._counted_messages: dict[int, set[int]] = {}
        self._lock = asyncio.Lock()

    def load(self) -> None:
        """Replace in-memory tallies with the persisted table."""
        try:
            records = self.storage.load_tallies()
        except StorageError as e:
            logger.error(f"Error loading tallies: {e}", exc_info=True)
            records = []
        self._tallies = {record.user_id: record for record in records}

    def get_count(self, user_id: int) -> int:
        record = self._tallies.get(user_id)
        return record.count if record else 0

    def get_record(self, user_id: int) -> Optional[TallyRecord]:
        return self._tallies.get(user_id)

    def records(self) -> list[TallyRecord]:
        """All tallies, highest count first."""
        return sorted(self._tallies.values(), key=lambda r: (-r.count, r.user_id))

    def classify(self, event: ReactionEvent) -> ReactionDecision:
        """Decide whether an event would be counted, without changing state."""
        if event.reactor_id == event.message_author_id:
            return ReactionDecision.SELF_REACTION
        if self.opt_outs.is_ignored(event.reactor_id):
            return ReactionDecision.OPTED_OUT
        if event.message_id in self._counted_messages.get(event.message_author_id, ()):
            return ReactionDecision.ALREADY_COUNTED
        return ReactionDecision.COUNTED

    async def handle_reaction(self, event: ReactionEvent) -> ReactionDecision:
        """
        Count a reaction toward its message author if it qualifies.

        A counted reaction rewrites the whole tally file before the lock is
        released. If that write fails the increment is kept in memory and
        the error is logged.

        Args:
            event: The reaction to consider

        Returns:
            The decision taken for this event
        """
        async with self._lock:
            decision = self.classify(event)
            if decision is not ReactionDecision.COUNTED:
                logger.debug(
                    f"Reaction by {event.reactor_id} on message {event.message_id} "
                    f"not counted: {decision.value}"
                )
                return decision

            author_id = event.message_author_id
            self._counted_messages.setdefault(author_id, set()).add(event.message_id)

            record = self._tallies.get(author_id)
            if record is None:
                record = TallyRecord(user_id=author_id)
                self._tallies[author_id] = record
            record.count += self.increment

            name = self._resolve_name(author_id)
            if name:
                record.user_name = name

            logger.info(
                f"Message author {record.user_name} received a reaction. "
                f"Total reactions for this user: {record.count}."
            )

            await self._save()
            return decision

    def _resolve_name(self, user_id: int) -> Optional[str]:
        if self.name_resolver is None:
            return None
        try:
            return self.name_resolver(user_id)
        except Exception as e:
            logger.warning(f"Could not resolve name for user {user_id}: {e}")
            return None

    async def _save(self) -> None:
        # Caller holds the lock; copy rows so the worker thread sees a stable view
        snapshot = [
            TallyRecord(r.user_id, r.user_name or UNKNOWN_USER_NAME, r.count)
            for r in self._tallies.values()
        ]
        try:
            await asyncio.to_thread(self.storage.save_tallies, snapshot)
        except StorageError as e:
            logger.error(f"Error saving tallies: {e}", exc_info=True)
