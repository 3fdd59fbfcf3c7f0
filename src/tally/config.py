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
Tally Bot Configuration

Runtime settings for the reaction tally bot.
Values are read from environment variables (optionally via a .env file).
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_TALLY_PATH = "user_reactions.csv"
DEFAULT_IGNORED_PATH = "ignored_users.csv"
DEFAULT_REACTION_INCREMENT = 1


class ConfigurationError(Exception):
    """Raised when a required setting is missing."""

    pass


@dataclass
class TallyConfig:
    """Configuration for the reaction tally bot."""

    token: Optional[str] = None
    tally_path: str = DEFAULT_TALLY_PATH
    ignored_path: str = DEFAULT_IGNORED_PATH
    guild_id: Optional[int] = None  # None disables the /ignorar command
    reaction_increment: int = DEFAULT_REACTION_INCREMENT

    @classmethod
    def from_env(cls, require_token: bool = True) -> "TallyConfig":
        """
        Create config from environment variables with defaults.

        Args:
            require_token: Raise if DISCORD_BOT_TOKEN is missing. Offline
                tools that never connect to Discord pass False.

        Raises:
            ConfigurationError: If the token is required and not set
        """
        token = os.getenv("DISCORD_BOT_TOKEN")
        if require_token and not token:
            raise ConfigurationError("DISCORD_BOT_TOKEN environment variable is not set.")

        return cls(
            token=token or None,
            tally_path=os.getenv("CSV_FILE_PATH") or DEFAULT_TALLY_PATH,
            ignored_path=os.getenv("IGNORED_USERS_CSV_PATH") or DEFAULT_IGNORED_PATH,
            guild_id=_parse_guild_id(os.getenv("GUILD_ID")),
            reaction_increment=_parse_increment(os.getenv("REACTION_INCREMENT")),
        )


def _parse_guild_id(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    try:
        guild_id = int(raw.strip())
    except ValueError:
        logger.warning(f"Ignoring invalid GUILD_ID {raw!r}")
        return None
    if guild_id <= 0:
        logger.warning(f"Ignoring invalid GUILD_ID {raw!r}")
        return None
    return guild_id


def _parse_increment(raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        return DEFAULT_REACTION_INCREMENT
    try:
        increment = int(raw.strip())
    except ValueError:
        logger.warning(
            f"Invalid REACTION_INCREMENT {raw!r}, using {DEFAULT_REACTION_INCREMENT}"
        )
        return DEFAULT_REACTION_INCREMENT
    if increment < 0:
        # Tallies never decrease
        logger.warning(
            f"REACTION_INCREMENT cannot be negative, got {increment}; using {DEFAULT_REACTION_INCREMENT}"
        )
        return DEFAULT_REACTION_INCREMENT
    return increment
