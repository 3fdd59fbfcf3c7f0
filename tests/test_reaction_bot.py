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

"""Tests for the Discord event adapter."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reaction_bot import ReactionTallyBot
from tally import ReactionDecision, TallyConfig

GUILD_ID = 123456789012345678


@pytest.fixture
def config(tmp_path):
    return TallyConfig(
        token="test-token",
        tally_path=str(tmp_path / "user_reactions.csv"),
        ignored_path=str(tmp_path / "ignored_users.csv"),
        guild_id=GUILD_ID,
    )


def make_payload(message_id=1, user_id=200, author_id=100, channel_id=555):
    payload = MagicMock()
    payload.message_id = message_id
    payload.user_id = user_id
    payload.channel_id = channel_id
    payload.message_author_id = author_id
    return payload


def http_error(cls, status):
    response = MagicMock(status=status, reason="error")
    return cls(response, "error")


class TestSetup:

    @pytest.mark.asyncio
    async def test_setup_registers_guild_command(self, config):
        bot = ReactionTallyBot(config)
        await bot.setup_hook()

        assert bot.get_cog("OptOutCommands") is not None
        assert bot.tree.get_command("ignorar", guild=discord.Object(id=GUILD_ID)) is not None
        assert bot.tree.get_command("ignorar") is None

    @pytest.mark.asyncio
    async def test_setup_without_guild_skips_command(self, config):
        config.guild_id = None
        bot = ReactionTallyBot(config)
        await bot.setup_hook()

        assert bot.get_cog("OptOutCommands") is None

    @pytest.mark.asyncio
    async def test_setup_loads_tables(self, config):
        Path(config.tally_path).write_text(
            "User ID,User Name,Reactions Received\n100,alice,4\n"
        )
        Path(config.ignored_path).write_text("User ID\n300\n")

        bot = ReactionTallyBot(config)
        await bot.setup_hook()

        assert bot.counter.get_count(100) == 4
        assert bot.opt_outs.is_ignored(300)

    @pytest.mark.asyncio
    async def test_register_commands_syncs_guild_once(self, config):
        bot = ReactionTallyBot(config)
        await bot.setup_hook()

        with patch.object(bot.tree, "sync", new=AsyncMock(return_value=[MagicMock()])) as sync:
            await bot.register_commands()
            sync.assert_awaited_once()
            assert sync.call_args.kwargs["guild"].id == GUILD_ID
        assert bot._commands_registered is True

    @pytest.mark.asyncio
    async def test_register_commands_failure_is_logged(self, config):
        bot = ReactionTallyBot(config)
        failing = AsyncMock(side_effect=http_error(discord.HTTPException, 500))

        with patch.object(bot.tree, "sync", new=failing):
            await bot.register_commands()
        assert bot._commands_registered is False


class TestReactionEvents:

    @pytest.mark.asyncio
    async def test_reaction_counts_for_author(self, config):
        bot = ReactionTallyBot(config)
        bot.counter.load()

        await bot.on_raw_reaction_add(make_payload())
        assert bot.counter.get_count(100) == 1

    @pytest.mark.asyncio
    async def test_reaction_uses_cached_user_name(self, config):
        bot = ReactionTallyBot(config)
        user = MagicMock()
        user.name = "alice"
        bot.get_user = MagicMock(return_value=user)

        await bot.on_raw_reaction_add(make_payload())
        assert bot.counter.get_record(100).user_name == "alice"
        bot.get_user.assert_called_with(100)

    @pytest.mark.asyncio
    async def test_author_fetched_when_missing_from_payload(self, config):
        bot = ReactionTallyBot(config)
        message = MagicMock()
        message.author.id = 100
        channel = MagicMock()
        channel.fetch_message = AsyncMock(return_value=message)
        bot.get_channel = MagicMock(return_value=channel)

        await bot.on_raw_reaction_add(make_payload(author_id=None))

        channel.fetch_message.assert_awaited_once_with(1)
        assert bot.counter.get_count(100) == 1

    @pytest.mark.asyncio
    async def test_channel_fetched_when_not_cached(self, config):
        bot = ReactionTallyBot(config)
        message = MagicMock()
        message.author.id = 100
        channel = MagicMock()
        channel.fetch_message = AsyncMock(return_value=message)
        bot.get_channel = MagicMock(return_value=None)
        bot.fetch_channel = AsyncMock(return_value=channel)

        await bot.on_raw_reaction_add(make_payload(author_id=None))

        bot.fetch_channel.assert_awaited_once_with(555)
        assert bot.counter.get_count(100) == 1

    @pytest.mark.asyncio
    async def test_deleted_message_is_dropped(self, config):
        bot = ReactionTallyBot(config)
        channel = MagicMock()
        channel.fetch_message = AsyncMock(side_effect=http_error(discord.NotFound, 404))
        bot.get_channel = MagicMock(return_value=channel)

        await bot.on_raw_reaction_add(make_payload(author_id=None))
        assert bot.counter.records() == []

    @pytest.mark.asyncio
    async def test_handler_error_does_not_propagate(self, config):
        bot = ReactionTallyBot(config)
        bot.counter.handle_reaction = AsyncMock(side_effect=RuntimeError("boom"))

        await bot.on_raw_reaction_add(make_payload())

    @pytest.mark.asyncio
    async def test_self_reaction_not_counted(self, config):
        bot = ReactionTallyBot(config)
        bot.counter.handle_reaction = AsyncMock(return_value=ReactionDecision.SELF_REACTION)

        await bot.on_raw_reaction_add(make_payload(user_id=100, author_id=100))

        event = bot.counter.handle_reaction.call_args.args[0]
        assert event.reactor_id == event.message_author_id == 100

    @pytest.mark.asyncio
    async def test_increment_from_config(self, config):
        config.reaction_increment = 5
        bot = ReactionTallyBot(config)

        await bot.on_raw_reaction_add(make_payload())
        assert bot.counter.get_count(100) == 5

    @pytest.mark.asyncio
    async def test_opted_out_reactor_via_command_registry(self, config):
        bot = ReactionTallyBot(config)
        await bot.opt_outs.add_ignored_user(200)

        await bot.on_raw_reaction_add(make_payload(message_id=3))
        assert bot.counter.get_count(100) == 0
