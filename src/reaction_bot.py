"""
reactionTally Discord Bot

Counts the emoji reactions each member's messages receive and keeps the
totals in a CSV file. Members can opt out of being counted as reactors
with the /ignorar slash command.
"""

import asyncio
import logging
import sys
from typing import Optional

import discord
from discord.ext import commands
from dotenv import load_dotenv

from commands import optout_commands
from tally import (
    ConfigurationError,
    OptOutRegistry,
    ReactionCounter,
    ReactionEvent,
    TallyConfig,
    TallyStorage,
)

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("reactionTally")


class ReactionTallyBot(commands.Bot):
    """Discord bot that tallies reactions received per message author."""

    def __init__(self, config: TallyConfig):
        intents = discord.Intents.default()

        super().__init__(command_prefix=commands.when_mentioned, intents=intents)

        self.config = config
        self.storage = TallyStorage(config.tally_path, config.ignored_path)
        self.opt_outs = OptOutRegistry(self.storage)
        self.counter = ReactionCounter(
            self.storage,
            self.opt_outs,
            increment=config.reaction_increment,
            name_resolver=self.lookup_user_name,
        )
        self._commands_registered = False

    async def setup_hook(self):
        """Called when the bot is starting up."""
        logger.info(f"Setup: CSV_FILE_PATH={self.config.tally_path}")
        logger.info(f"Setup: IGNORED_USERS_CSV_PATH={self.config.ignored_path}")
        logger.info(f"Setup: REACTION_INCREMENT={self.config.reaction_increment}")
        logger.info(f"Setup: GUILD_ID={self.config.guild_id or 'missing'}")

        self.counter.load()
        self.opt_outs.load()

        if self.config.guild_id:
            await optout_commands.setup(
                self, self.opt_outs, guild=discord.Object(id=self.config.guild_id)
            )
        else:
            logger.warning("Guild ID is not set. Slash command not registered.")

    async def on_ready(self):
        """Called when the bot has connected to Discord."""
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

        # on_ready fires again after reconnects
        if self.config.guild_id and not self._commands_registered:
            await self.register_commands()

    async def register_commands(self) -> None:
        """Sync the guild-scoped slash commands with Discord."""
        guild = discord.Object(id=self.config.guild_id)
        try:
            synced = await self.tree.sync(guild=guild)
        except discord.HTTPException as e:
            logger.error(f"Failed to register slash commands for guild {guild.id}: {e}")
            return

        self._commands_registered = True
        logger.info(f"Slash command registered for guild {guild.id} ({len(synced)} command(s)).")

    def lookup_user_name(self, user_id: int) -> Optional[str]:
        """Best-effort username from the client cache."""
        user = self.get_user(user_id)
        return user.name if user else None

    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        """Fire when any reaction is added, even on uncached messages."""
        try:
            await self._handle_reaction(payload)
        except Exception:
            logger.exception(
                f"Error processing reaction on message {payload.message_id} "
                f"from user {payload.user_id}"
            )

    async def _handle_reaction(self, payload: discord.RawReactionActionEvent) -> None:
        author_id = await self._resolve_message_author(payload)
        if author_id is None:
            return

        event = ReactionEvent(
            message_id=payload.message_id,
            message_author_id=author_id,
            reactor_id=payload.user_id,
        )
        await self.counter.handle_reaction(event)

    async def _resolve_message_author(
        self, payload: discord.RawReactionActionEvent
    ) -> Optional[int]:
        """Author of the reacted message, fetching the message if the gateway omitted it."""
        author_id = getattr(payload, "message_author_id", None)
        if author_id is not None:
            return author_id

        try:
            channel = self.get_channel(payload.channel_id)
            if channel is None:
                channel = await self.fetch_channel(payload.channel_id)
            message = await channel.fetch_message(payload.message_id)
        except (discord.NotFound, discord.Forbidden, discord.HTTPException) as e:
            logger.warning(f"Could not fetch message {payload.message_id}: {e}")
            return None

        return message.author.id


async def main(config: TallyConfig):
    """Run the bot until it is closed."""
    bot = ReactionTallyBot(config)
    async with bot:
        await bot.start(config.token)


def run():
    """Console entry point."""
    try:
        config = TallyConfig.from_env()
    except ConfigurationError as e:
        logger.error(f"Error: {e}")
        logger.error("Please set it in your .env file")
        sys.exit(1)

    logger.info("Bot is running...")
    asyncio.run(main(config))


if __name__ == "__main__":
    run()
