# reactionTally - Discord Reaction Tally Bot
# AGPL-3.0 License - https://www.gnu.org/licenses/agpl-3.0.html

"""
Reaction Tracking Opt-Out Command

Slash command that lets members stop their reactions from counting
toward anyone's tally.
"""

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from tally import OptOutRegistry, OptOutResult

logger = logging.getLogger("reactionTally.commands.optout")

OPT_OUT_CONFIRMATION = (
    "{name}, you have been added to the ignored users list. "
    "You will no longer participate in reaction tracking."
)
ALREADY_OPTED_OUT = "{name}, you are already on the ignored users list."
OPT_OUT_FAILED = "Something went wrong while updating the ignored users list. Please try again later."


class OptOutCommands(commands.Cog):
    """
    Slash command for reaction tracking opt-out.

    Commands:
    - /ignorar - Stop your reactions from being counted
    """

    def __init__(self, bot: commands.Bot, registry: OptOutRegistry):
        self.bot = bot
        self.registry = registry

    @app_commands.command(
        name="ignorar",
        description="Opt-out from participating in reaction tracking.",
    )
    async def ignorar(self, interaction: discord.Interaction):
        """Add the invoking user to the ignored users list."""
        user = interaction.user
        logger.info(f"Opt-out requested by {user.name} ({user.id})")

        try:
            result = await self.registry.add_ignored_user(user.id)
        except Exception as e:
            logger.error(f"Error opting out user {user.id}: {e}", exc_info=True)
            await interaction.response.send_message(OPT_OUT_FAILED, ephemeral=True)
            return

        if result is OptOutResult.ALREADY_IGNORED:
            message = ALREADY_OPTED_OUT.format(name=user.name)
        else:
            message = OPT_OUT_CONFIRMATION.format(name=user.name)
        await interaction.response.send_message(message, ephemeral=True)


async def setup(
    bot: commands.Bot,
    registry: OptOutRegistry,
    guild: Optional[discord.abc.Snowflake] = None,
):
    """Add the cog to the bot, scoping its command to a guild if given."""
    if guild is not None:
        await bot.add_cog(OptOutCommands(bot, registry), guild=guild)
    else:
        await bot.add_cog(OptOutCommands(bot, registry))
