"""
Debug commands cog for Warden.
"""

import math

import discord
from discord.ext import commands

from warden.util.logger import get_logger

logger = get_logger("debug_cog")


class DebugCog(commands.Cog):
    """
    Cog containing health-check commands.
    """

    def __init__(self, discord_bot_instance):
        self.discord_bot_instance = discord_bot_instance
        logger.info("Debug cog loaded")

    @commands.slash_command(name="ping", description="Checks if the bot is online and its heartbeat latency.")
    async def ping(self, application_context: discord.ApplicationContext):
        """Reply ephemerally with the gateway heartbeat latency."""
        latency = self.discord_bot_instance.latency
        # latency is nan or inf until the first heartbeat is acknowledged
        if latency is None or not math.isfinite(latency):
            await application_context.respond("Failed to retrieve ping.", ephemeral=True)
            return

        await application_context.respond(f"Pong 🏓! (Heartbeat: {round(latency * 1000)}ms.)", ephemeral=True)


def setup(discord_bot_instance):
    """Cog setup entry point."""
    discord_bot_instance.add_cog(DebugCog(discord_bot_instance))
