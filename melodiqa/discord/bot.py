from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import discord
from discord.ext import commands

from .commands import register_commands

if TYPE_CHECKING:
    from melodiqa.streamer import Melodiqa


def build_intents(config: dict[str, Any]) -> discord.Intents:
    intents = discord.Intents.none()
    intents.guilds = True
    # Need messages in guilds to accept commands from users
    intents.guild_messages = True
    # Need voice states to connect and to find a member's voice channel
    intents.voice_states = True
    intents.message_content = bool(config.get("message_content_intent", True))
    return intents


def build_presence(config: dict[str, Any]) -> tuple[discord.Activity | None, discord.Status]:
    activity_name = config.get("activity")
    activity = (
        discord.Activity(type=discord.ActivityType.listening, name=activity_name[:128])
        if activity_name else None
    )
    return activity, discord.Status(config.get("status", "dnd"))


class MelodiqaBot(commands.Bot):
    """Gateway client for one streaming session."""

    def __init__(self, session: Melodiqa, config: dict[str, Any]) -> None:
        activity, status = build_presence(config)
        intents = build_intents(config)
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            activity=activity,
            status=status,
            # voice state cache lets /join find the caller's channel
            member_cache_flags=discord.MemberCacheFlags.from_intents(intents),
        )
        self.session = session
        self.config = config

    async def setup_hook(self) -> None:
        if self.config.get("commands", {}).get("enabled", True):
            register_commands(self)

    async def sync_commands(self, guild: discord.abc.Snowflake) -> None:
        """Copy slash commands to the target guild so they show up immediately."""
        if not self.config.get("commands", {}).get("enabled", True):
            return
        self.tree.copy_global_to(guild=guild)
        try:
            synced = await self.tree.sync(guild=guild)
        except discord.HTTPException as e:
            logging.warning("Could not sync slash commands (is the applications.commands scope granted?): %s", e)
            return
        logging.info("Synced %d slash commands", len(synced))

    async def on_ready(self) -> None:
        logging.info("Logged in as %s (id: %s)", self.user, getattr(self.user, "id", "?"))
