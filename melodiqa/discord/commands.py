"""
Guild-scoped slash commands for controlling a running stream.

/status  anyone        what is being streamed where
/join    admins only   move the stream to the caller's voice channel
/stop    admins only   end the session
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord

from .errors import admin_ids, handle_app_command_error

if TYPE_CHECKING:
    from .bot import MelodiqaBot


def is_admin(bot: MelodiqaBot, user_id: int) -> bool:
    return user_id in admin_ids(bot.config)


def register_commands(bot: MelodiqaBot) -> None:
    @bot.tree.command(name="status", description="Show what is being streamed and where")
    async def status_command(interaction: discord.Interaction) -> None:
        await interaction.response.send_message(bot.session.describe(), ephemeral=True)

    @bot.tree.command(name="join", description="Move the stream to your current voice channel")
    async def join_command(interaction: discord.Interaction) -> None:
        if not is_admin(bot, interaction.user.id):
            await interaction.response.send_message("You don't have permission to move the stream.", ephemeral=True)
            return

        voice = getattr(interaction.user, "voice", None)
        if voice is None or voice.channel is None:
            await interaction.response.send_message("You are not connected to a voice channel.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        await bot.session.move_to(voice.channel)
        logging.info("Stream moved to %s by %s", voice.channel.id, interaction.user.id)
        await interaction.followup.send(f"🔊 Now streaming in {voice.channel.mention}", ephemeral=True)

    @bot.tree.command(name="stop", description="Stop streaming and shut the bot down")
    async def stop_command(interaction: discord.Interaction) -> None:
        if not is_admin(bot, interaction.user.id):
            await interaction.response.send_message("You don't have permission to stop the stream.", ephemeral=True)
            return

        await interaction.response.send_message("⏹️ Stopping the stream.", ephemeral=True)
        logging.info("Stop requested by %s", interaction.user.id)
        bot.session.request_stop()

    @bot.tree.error
    async def on_app_command_error(interaction: discord.Interaction, error: discord.app_commands.AppCommandError) -> None:
        await handle_app_command_error(interaction, error, bot, bot.config)
