from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

import discord

from melodiqa.errors import parse_error_message, format_user_friendly_error


def admin_ids(config: dict[str, Any]) -> list[int]:
    return list(config.get("permissions", {}).get("admin_ids", []) or [])


async def notify_admin_error(
    discord_bot: discord.Client,
    config: dict[str, Any],
    error: BaseException,
    context: str = "",
) -> None:
    """
    Send a concise error notification to all configured admins.
    """
    ids = admin_ids(config)
    if not ids:
        return

    msg = (
        "🎙️ **Melodiqa Error Notification**\n"
        f"⏰ Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
        f"📝 Context: {context}\n\nError: {parse_error_message(error)}"
    )
    for admin_id in ids:
        try:
            user = discord_bot.get_user(admin_id) or await discord_bot.fetch_user(admin_id)
            await user.send(msg)
        except discord.HTTPException as e:
            logging.warning("Could not notify admin %s: %s", admin_id, e)


async def handle_app_command_error(
    interaction: discord.Interaction,
    error: Exception,
    discord_bot: discord.Client,
    config: dict[str, Any],
) -> None:
    """
    Standard handler for slash command errors.
    """
    original = getattr(error, "original", error)
    logging.error("App command error: %s", error, exc_info=original)
    await notify_admin_error(
        discord_bot,
        config,
        original,
        f"App command error: {getattr(interaction.command, 'name', 'unknown')}",
    )
    reply = format_user_friendly_error(original)
    try:
        if not interaction.response.is_done():
            await interaction.response.send_message(reply, ephemeral=True)
        else:
            await interaction.followup.send(reply, ephemeral=True)
    except discord.HTTPException as e:
        logging.warning("Could not report command error to user: %s", e)
