from __future__ import annotations

from typing import Tuple


class MelodiqaError(Exception):
    """Base error for expected streaming-session failures."""


class AudioDeviceError(MelodiqaError):
    pass


class DeviceNotFoundError(AudioDeviceError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Audio device name not found: {name}")
        self.name = name


class DeviceIndexError(AudioDeviceError):
    def __init__(self, index: int) -> None:
        super().__init__(f"Audio device index out of range: {index}")
        self.index = index


class TokenMissingError(MelodiqaError):
    pass


class GuildNotFoundError(MelodiqaError):
    def __init__(self, guild_id: int) -> None:
        super().__init__(f"Guild not found: {guild_id}")
        self.guild_id = guild_id


class VoiceChannelNotFoundError(MelodiqaError):
    def __init__(self, channel_id: int) -> None:
        super().__init__(f"Voice channel not found: {channel_id}")
        self.channel_id = channel_id


def parse_error_message(error: Exception) -> str:
    """
    Map raw exceptions into short, human-readable messages.
    Used for admin notifications and logs.
    """
    s, t = str(error), type(error).__name__
    if isinstance(error, MelodiqaError):
        return f"❌ {s}"
    if "429" in s or t == "RateLimited":
        return "⚠️ Rate Limited: Discord is temporarily rate-limiting the bot. Please retry shortly."
    if "401" in s or t == "LoginFailure":
        return "❌ Authentication Error: Invalid Discord bot token."
    if "404" in s or t == "NotFound":
        return "❌ Not Found: The requested Discord resource was not found."
    if "403" in s or t == "Forbidden":
        return "❌ Forbidden: The bot is missing permissions for this action."
    if t == "PortAudioError":
        return f"🎙️ Audio Device Error: {s.split(chr(10))[0][:100]}"
    if "Connection" in t or t == "TimeoutError" or "ETIMEDOUT" in s:
        return "❌ Connection Error: Unable to reach the Discord voice server."
    return f"❌ {t}: {s.split(chr(10))[0][:100]}"


def format_user_friendly_error(error: Exception) -> str:
    """
    Short, safe error message suitable for end users.
    """
    s, t = str(error), type(error).__name__
    if "429" in s or t == "RateLimited":
        return "The bot is busy right now, please try again shortly."
    if "403" in s or t == "Forbidden":
        return "I don't have permission to do that in this server."
    if isinstance(error, AudioDeviceError) or t == "PortAudioError":
        return "The audio input device is unavailable. The admins have been notified."
    if "Connection" in t or t == "TimeoutError":
        return "Could not reach the voice server, please try again."
    return "Something went wrong while running the command. The admins have been notified."


def error_messages(error: Exception) -> Tuple[str, str]:
    """
    Convenience helper returning (admin_message, user_message).
    """
    return parse_error_message(error), format_user_friendly_error(error)
