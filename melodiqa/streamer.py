from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Optional

import discord

from melodiqa.audio import (
    BufferedPCMSource,
    CaptureThread,
    FrameBuffer,
    InputDevice,
    list_input_devices,
    log_devices,
    resolve_device,
)
from melodiqa.cli import Options, resolve_token
from melodiqa.discord.bot import MelodiqaBot
from melodiqa.discord.errors import notify_admin_error
from melodiqa.errors import GuildNotFoundError, MelodiqaError, VoiceChannelNotFoundError

VOICE_CHANNEL_TYPES = (discord.VoiceChannel, discord.StageChannel)


class Melodiqa:
    """
    One streaming session: capture from a device, play into a voice channel,
    and tear everything down when capture ends.
    """

    def __init__(self, options: Options, config: dict[str, Any]) -> None:
        self.options = options
        self.config = config
        self.exit_code = 0

        self.shutdown_event = threading.Event()
        self.frames = FrameBuffer(config["audio"]["max_buffered_frames"])
        self.device: Optional[InputDevice] = None
        self.capture: Optional[CaptureThread] = None
        self.source: Optional[BufferedPCMSource] = None
        self.bot: Optional[MelodiqaBot] = None
        self.voice_client: Optional[discord.VoiceClient] = None
        self._gateway: Optional[asyncio.Task] = None
        self._closed = False

    # ── Lifecycle ───────────────────────────────────────────────────────────

    async def run(self) -> int:
        devices = await asyncio.to_thread(list_input_devices, self.config["audio"].get("host_api"))

        if self.options.print_devices:
            log_devices(devices)
            return 0

        try:
            self.device = resolve_device(devices, self.options.device_name, self.options.device_index)
            token = resolve_token(self.options, self.config)
            await self._stream(token)
        except MelodiqaError as e:
            logging.error("%s", e)
            self.exit_code = 1
        except discord.LoginFailure as e:
            logging.error("Discord login failed: %s", e)
            self.exit_code = 1
        except discord.PrivilegedIntentsRequired:
            logging.error(
                "The message content intent is not enabled for this bot; enable it in the "
                "developer portal or set message_content_intent: false"
            )
            self.exit_code = 1
        except (discord.ClientException, asyncio.TimeoutError) as e:
            logging.error("Failed to connect to voice channel: %s", e)
            self.exit_code = 1
        finally:
            await self.shutdown()
        return self.exit_code

    async def _stream(self, token: str) -> None:
        self.bot = MelodiqaBot(self, self.config)
        await self.bot.login(token)

        self._gateway = asyncio.create_task(self.bot.connect(), name="melodiqa-gateway")
        ready = asyncio.create_task(self.bot.wait_until_ready())
        await asyncio.wait({self._gateway, ready}, return_when=asyncio.FIRST_COMPLETED)
        if not ready.done():
            ready.cancel()
            self._gateway.result()
            raise MelodiqaError("Gateway session closed before it became ready")

        guild = self.bot.get_guild(self.options.guild_id)
        if guild is None:
            raise GuildNotFoundError(self.options.guild_id)
        channel = guild.get_channel(self.options.channel_id)
        if not isinstance(channel, VOICE_CHANNEL_TYPES):
            raise VoiceChannelNotFoundError(self.options.channel_id)

        await self.bot.sync_commands(guild)

        self.source = BufferedPCMSource(self.frames, self.shutdown_event)
        self.capture = CaptureThread(self.device, self.frames, self.shutdown_event)

        logging.info("Starting audio capture thread")
        self.capture.start()
        logging.info("Connecting to voice channel")
        await self._connect(channel)

        logging.info("Waiting for audio capture thread to finish")
        capture_done = asyncio.create_task(asyncio.to_thread(self.capture.join))
        await asyncio.wait({capture_done, self._gateway}, return_when=asyncio.FIRST_COMPLETED)

        if self.capture.error is not None:
            self.exit_code = 1
            await notify_admin_error(self.bot, self.config, self.capture.error, "Audio capture")
        elif self._gateway.done() and not capture_done.done():
            self._gateway.result()
            raise MelodiqaError("Gateway session closed while streaming")

    async def _connect(self, channel: discord.abc.Connectable) -> None:
        self.voice_client = await channel.connect(self_deaf=True)
        self.voice_client.play(self.source, after=self._after_playback)
        logging.info("Streaming '%s' to %s", self.device.name, channel)

    def _after_playback(self, error: Optional[Exception]) -> None:
        # Runs on the voice player thread. Playback only ends on its own when
        # the session is shutting down; otherwise the voice side failed or the
        # bot was disconnected, and nothing would drain the buffer.
        if error is not None:
            logging.error("Voice playback failed: %s", error)
        elif self.shutdown_event.is_set():
            logging.info("Voice playback finished")
            return
        else:
            logging.error("Voice playback stopped while streaming (disconnected from the voice channel?)")
        self.exit_code = 1
        self.request_stop()

    async def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        logging.info("Shutdown triggered")

        self.shutdown_event.set()
        if self.voice_client is not None:
            self.voice_client.stop()
            await self.voice_client.disconnect(force=True)
        if self.bot is not None and not self.bot.is_closed():
            await self.bot.close()
        if self._gateway is not None:
            await asyncio.gather(self._gateway, return_exceptions=True)
        if self.capture is not None and self.capture.is_alive():
            await asyncio.to_thread(self.capture.join, 2.0)

    # ── Used by slash commands ──────────────────────────────────────────────

    def request_stop(self) -> None:
        self.shutdown_event.set()

    async def move_to(self, channel: discord.abc.Connectable) -> None:
        if self.voice_client is not None and self.voice_client.is_connected():
            await self.voice_client.move_to(channel)
            return
        await self._connect(channel)

    def describe(self) -> str:
        device = self.device.name if self.device else "none"
        if self.voice_client is not None and self.voice_client.is_connected():
            where = self.voice_client.channel.mention
        else:
            where = "not connected"
        return "\n".join((
            f"🎙️ Device: `{device}`",
            f"🔊 Channel: {where}",
            f"📦 Buffered: {len(self.frames)}/{self.frames.max_frames} frames",
            f"🗑️ Dropped: {self.frames.dropped} frames",
        ))
