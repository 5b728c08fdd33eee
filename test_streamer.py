import asyncio
import copy
import unittest
from unittest import mock

import discord

from melodiqa.audio.devices import InputDevice
from melodiqa.cli import Options
from melodiqa.config.loader import DEFAULTS
from melodiqa.streamer import Melodiqa

GUILD_ID = 111
CHANNEL_ID = 222

DEVICES = [
    InputDevice("Line In", 4, "Windows WASAPI", 2, 48000.0),
    InputDevice("Microphone", 1, "Windows WASAPI", 1, 48000.0),
]


class FakeBot:
    """Stands in for MelodiqaBot: login/connect/ready without a gateway."""

    def __init__(self, session, config, guild=None, login_error=None, connect_error=None):
        self.session = session
        self.config = config
        self.guild = guild
        self.connect_error = connect_error
        self.login = mock.AsyncMock(side_effect=login_error)
        self.sync_commands = mock.AsyncMock()
        self._closed = None

    @property
    def closed(self):
        if self._closed is None:
            self._closed = asyncio.Event()
        return self._closed

    async def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        await self.closed.wait()

    async def wait_until_ready(self):
        if self.connect_error is not None:
            await asyncio.Event().wait()

    def get_guild(self, guild_id):
        if self.guild is not None and self.guild.id == guild_id:
            return self.guild
        return None

    def is_closed(self):
        return self.closed.is_set()

    async def close(self):
        self.closed.set()


class FakeCapture:
    def __init__(self, device, frames, shutdown, error=None):
        self.device = device
        self.frames = frames
        self.shutdown = shutdown
        self.error = error
        self.started = False

    def start(self):
        self.started = True
        if self.error is not None:
            self.shutdown.set()

    def join(self, timeout=None):
        self.shutdown.wait(timeout=5)

    def is_alive(self):
        return False


def make_voice_client():
    voice_client = mock.MagicMock(spec=discord.VoiceClient)
    voice_client.disconnect = mock.AsyncMock()
    voice_client.move_to = mock.AsyncMock()
    voice_client.is_connected.return_value = True
    # channel is set per instance, so spec=VoiceClient does not cover it
    voice_client.channel = mock.MagicMock(mention="<#222>")
    return voice_client


def make_guild(channel=None):
    guild = mock.MagicMock()
    guild.id = GUILD_ID
    guild.get_channel.side_effect = lambda cid: channel if cid == CHANNEL_ID else None
    return guild


def make_channel(voice_client):
    channel = mock.MagicMock(spec=discord.VoiceChannel)
    channel.connect = mock.AsyncMock(return_value=voice_client)
    return channel


class StreamerTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.config = copy.deepcopy(DEFAULTS)
        self.options = Options(guild_id=GUILD_ID, channel_id=CHANNEL_ID, device_name="Line In", token="t0ken")
        patcher = mock.patch("melodiqa.streamer.list_input_devices", return_value=DEVICES)
        self.list_devices = patcher.start()
        self.addCleanup(patcher.stop)
        self.capture_error = None

    def session(self, **bot_kwargs):
        session = Melodiqa(self.options, self.config)
        self.bot = None

        def build_bot(s, config):
            self.bot = FakeBot(s, config, **bot_kwargs)
            return self.bot

        def build_capture(device, frames, shutdown):
            self.capture = FakeCapture(device, frames, shutdown, error=self.capture_error)
            return self.capture

        for target, factory in (("MelodiqaBot", build_bot), ("CaptureThread", build_capture)):
            patcher = mock.patch(f"melodiqa.streamer.{target}", side_effect=factory)
            patcher.start()
            self.addCleanup(patcher.stop)
        return session


class TestDeviceAndTokenErrors(StreamerTestCase):
    async def test_print_devices(self):
        self.options = Options(print_devices=True)
        with self.assertLogs(level="INFO") as logs:
            code = await self.session().run()
        self.assertEqual(code, 0)
        self.assertIn("Available devices (2):", "\n".join(logs.output))
        self.assertIsNone(self.bot)

    async def test_host_api_filter_is_passed_through(self):
        self.options = Options(print_devices=True)
        self.config["audio"]["host_api"] = "WASAPI"
        await self.session().run()
        self.list_devices.assert_called_once_with("WASAPI")

    async def test_unknown_device_name(self):
        self.options.device_name = "Nope"
        with self.assertLogs(level="ERROR") as logs:
            code = await self.session().run()
        self.assertEqual(code, 1)
        self.assertIn("Audio device name not found: Nope", logs.output[0])
        self.assertIsNone(self.bot)

    async def test_device_index_out_of_range(self):
        self.options.device_name = None
        self.options.device_index = 2
        with self.assertLogs(level="ERROR") as logs:
            code = await self.session().run()
        self.assertEqual(code, 1)
        self.assertIn("Audio device index out of range: 2", logs.output[0])

    async def test_missing_token(self):
        self.options.token = None
        with mock.patch.dict("os.environ", {}, clear=True):
            with self.assertLogs(level="ERROR"):
                code = await self.session().run()
        self.assertEqual(code, 1)


class TestDiscordErrors(StreamerTestCase):
    async def test_login_failure(self):
        session = self.session(login_error=discord.LoginFailure("Improper token has been passed."))
        with self.assertLogs(level="ERROR") as logs:
            code = await session.run()
        self.assertEqual(code, 1)
        self.assertIn("Discord login failed", logs.output[0])

    async def test_gateway_failure_before_ready(self):
        session = self.session(connect_error=discord.PrivilegedIntentsRequired(None))
        with self.assertLogs(level="ERROR") as logs:
            code = await session.run()
        self.assertEqual(code, 1)
        self.assertIn("message content intent", logs.output[0])

    async def test_guild_not_found(self):
        session = self.session(guild=None)
        with self.assertLogs(level="ERROR") as logs:
            code = await session.run()
        self.assertEqual(code, 1)
        self.assertIn(f"Guild not found: {GUILD_ID}", logs.output[0])
        self.assertTrue(self.bot.is_closed())

    async def test_channel_must_be_a_voice_channel(self):
        text_channel = mock.MagicMock(spec=discord.TextChannel)
        session = self.session(guild=make_guild(text_channel))
        with self.assertLogs(level="ERROR") as logs:
            code = await session.run()
        self.assertEqual(code, 1)
        self.assertIn(f"Voice channel not found: {CHANNEL_ID}", logs.output[0])

    async def test_voice_connect_timeout(self):
        channel = make_channel(make_voice_client())
        channel.connect.side_effect = asyncio.TimeoutError()
        session = self.session(guild=make_guild(channel))
        with self.assertLogs(level="ERROR") as logs:
            code = await session.run()
        self.assertEqual(code, 1)
        self.assertIn("Failed to connect to voice channel", logs.output[0])
        self.assertTrue(session.shutdown_event.is_set())


class TestStreaming(StreamerTestCase):
    async def test_streams_until_stop_requested(self):
        voice_client = make_voice_client()
        channel = make_channel(voice_client)
        session = self.session(guild=make_guild(channel))

        task = asyncio.create_task(session.run())
        while session.voice_client is None:
            await asyncio.sleep(0.01)

        self.assertTrue(self.capture.started)
        self.assertIs(self.capture.device, DEVICES[0])
        channel.connect.assert_awaited_once_with(self_deaf=True)
        source = voice_client.play.call_args.args[0]
        self.assertIs(source.frames, session.frames)
        self.bot.sync_commands.assert_awaited_once()

        session.request_stop()
        code = await asyncio.wait_for(task, timeout=5)

        self.assertEqual(code, 0)
        voice_client.stop.assert_called_once()
        voice_client.disconnect.assert_awaited_once_with(force=True)
        self.assertTrue(self.bot.is_closed())

    async def test_capture_failure_notifies_admins(self):
        self.capture_error = RuntimeError("device unplugged")
        channel = make_channel(make_voice_client())
        session = self.session(guild=make_guild(channel))
        with mock.patch("melodiqa.streamer.notify_admin_error", new_callable=mock.AsyncMock) as notify:
            code = await asyncio.wait_for(session.run(), timeout=5)
        self.assertEqual(code, 1)
        notify.assert_awaited_once()
        self.assertEqual(notify.await_args.args[3], "Audio capture")

    async def test_gateway_closing_mid_stream_exits_1(self):
        session = self.session(guild=make_guild(make_channel(make_voice_client())))
        task = asyncio.create_task(session.run())
        while session.voice_client is None:
            await asyncio.sleep(0.01)

        self.bot.closed.set()
        with self.assertLogs(level="ERROR") as logs:
            code = await asyncio.wait_for(task, timeout=5)

        self.assertEqual(code, 1)
        self.assertIn("Gateway session closed while streaming", "\n".join(logs.output))
        self.assertTrue(session.shutdown_event.is_set())

    async def test_shutdown_is_idempotent(self):
        voice_client = make_voice_client()
        session = self.session(guild=make_guild(make_channel(voice_client)))
        session.request_stop()
        await session.run()
        await session.shutdown()
        voice_client.disconnect.assert_awaited_once()

    async def test_move_to_reuses_connection(self):
        voice_client = make_voice_client()
        session = Melodiqa(self.options, self.config)
        session.voice_client = voice_client
        other = mock.MagicMock(spec=discord.VoiceChannel)
        await session.move_to(other)
        voice_client.move_to.assert_awaited_once_with(other)

    def test_describe(self):
        session = Melodiqa(self.options, self.config)
        session.device = DEVICES[0]
        session.frames.push(b"x")
        text = session.describe()
        self.assertIn("`Line In`", text)
        self.assertIn("not connected", text)
        self.assertIn("1/50 frames", text)


class TestPlaybackEnd(unittest.TestCase):
    def setUp(self):
        self.options = Options(guild_id=GUILD_ID, channel_id=CHANNEL_ID, device_name="Line In", token="t0ken")
        self.session = Melodiqa(self.options, copy.deepcopy(DEFAULTS))

    def test_playback_error_stops_session(self):
        with self.assertLogs(level="ERROR") as logs:
            self.session._after_playback(RuntimeError("encoder failed"))
        self.assertEqual(self.session.exit_code, 1)
        self.assertTrue(self.session.shutdown_event.is_set())
        self.assertIn("Voice playback failed", logs.output[0])

    def test_disconnect_while_streaming_stops_session(self):
        with self.assertLogs(level="ERROR") as logs:
            self.session._after_playback(None)
        self.assertEqual(self.session.exit_code, 1)
        self.assertTrue(self.session.shutdown_event.is_set())
        self.assertIn("Voice playback stopped while streaming", logs.output[0])

    def test_playback_end_during_shutdown_is_clean(self):
        self.session.request_stop()
        with self.assertLogs(level="INFO") as logs:
            self.session._after_playback(None)
        self.assertEqual(self.session.exit_code, 0)
        self.assertIn("Voice playback finished", logs.output[0])


if __name__ == "__main__":
    unittest.main()
