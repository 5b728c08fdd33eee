from __future__ import annotations

import threading

import discord

from .buffer import SILENCE, FrameBuffer


class BufferedPCMSource(discord.AudioSource):
    """
    Feeds captured frames to discord.py's voice player.

    The player calls read() every 20 ms from its own thread. An empty buffer
    yields silence so the connection stays alive. Once the session is shutting
    down, read() returns b"" and the player finishes.
    """

    def __init__(self, frames: FrameBuffer, shutdown: threading.Event) -> None:
        self.frames = frames
        self.shutdown = shutdown
        self.frames_sent = 0
        self.silent_frames = 0

    def read(self) -> bytes:
        if self.shutdown.is_set():
            return b""
        frame = self.frames.pop()
        if frame is None:
            self.silent_frames += 1
            return SILENCE
        self.frames_sent += 1
        return frame

    def is_opus(self) -> bool:
        return False

    def cleanup(self) -> None:
        self.frames.clear()
