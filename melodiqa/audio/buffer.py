from __future__ import annotations

import threading
from collections import deque
from typing import Optional

# Discord voice PCM: 48 kHz, stereo, signed 16-bit LE, 20 ms per frame.
SAMPLE_RATE = 48000
CHANNELS = 2
SAMPLE_WIDTH = 2
FRAME_LENGTH_MS = 20
SAMPLES_PER_FRAME = SAMPLE_RATE * FRAME_LENGTH_MS // 1000
FRAME_SIZE = SAMPLES_PER_FRAME * CHANNELS * SAMPLE_WIDTH
SILENCE = b"\x00" * FRAME_SIZE


class FrameBuffer:
    """
    Bounded FIFO of PCM frames between the capture thread and the voice player.

    When full, the oldest frame is discarded so playback latency stays at most
    max_frames * 20 ms.
    """

    def __init__(self, max_frames: int = 50) -> None:
        if max_frames < 1:
            raise ValueError("max_frames must be >= 1")
        self.max_frames = max_frames
        self._frames: deque[bytes] = deque()
        self._lock = threading.Lock()
        self.dropped = 0

    def push(self, frame: bytes) -> None:
        with self._lock:
            if len(self._frames) >= self.max_frames:
                self._frames.popleft()
                self.dropped += 1
            self._frames.append(frame)

    def pop(self) -> Optional[bytes]:
        with self._lock:
            return self._frames.popleft() if self._frames else None

    def clear(self) -> None:
        with self._lock:
            self._frames.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)
