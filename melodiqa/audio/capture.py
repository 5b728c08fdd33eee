from __future__ import annotations

import logging
import threading
from array import array
from typing import Optional

from .buffer import CHANNELS, FRAME_SIZE, SAMPLE_RATE, SAMPLES_PER_FRAME, FrameBuffer
from .devices import InputDevice, _portaudio


def mono_to_stereo(data: bytes) -> bytes:
    """Duplicate each signed 16-bit sample into a left/right pair."""
    mono = array("h", data[: len(data) - len(data) % 2])
    stereo = array("h", bytes(len(mono) * 4))
    stereo[0::2] = mono
    stereo[1::2] = mono
    return stereo.tobytes()


class CaptureThread(threading.Thread):
    """
    Reads 20 ms PCM frames from an input device into a FrameBuffer until
    the shutdown event is set.

    Mono devices are opened with one channel and upmixed to stereo.
    A device failure is stored in .error and also sets the shutdown event,
    which ends the whole session.
    """

    def __init__(self, device: InputDevice, frames: FrameBuffer, shutdown: threading.Event) -> None:
        super().__init__(name="melodiqa-capture", daemon=True)
        self.device = device
        self.frames = frames
        self.shutdown = shutdown
        self.channels = max(1, min(CHANNELS, device.max_input_channels))
        self.error: Optional[BaseException] = None
        self.overflows = 0
        self.frames_read = 0

    def run(self) -> None:
        sd = _portaudio()
        try:
            with sd.RawInputStream(
                samplerate=SAMPLE_RATE,
                channels=self.channels,
                dtype="int16",
                blocksize=SAMPLES_PER_FRAME,
                device=self.device.portaudio_index,
            ) as stream:
                logging.info("Capturing from '%s' (%s)", self.device.name, self.device.host_api)
                while not self.shutdown.is_set():
                    data, overflowed = stream.read(SAMPLES_PER_FRAME)
                    if overflowed:
                        self.overflows += 1
                        logging.debug("Input overflow on '%s' (%d so far)", self.device.name, self.overflows)
                    frame = bytes(data)
                    if self.channels == 1:
                        frame = mono_to_stereo(frame)
                    if len(frame) < FRAME_SIZE:
                        frame = frame.ljust(FRAME_SIZE, b"\x00")
                    self.frames.push(frame)
                    self.frames_read += 1
        except sd.PortAudioError as e:
            logging.error("Failed to open audio device: %s", e)
            self.error = e
            self.shutdown.set()
        except Exception as e:  # noqa: BLE001
            # sounddevice raises ValueError/TypeError for unmatched devices or bad settings
            logging.error("Failed to open audio device: %s", e, exc_info=e)
            self.error = e
            self.shutdown.set()
        logging.info("Audio capture stopped after %d frames", self.frames_read)
