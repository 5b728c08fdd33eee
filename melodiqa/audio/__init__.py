from .buffer import FRAME_SIZE, SAMPLES_PER_FRAME, SILENCE, FrameBuffer
from .capture import CaptureThread
from .devices import InputDevice, list_input_devices, log_devices, resolve_device
from .source import BufferedPCMSource

__all__ = [
    "FRAME_SIZE",
    "SAMPLES_PER_FRAME",
    "SILENCE",
    "FrameBuffer",
    "CaptureThread",
    "InputDevice",
    "list_input_devices",
    "log_devices",
    "resolve_device",
    "BufferedPCMSource",
]
