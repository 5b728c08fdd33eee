"""Audio input device discovery and selection through PortAudio."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from melodiqa.errors import DeviceIndexError, DeviceNotFoundError


@dataclass(frozen=True)
class InputDevice:
    name: str
    portaudio_index: int  # index understood by sounddevice, not the printed list index
    host_api: str
    max_input_channels: int
    default_samplerate: float


def _portaudio() -> Any:
    # Imported lazily: sounddevice loads the PortAudio shared library on import.
    import sounddevice

    return sounddevice


def list_input_devices(host_api: Optional[str] = None) -> list[InputDevice]:
    """
    Enumerate capture-capable devices, sorted by name.

    host_api narrows the list to one PortAudio host API (case-insensitive
    substring, e.g. "DirectSound" or "ALSA"). Names that appear under several
    host APIs keep their first occurrence.
    """
    sd = _portaudio()
    host_apis = [api["name"] for api in sd.query_hostapis()]

    by_name: dict[str, InputDevice] = {}
    for info in sd.query_devices():
        if info["max_input_channels"] <= 0:
            continue
        api_name = host_apis[info["hostapi"]] if info["hostapi"] < len(host_apis) else ""
        if host_api and host_api.lower() not in api_name.lower():
            continue
        if info["name"] in by_name:
            logging.debug("Skipping duplicate device '%s' on %s", info["name"], api_name)
            continue
        by_name[info["name"]] = InputDevice(
            name=info["name"],
            portaudio_index=info["index"],
            host_api=api_name,
            max_input_channels=info["max_input_channels"],
            default_samplerate=info["default_samplerate"],
        )

    return [by_name[name] for name in sorted(by_name)]


def log_devices(devices: list[InputDevice]) -> None:
    logging.info("Available devices (%d):", len(devices))
    for i, device in enumerate(devices):
        logging.info("[%d] %s", i, device.name)


def resolve_device(
    devices: list[InputDevice],
    name: Optional[str] = None,
    index: Optional[int] = None,
) -> InputDevice:
    """
    Pick a device by exact name or by its position in the printed list.

    Name wins when both are given. Raises DeviceNotFoundError / DeviceIndexError.
    """
    if name is not None:
        for device in devices:
            if device.name == name:
                return device
        raise DeviceNotFoundError(name)

    if index is not None:
        if index < 0 or index >= len(devices):
            raise DeviceIndexError(index)
        return devices[index]

    raise ValueError("No audio device key specified")
