"""
Command line interface.

    melodiqa [-h] [-V] [-d] [-n NAME | -i INDEX] [-t TOKEN | -e] [-c PATH] [-v] [GUILD_ID] [CHANNEL_ID]
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from melodiqa import __version__
from melodiqa.errors import TokenMissingError

ENV_VAR_DISCORD_TOKEN = "MELODIQA_DISCORD_TOKEN"


@dataclass
class Options:
    guild_id: Optional[int] = None
    channel_id: Optional[int] = None
    print_devices: bool = False
    device_name: Optional[str] = None
    device_index: Optional[int] = None
    token: Optional[str] = None
    use_environment_variable: bool = False
    config: Optional[str] = None
    verbose: bool = False


def snowflake(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid Discord id: {value!r}")
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"Discord ids are positive integers, got {value}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="melodiqa",
        description="Streams audio from an audio input device to a voice channel in a Discord server",
        epilog=f"The token can also be supplied through ${ENV_VAR_DISCORD_TOKEN} or bot_token in config.yaml.",
    )
    parser.add_argument("guild_id", metavar="GUILD_ID", nargs="?", type=snowflake,
                        help="Discord server id")
    parser.add_argument("channel_id", metavar="CHANNEL_ID", nargs="?", type=snowflake,
                        help="Discord voice channel id")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-d", "--print-devices", action="store_true",
                        help="Print available audio devices")

    device = parser.add_mutually_exclusive_group()
    device.add_argument("-n", "--device-name", metavar="DEVICE_NAME",
                        help="Capture from the device with this exact name")
    device.add_argument("-i", "--device-index", metavar="DEVICE_INDEX", type=int,
                        help="Capture from the device at this position in --print-devices")

    token = parser.add_mutually_exclusive_group()
    token.add_argument("-t", "--token", metavar="TOKEN", help="Discord bot token")
    token.add_argument("-e", "--use-environment-variable", action="store_true",
                       help=f"Read the Discord bot token from ${ENV_VAR_DISCORD_TOKEN}")

    parser.add_argument("-c", "--config", metavar="PATH",
                        help="YAML config file (default: $MELODIQA_CONFIG or ./config.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> Options:
    parser = build_parser()
    ns = parser.parse_args(argv)
    options = Options(**vars(ns))

    if options.print_devices:
        return options

    if options.guild_id is None or options.channel_id is None:
        parser.error("GUILD_ID and CHANNEL_ID are required unless --print-devices is given")
    if options.device_name is None and options.device_index is None:
        parser.error("one of the arguments -n/--device-name -i/--device-index is required")
    return options


def resolve_token(options: Options, config: dict[str, Any]) -> str:
    """
    --token, then --use-environment-variable, then bot_token from config,
    then the environment variable as a last resort.
    """
    if options.token:
        return options.token

    env_token = os.environ.get(ENV_VAR_DISCORD_TOKEN, "").strip()
    if options.use_environment_variable:
        if not env_token:
            raise TokenMissingError(f"Environment variable {ENV_VAR_DISCORD_TOKEN} is not set")
        return env_token

    if config.get("bot_token"):
        return config["bot_token"]
    if env_token:
        return env_token
    raise TokenMissingError(
        "No Discord token: pass --token, --use-environment-variable, or set bot_token in the config"
    )
