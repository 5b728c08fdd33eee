"""
Entrypoint: `melodiqa ...` or `python -m melodiqa.main ...`.
"""

import asyncio
import logging
import os
import sys
from typing import Sequence

from dotenv import load_dotenv

from melodiqa.cli import parse_args
from melodiqa.config.loader import get_config
from melodiqa.streamer import Melodiqa

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"


def setup_logging(verbose: bool = False) -> None:
    debug = verbose or bool(os.environ.get("DEBUG"))
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)
    # discord.py's gateway/voice chatter is only useful when debugging
    logging.getLogger("discord").setLevel(logging.DEBUG if debug else logging.WARNING)


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    options = parse_args(argv)
    setup_logging(options.verbose)
    config = get_config(options.config)

    session = Melodiqa(options, config)
    try:
        return asyncio.run(session.run())
    except KeyboardInterrupt:
        logging.info("Interrupted, exiting")
        return session.exit_code
    except Exception:
        logging.exception("Melodiqa stopped unexpectedly")
        return 1


if __name__ == "__main__":
    sys.exit(main())
