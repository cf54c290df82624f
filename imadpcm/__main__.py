"""
imadpcm.__main__

CLI entry point.

This file is intentionally small:
- parse args
- dispatch to the file helpers in imadpcm.wav
It must not contain codec math or container parsing.
"""

from __future__ import annotations

import argparse
import logging
import os
import time
from typing import Optional

from .errors import ImaAdpcmError
from .framing import SUPPORTED_CHANNELS
from .wav import (
    DEFAULT_CHANNELS,
    DEFAULT_SAMPLE_RATE,
    decode_adpcm_file,
    default_decode_output,
    default_encode_output,
    encode_wav_file,
)

logger = logging.getLogger("imadpcm")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="python -m imadpcm",
        description="IMA ADPCM codec: encode 16-bit PCM WAV to raw 4-bit codes, decode raw codes to WAV.",
    )
    p.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug).")
    p.add_argument("-q", "--quiet", action="store_true", help="Only log errors.")

    sub = p.add_subparsers(dest="command", required=True)

    enc = sub.add_parser("encode", help="Encode a PCM WAV file to a headerless ADPCM stream.")
    enc.add_argument("input", help="16-bit PCM WAV file (1, 2 or 4 channels).")
    enc.add_argument("-o", "--output", default=None, help="Output path (default: input with .adpcm extension).")

    dec = sub.add_parser("decode", help="Decode a headerless ADPCM stream to a PCM WAV file.")
    dec.add_argument("input", help="Raw ADPCM stream.")
    dec.add_argument("-o", "--output", default=None, help="Output WAV path (default: <input>_decoded.wav).")
    dec.add_argument(
        "--channels",
        type=int,
        choices=list(SUPPORTED_CHANNELS),
        default=DEFAULT_CHANNELS,
        help=f"Channel count of the stream (default: {DEFAULT_CHANNELS}).",
    )
    dec.add_argument(
        "--rate",
        type=int,
        default=DEFAULT_SAMPLE_RATE,
        help=f"Sample rate written to the WAV header (default: {DEFAULT_SAMPLE_RATE}).",
    )

    return p.parse_args(argv)


def _configure_logging(verbose: int, quiet: bool) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose, args.quiet)

    path = os.path.normpath(args.input)
    if not os.path.isfile(path):
        logger.error("input file not found: %s", path)
        return 2

    start = time.perf_counter()
    try:
        if args.command == "encode":
            out = args.output or default_encode_output(path)
            encode_wav_file(path, out)
        else:
            out = args.output or default_decode_output(path)
            decode_adpcm_file(path, out, channels=args.channels, sample_rate=args.rate)
    except ImaAdpcmError as exc:
        logger.error("%s: %s", path, exc)
        return 1
    except OSError as exc:
        logger.error("%s: %s", out, exc)
        return 1

    logger.info("finished in %.0f ms", (time.perf_counter() - start) * 1e3)
    print(out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
