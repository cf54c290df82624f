"""
Basic timing benchmark for encode/decode.

Measures wall-clock time of whole-buffer encode and decode for each channel
layout on synthetic noise.

Usage:
    python3 examples/timing_benchmark.py --seconds 5
"""

import argparse
import sys
import time
from pathlib import Path

import numpy as np

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import imadpcm  # noqa: E402


def time_one(fn) -> float:
    t0 = time.perf_counter()
    fn()
    return time.perf_counter() - t0


def bench(channels: int, n_frames: int, seed: int) -> None:
    rng = np.random.default_rng(seed)
    samples = rng.integers(-8000, 8000, size=(n_frames, channels), dtype=np.int16)
    codes = imadpcm.encode(samples, channels)

    enc_t = time_one(lambda: imadpcm.encode(samples, channels))
    dec_t = time_one(lambda: imadpcm.decode(codes, channels))

    print(f"[{channels}ch] {n_frames} frames: encode -> {enc_t*1e3:.1f} ms, decode -> {dec_t*1e3:.1f} ms")


def main() -> None:
    ap = argparse.ArgumentParser(description="Timing benchmark for IMA ADPCM encode/decode.")
    ap.add_argument("--seconds", type=float, default=1.0, help="Signal length in seconds.")
    ap.add_argument("--rate", type=int, default=22050, help="Sample rate.")
    ap.add_argument("--seed", type=int, default=0, help="PRNG seed.")
    args = ap.parse_args()

    n_frames = max(1, int(round(args.seconds * args.rate)))
    for channels in imadpcm.SUPPORTED_CHANNELS:
        bench(channels, n_frames, args.seed)


if __name__ == "__main__":
    main()
