"""
SNR benchmark for IMA ADPCM round trips.

Encodes a WAV file (or a synthetic multi-tone signal) with the channel layout
of the input, decodes it again and reports per-channel SNR.

Usage:
    python3 examples/snr_benchmark.py --wav examples/data/track.wav
    python3 examples/snr_benchmark.py --channels 4 --seconds 2
"""

import argparse
import csv
import math
import sys
from pathlib import Path
from typing import List

import numpy as np

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from imadpcm import decode, encode, read_pcm_wav  # noqa: E402


def snr_db(ref: np.ndarray, test: np.ndarray) -> float:
    ref_f = ref.astype(np.float64)
    test_f = test.astype(np.float64)
    noise = ref_f - test_f
    p_signal = np.mean(ref_f ** 2)
    p_noise = np.mean(noise ** 2)
    if p_noise == 0.0:
        return float("inf")
    return 10.0 * math.log10(p_signal / p_noise)


def synth_tones(channels: int, seconds: float, sample_rate: int) -> np.ndarray:
    n = int(round(seconds * sample_rate))
    t = np.arange(n, dtype=np.float64) / sample_rate
    cols = []
    for c in range(channels):
        freq = 110.0 * (c + 2)
        cols.append(np.sin(2.0 * math.pi * freq * t) * 10000 + np.sin(2.0 * math.pi * freq * 3.1 * t) * 3000)
    return np.stack(cols, axis=1).astype(np.int16)


def run(samples: np.ndarray) -> List[dict]:
    channels = samples.shape[1]
    codes = encode(samples, channels)
    recon = decode(codes, channels).reshape(-1, channels)
    ref = samples[: recon.shape[0]]

    results = []
    for c in range(channels):
        results.append({"channel": c, "snr_db": snr_db(ref[:, c], recon[:, c])})
    results.append({"channel": "all", "snr_db": snr_db(ref, recon)})
    return results


def print_results(results: List[dict]) -> None:
    print("channel\tsnr(dB)")
    for row in results:
        print(f"{row['channel']}\t{row['snr_db']:.3f}")


def write_csv(path: Path, results: List[dict]) -> None:
    with path.open("w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["channel", "snr_db"])
        writer.writeheader()
        writer.writerows(results)


def main() -> None:
    parser = argparse.ArgumentParser(description="SNR benchmark for IMA ADPCM.")
    parser.add_argument("--wav", type=str, default=None, help="Input 16-bit PCM WAV (1, 2 or 4 channels).")
    parser.add_argument("--channels", type=int, choices=[1, 2, 4], default=2, help="Synthetic signal channels.")
    parser.add_argument("--seconds", type=float, default=1.0, help="Synthetic signal length.")
    parser.add_argument("--rate", type=int, default=22050, help="Synthetic signal sample rate.")
    parser.add_argument("--csv", type=str, default=None, help="Optional CSV output path.")
    args = parser.parse_args()

    if args.wav:
        wav_path = Path(args.wav)
        if not wav_path.exists():
            raise FileNotFoundError(wav_path)
        samples, _fmt = read_pcm_wav(str(wav_path))
    else:
        samples = synth_tones(args.channels, args.seconds, args.rate)

    results = run(samples)
    print_results(results)

    if args.csv:
        write_csv(Path(args.csv), results)
        print(f"Wrote CSV to {args.csv}")


if __name__ == "__main__":
    main()
