"""
imadpcm.wav

RIFF/WAVE and raw-stream helpers around the codec.

PCM input is read by walking the RIFF chunk list (unknown chunks are
skipped), validated for 16-bit PCM with 1, 2 or 4 channels, and returned as
(n_frames, channels) int16 samples. Encoded streams are written headerless.
Decoded PCM is written back as a canonical WAV with the stdlib ``wave``
module.
"""

from __future__ import annotations

import logging
import os
import struct
import wave
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .codec import SUPPORTED_BITS_PER_SAMPLE, check_layout, decode, encode
from .errors import WavFormatError
from .framing import channel_count

logger = logging.getLogger(__name__)

WAVE_FORMAT_PCM = 1

DEFAULT_CHANNELS = 2
DEFAULT_SAMPLE_RATE = 22050
ADPCM_SUFFIX = ".adpcm"

_CHUNK_HDR = struct.Struct("<4sI")
_FMT_BODY = struct.Struct("<HHIIHH")


@dataclass(frozen=True)
class PcmFormat:
    """Header fields of a PCM WAV stream."""

    channels: int
    sample_rate: int
    bits_per_sample: int = SUPPORTED_BITS_PER_SAMPLE
    format_tag: int = WAVE_FORMAT_PCM

    @property
    def sample_width(self) -> int:
        return self.bits_per_sample // 8

    @property
    def block_align(self) -> int:
        return self.channels * self.sample_width

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align


def _iter_chunks(data: bytes):
    off = 12
    while off + _CHUNK_HDR.size <= len(data):
        chunk_id, size = _CHUNK_HDR.unpack_from(data, off)
        off += _CHUNK_HDR.size
        end = off + int(size)
        yield chunk_id, data[off:min(end, len(data))]
        # chunks are word aligned
        off = end + (int(size) % 2)


def parse_wav(data: bytes) -> Tuple[np.ndarray, PcmFormat]:
    """
    Parse an in-memory WAV file.

    Returns
    -------
    samples : np.ndarray
        int16 samples, shape (n_frames, channels).
    fmt : PcmFormat
        Stream format.

    Raises
    ------
    WavFormatError
        Bad RIFF/WAVE ids, short or missing fmt chunk, non-PCM format tag,
        missing or empty data chunk.
    UnsupportedChannelLayout, UnsupportedSampleWidth
        Valid PCM the codec cannot take.
    """
    if len(data) < 12 or data[:4] != b"RIFF":
        raise WavFormatError("not a RIFF file")
    if data[8:12] != b"WAVE":
        raise WavFormatError("RIFF form type is not WAVE")

    fmt: Optional[PcmFormat] = None
    payload: Optional[bytes] = None

    for chunk_id, body in _iter_chunks(data):
        if chunk_id == b"fmt ":
            if len(body) < _FMT_BODY.size:
                raise WavFormatError(f"fmt chunk too short ({len(body)} bytes)")
            format_tag, channels, sample_rate, _byte_rate, _block_align, bits = _FMT_BODY.unpack_from(body, 0)
            if format_tag != WAVE_FORMAT_PCM:
                raise WavFormatError(f"unsupported WAV format tag {format_tag:#06x}; expected PCM (1)")
            check_layout(channels, bits)
            fmt = PcmFormat(channels=int(channels), sample_rate=int(sample_rate), bits_per_sample=int(bits))
        elif chunk_id == b"data":
            payload = body
            break
        else:
            logger.debug("skipping %r chunk (%d bytes)", chunk_id, len(body))

    if fmt is None:
        raise WavFormatError("WAV fmt chunk missing")
    if payload is None:
        raise WavFormatError("WAV data chunk missing")

    frame_bytes = fmt.block_align
    usable = len(payload) - (len(payload) % frame_bytes)
    if usable <= 0:
        raise WavFormatError("WAV data chunk holds no samples")

    samples = np.frombuffer(payload[:usable], dtype="<i2").astype(np.int16)
    return samples.reshape(-1, fmt.channels), fmt


def read_pcm_wav(path: str) -> Tuple[np.ndarray, PcmFormat]:
    with open(path, "rb") as f:
        data = f.read()
    return parse_wav(data)


def write_pcm_wav(path: str, samples: np.ndarray, fmt: PcmFormat) -> None:
    """
    Write int16 samples (flat interleaved or (n_frames, channels)) as a PCM WAV.
    """
    check_layout(fmt.channels, fmt.bits_per_sample)
    pcm = np.asarray(samples, dtype=np.int16).reshape(-1)
    with wave.open(path, "wb") as wf:
        wf.setnchannels(int(fmt.channels))
        wf.setsampwidth(fmt.sample_width)
        wf.setframerate(int(fmt.sample_rate))
        wf.writeframes(pcm.astype("<i2", copy=False).tobytes())


def read_adpcm(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def write_adpcm(path: str, data: bytes) -> None:
    with open(path, "wb") as f:
        f.write(data)


def encode_wav_file(input_wav: str, out_path: str) -> PcmFormat:
    """
    Encode a 16-bit PCM WAV into a headerless IMA ADPCM stream.

    Returns the input's format; channel count and sample rate are needed
    again to decode the stream.
    """
    samples, fmt = read_pcm_wav(input_wav)
    codes = encode(samples, fmt.channels, bits_per_sample=fmt.bits_per_sample)
    write_adpcm(out_path, codes)
    logger.info(
        "encoded %s -> %s (%d ch, %d Hz, %d frames, %d bytes)",
        input_wav,
        out_path,
        fmt.channels,
        fmt.sample_rate,
        samples.shape[0],
        len(codes),
    )
    return fmt


def decode_adpcm_file(
    input_path: str,
    out_wav: str,
    *,
    channels: int = DEFAULT_CHANNELS,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
) -> PcmFormat:
    """
    Decode a headerless IMA ADPCM stream into a 16-bit PCM WAV.
    """
    fmt = PcmFormat(channels=channel_count(channels), sample_rate=int(sample_rate))
    check_layout(fmt.channels, fmt.bits_per_sample)
    codes = read_adpcm(input_path)
    pcm = decode(codes, fmt.channels)
    write_pcm_wav(out_wav, pcm, fmt)
    logger.info(
        "decoded %s -> %s (%d ch, %d Hz, %d samples)",
        input_path,
        out_wav,
        fmt.channels,
        fmt.sample_rate,
        pcm.size,
    )
    return fmt


def default_encode_output(path: str) -> str:
    root, ext = os.path.splitext(path)
    if ext.lower() != ".wav":
        root = path
    return root + ADPCM_SUFFIX


def default_decode_output(path: str) -> str:
    root, _ext = os.path.splitext(path)
    return root + "_decoded.wav"
