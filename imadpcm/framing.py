"""
imadpcm.framing

Channel framing: how per-channel code streams sit in the packed byte layout.

Layouts
-------
mono   : one byte = two consecutive samples, low nibble first.
stereo : one byte = one (left, right) frame, left in the low nibble.
quad   : 16384-byte blocks. Bytes [0, 8192) of a block carry (left, right)
         frames packed like stereo; bytes [8192, 16384) carry (center, lfe)
         frames at the same block-relative offset. A final, shorter block
         keeps that split: its front pairs start at offset 0, its rear pairs
         at offset 8192, and the gap between them is padding.

All buffers are flat; block-relative offsets are turned into absolute ones by
index arithmetic. Channel states are created once per call, so adaptation
carries over block boundaries.
"""

from __future__ import annotations

import logging
import operator
import os
import sys
import warnings
from typing import Callable, Dict, Sequence, Tuple, Union

import numpy as np

from .errors import ImaAdpcmError, TruncatedInput, UnsupportedChannelLayout
from .sample import decode_sample, encode_sample
from .state import PCM_MAX, PCM_MIN, PredictorState

logger = logging.getLogger(__name__)

QUAD_BLOCK_SIZE = 16384
QUAD_HALF_BLOCK = QUAD_BLOCK_SIZE // 2

CodeBuffer = Union[bytes, bytearray, memoryview, np.ndarray]

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


# ===================== Buffer helpers =====================

def _code_bytes(data: CodeBuffer) -> bytes:
    if isinstance(data, np.ndarray):
        if data.dtype == np.uint8:
            return data.reshape(-1).tobytes()
        if not np.issubdtype(data.dtype, np.integer):
            raise ImaAdpcmError(f"code buffer must hold integers, got dtype {data.dtype}")
        if data.size and (int(data.min()) < 0 or int(data.max()) > 0xFF):
            raise ImaAdpcmError("code buffer values must lie in 0..255")
        return data.astype(np.uint8).reshape(-1).tobytes()
    return bytes(data)


def _pcm_list(samples: Union[Sequence[int], np.ndarray]) -> list:
    # Python ints from here on: numpy int16 scalars would wrap in the differences.
    arr = np.asarray(samples, dtype=np.int64).reshape(-1)
    return np.clip(arr, PCM_MIN, PCM_MAX).tolist()


def _caller_stacklevel() -> int:
    """Stack level of the first frame outside this package, counted from _warn_truncated."""
    frame = sys._getframe(1)
    level = 1
    while frame is not None and os.path.dirname(os.path.abspath(frame.f_code.co_filename)) == _PACKAGE_DIR:
        frame = frame.f_back
        level += 1
    return level


def _warn_truncated(message: str) -> None:
    logger.warning(message)
    warnings.warn(message, TruncatedInput, stacklevel=_caller_stacklevel())


def _check_sample_multiple(n_samples: int, unit: int, layout: str) -> int:
    whole = n_samples - (n_samples % unit)
    if whole != n_samples:
        _warn_truncated(
            f"{layout}: dropping {n_samples - whole} trailing sample(s) that do not fill a {unit}-sample unit"
        )
    return whole


# ===================== Quad block geometry =====================

def quad_decoded_size(n_bytes: int) -> int:
    """
    Number of bytes of a quad stream that actually carry codes.

    Full blocks count completely. A final block of ``tail`` bytes holds
    ``tail - 8192`` front pairs and as many rear pairs, so its unused padding
    (``16384 - tail``) is subtracted. A final block that does not reach past
    the half-block boundary holds no complete frame and contributes nothing.

    Two samples are decoded per counted byte.
    """
    full, tail = divmod(int(n_bytes), QUAD_BLOCK_SIZE)
    size = full * QUAD_BLOCK_SIZE
    if tail > QUAD_HALF_BLOCK:
        size += 2 * (tail - QUAD_HALF_BLOCK)
    return size


def quad_encoded_size(n_samples: int) -> int:
    """
    Output size in bytes for ``n_samples`` interleaved quad samples.

    Every 4 samples make one front byte and one rear byte. A partially filled
    last block is emitted up to its rear half: 8192 bytes plus one byte per
    frame it holds.
    """
    frames = int(n_samples) // 4
    full, tail = divmod(frames, QUAD_HALF_BLOCK)
    size = full * QUAD_BLOCK_SIZE
    if tail:
        size += QUAD_HALF_BLOCK + tail
    return size


# ===================== Mono =====================

def decode_mono(data: CodeBuffer) -> np.ndarray:
    codes = _code_bytes(data)
    out = np.zeros(len(codes) * 2, dtype=np.int16)
    state = PredictorState()

    for i, byte in enumerate(codes):
        out[i * 2] = decode_sample(byte & 0x0F, state)
        out[i * 2 + 1] = decode_sample(byte >> 4, state)

    return out


def encode_mono(samples: Union[Sequence[int], np.ndarray]) -> bytes:
    pcm = _pcm_list(samples)
    n = _check_sample_multiple(len(pcm), 2, "mono")
    out = bytearray(n // 2)
    state = PredictorState()

    for i in range(n // 2):
        first = encode_sample(pcm[i * 2], state)
        second = encode_sample(pcm[i * 2 + 1], state)
        out[i] = (second << 4) | first

    return bytes(out)


# ===================== Stereo =====================

def decode_stereo(data: CodeBuffer) -> np.ndarray:
    codes = _code_bytes(data)
    out = np.zeros(len(codes) * 2, dtype=np.int16)
    left, right = PredictorState(), PredictorState()

    for i, byte in enumerate(codes):
        out[i * 2] = decode_sample(byte & 0x0F, left)
        out[i * 2 + 1] = decode_sample(byte >> 4, right)

    return out


def encode_stereo(samples: Union[Sequence[int], np.ndarray]) -> bytes:
    pcm = _pcm_list(samples)
    n = _check_sample_multiple(len(pcm), 2, "stereo")
    out = bytearray(n // 2)
    left, right = PredictorState(), PredictorState()

    for i in range(n // 2):
        lo = encode_sample(pcm[i * 2], left)
        hi = encode_sample(pcm[i * 2 + 1], right)
        out[i] = (hi << 4) | lo

    return bytes(out)


# ===================== Quad =====================

def decode_quad(data: CodeBuffer) -> np.ndarray:
    """
    Decode a four-channel stream into interleaved (L, R, C, LFE) samples.
    """
    codes = _code_bytes(data)
    size = len(codes)
    real_size = quad_decoded_size(size)

    tail = size % QUAD_BLOCK_SIZE
    if 0 < tail <= QUAD_HALF_BLOCK:
        _warn_truncated(
            f"quad: dropping final {tail}-byte block that does not reach its rear half"
        )

    out = np.zeros(real_size * 2, dtype=np.int16)
    left, right, center, lfe = PredictorState(), PredictorState(), PredictorState(), PredictorState()

    for block_start in range(0, size, QUAD_BLOCK_SIZE):
        block_len = min(QUAD_BLOCK_SIZE, size - block_start)
        rear_start = block_start + QUAD_HALF_BLOCK
        base = block_start * 2

        for j in range(block_len - QUAD_HALF_BLOCK):
            front = codes[block_start + j]
            rear = codes[rear_start + j]
            idx = base + j * 4

            out[idx] = decode_sample(front & 0x0F, left)
            out[idx + 1] = decode_sample(front >> 4, right)
            out[idx + 2] = decode_sample(rear & 0x0F, center)
            out[idx + 3] = decode_sample(rear >> 4, lfe)

    logger.debug(
        "quad decode: %d bytes in %d block(s) -> %d samples",
        size,
        (size + QUAD_BLOCK_SIZE - 1) // QUAD_BLOCK_SIZE,
        out.size,
    )
    return out


def encode_quad(samples: Union[Sequence[int], np.ndarray]) -> bytes:
    """
    Encode interleaved (L, R, C, LFE) samples into the quad block layout.

    The output buffer is sized for the padded final block up front; padding
    bytes stay zero.
    """
    pcm = _pcm_list(samples)
    n = _check_sample_multiple(len(pcm), 4, "quad")
    out = bytearray(quad_encoded_size(n))
    left, right, center, lfe = PredictorState(), PredictorState(), PredictorState(), PredictorState()

    for frame in range(n // 4):
        block, j = divmod(frame, QUAD_HALF_BLOCK)
        front = block * QUAD_BLOCK_SIZE + j
        idx = frame * 4

        l_code = encode_sample(pcm[idx], left)
        r_code = encode_sample(pcm[idx + 1], right)
        c_code = encode_sample(pcm[idx + 2], center)
        e_code = encode_sample(pcm[idx + 3], lfe)

        out[front] = (r_code << 4) | l_code
        out[front + QUAD_HALF_BLOCK] = (e_code << 4) | c_code

    logger.debug("quad encode: %d samples -> %d bytes", n, len(out))
    return bytes(out)


# ===================== Dispatch =====================

_FRAMERS: Dict[int, Tuple[Callable[[CodeBuffer], np.ndarray], Callable[..., bytes]]] = {
    1: (decode_mono, encode_mono),
    2: (decode_stereo, encode_stereo),
    4: (decode_quad, encode_quad),
}

SUPPORTED_CHANNELS = tuple(sorted(_FRAMERS))


def channel_count(channels) -> int:
    """
    Validate a channel count and return it as an int.

    Non-integral values (2.5, "2") are rejected rather than truncated.
    """
    try:
        count = operator.index(channels)
    except TypeError:
        raise UnsupportedChannelLayout(channels) from None
    if count not in _FRAMERS:
        raise UnsupportedChannelLayout(count)
    return count


def decoder_for(channels: int) -> Callable[[CodeBuffer], np.ndarray]:
    return _FRAMERS[channel_count(channels)][0]


def encoder_for(channels: int) -> Callable[..., bytes]:
    return _FRAMERS[channel_count(channels)][1]
