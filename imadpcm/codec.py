"""
imadpcm.codec

Whole-buffer IMA ADPCM encode/decode.

Typical usage:

    from imadpcm import decode, encode

    codes = encode(pcm, channels=2)        # interleaved int16 -> packed nibbles
    pcm_again = decode(codes, channels=2)  # packed nibbles -> interleaved int16

Each call starts every channel from (predicted=0, step_index=0) and keeps no
state afterwards, so independent calls can run in parallel freely.
"""

from __future__ import annotations

import logging
from typing import Sequence, Union

import numpy as np

from .errors import UnsupportedSampleWidth
from .framing import SUPPORTED_CHANNELS, CodeBuffer, channel_count, decoder_for, encoder_for

logger = logging.getLogger(__name__)

SUPPORTED_BITS_PER_SAMPLE = 16

__all__ = ["decode", "encode", "check_layout", "SUPPORTED_CHANNELS", "SUPPORTED_BITS_PER_SAMPLE"]


def check_layout(channels: int, bits_per_sample: int = SUPPORTED_BITS_PER_SAMPLE) -> None:
    """
    Validate a channel count / PCM width pair.

    Raises
    ------
    UnsupportedChannelLayout
        If channels is not the integer 1, 2 or 4.
    UnsupportedSampleWidth
        If bits_per_sample is not 16.
    """
    channel_count(channels)
    if bits_per_sample != SUPPORTED_BITS_PER_SAMPLE:
        raise UnsupportedSampleWidth(bits_per_sample)


def decode(
    data: CodeBuffer,
    channels: int = 1,
    *,
    bits_per_sample: int = SUPPORTED_BITS_PER_SAMPLE,
) -> np.ndarray:
    """
    Decode packed 4-bit codes to interleaved 16-bit PCM.

    Parameters
    ----------
    data : bytes-like or np.ndarray (uint8)
        Packed code stream.
    channels : int
        1, 2 or 4.
    bits_per_sample : int
        Output PCM width, must be 16.

    Returns
    -------
    np.ndarray
        Flat int16 array, channels interleaved.
    """
    check_layout(channels, bits_per_sample)
    out = decoder_for(channels)(data)
    logger.debug("decode: channels=%d samples=%d", int(channels), out.size)
    return out


def encode(
    samples: Union[Sequence[int], np.ndarray],
    channels: int = 1,
    *,
    bits_per_sample: int = SUPPORTED_BITS_PER_SAMPLE,
) -> bytes:
    """
    Encode interleaved 16-bit PCM to packed 4-bit codes.

    ``samples`` may be flat or shaped (n_frames, channels); it is flattened
    row-major, which keeps the interleaved order.
    """
    check_layout(channels, bits_per_sample)
    out = encoder_for(channels)(samples)
    logger.debug("encode: channels=%d bytes=%d", int(channels), len(out))
    return out
