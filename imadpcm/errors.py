"""
imadpcm.errors

Exceptions and warnings raised by the codec and its WAV helpers.
"""

from __future__ import annotations


class ImaAdpcmError(ValueError):
    """Base class for errors raised by imadpcm."""


class UnsupportedChannelLayout(ImaAdpcmError):
    """Raised when a stream's channel count is not 1, 2 or 4."""

    def __init__(self, channels: int) -> None:
        self.channels = channels
        super().__init__(f"unsupported channel count {channels}; expected 1, 2 or 4")


class UnsupportedSampleWidth(ImaAdpcmError):
    """Raised for PCM widths other than 16 bits."""

    def __init__(self, bits_per_sample: int) -> None:
        self.bits_per_sample = bits_per_sample
        super().__init__(f"unsupported PCM width {bits_per_sample} bits; only 16-bit PCM is supported")


class WavFormatError(ImaAdpcmError):
    """Raised when a RIFF/WAVE container cannot be used as codec input."""


class TruncatedInput(UserWarning):
    """Issued when trailing data that does not form a whole unit is dropped."""
