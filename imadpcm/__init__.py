"""
imadpcm

IMA ADPCM (DVI4) codec for 16-bit PCM in mono, stereo and quad layouts.

The package keeps a hard separation between:
- quantizer tables and per-sample math (imadpcm.tables, imadpcm.sample)
- channel framing of packed nibble streams (imadpcm.framing)
- the whole-buffer facade (imadpcm.codec)
- RIFF/WAVE and raw-stream file helpers (imadpcm.wav)
"""

from __future__ import annotations

__all__ = [
    "__version__",
    "decode",
    "encode",
    "check_layout",
    "decode_sample",
    "encode_sample",
    "PredictorState",
    "PcmFormat",
    "parse_wav",
    "read_pcm_wav",
    "write_pcm_wav",
    "encode_wav_file",
    "decode_adpcm_file",
    "ImaAdpcmError",
    "UnsupportedChannelLayout",
    "UnsupportedSampleWidth",
    "WavFormatError",
    "TruncatedInput",
    "SUPPORTED_CHANNELS",
]

__version__ = "0.1.0"


from .codec import SUPPORTED_CHANNELS, check_layout, decode, encode  # noqa: E402
from .errors import (  # noqa: E402
    ImaAdpcmError,
    TruncatedInput,
    UnsupportedChannelLayout,
    UnsupportedSampleWidth,
    WavFormatError,
)
from .sample import decode_sample, encode_sample  # noqa: E402
from .state import PredictorState  # noqa: E402
from .wav import (  # noqa: E402
    PcmFormat,
    decode_adpcm_file,
    encode_wav_file,
    parse_wav,
    read_pcm_wav,
    write_pcm_wav,
)
