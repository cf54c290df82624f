"""
imadpcm.sample

Single-sample IMA ADPCM primitives.

Both directions share the same state update: the encoder reconstructs the
sample exactly as the decoder will, so an encoder and a decoder fed the same
codes walk through identical (predicted, step_index) trajectories.
"""

from __future__ import annotations

from .state import PredictorState
from .tables import index_delta_for, step_size_at

SIGN_BIT = 0x8


def decode_sample(code: int, state: PredictorState) -> int:
    """
    Reconstruct one sample from a 4-bit code and advance the channel state.

    Parameters
    ----------
    code : int
        Code nibble. Bit 3 is the sign, bits 0..2 select the magnitude.
        Anything above the low nibble is ignored.
    state : PredictorState
        Channel state, updated in place.

    Returns
    -------
    int
        The new predicted sample (int16 range).
    """
    code &= 0x0F
    step = step_size_at(state.step_index)

    # Cumulative, not exclusive: each magnitude bit adds its share of the step.
    diff = step >> 3
    if code & 1:
        diff += step >> 2
    if code & 2:
        diff += step >> 1
    if code & 4:
        diff += step
    if code & SIGN_BIT:
        diff = -diff

    return state.advance(diff, index_delta_for(code))


def encode_sample(sample: int, state: PredictorState) -> int:
    """
    Quantize one PCM sample against the channel state and return its code.

    The magnitude bits are found greedily (step, step/2, step/4), mirroring
    the decoder's reconstruction, and the state is then advanced with the
    reconstructed difference rather than the true one.
    """
    step = step_size_at(state.step_index)
    diff = step >> 3
    delta = int(sample) - state.predicted
    code = 0

    if delta < 0:
        code = SIGN_BIT
        delta = -delta

    if delta >= step:
        code |= 4
        delta -= step
        diff += step
    step >>= 1

    if delta >= step:
        code |= 2
        delta -= step
        diff += step
    step >>= 1

    if delta >= step:
        code |= 1
        diff += step

    if code & SIGN_BIT:
        diff = -diff

    state.advance(diff, index_delta_for(code))
    return code
