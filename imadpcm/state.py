"""
imadpcm.state

Per-channel predictor state.

A fresh PredictorState is created for every channel at the start of each
encode/decode call and thrown away when the call returns.
"""

from __future__ import annotations

from dataclasses import dataclass

from .tables import MAX_STEP_INDEX

PCM_MIN = -32768
PCM_MAX = 32767


def clamp(value: int, lo: int, hi: int) -> int:
    if value < lo:
        return lo
    if value > hi:
        return hi
    return value


@dataclass
class PredictorState:
    """
    Running predictor of one channel.

    predicted  : last reconstructed sample, always within int16 range.
    step_index : position in STEP_SIZES, always within 0..88.
    """

    predicted: int = 0
    step_index: int = 0

    def __post_init__(self) -> None:
        self.predicted = clamp(int(self.predicted), PCM_MIN, PCM_MAX)
        self.step_index = clamp(int(self.step_index), 0, MAX_STEP_INDEX)

    def reset(self) -> None:
        self.predicted = 0
        self.step_index = 0

    def advance(self, diff: int, index_delta: int) -> int:
        """Apply a signed difference and an index delta, re-clamping both fields."""
        self.predicted = clamp(self.predicted + diff, PCM_MIN, PCM_MAX)
        self.step_index = clamp(self.step_index + index_delta, 0, MAX_STEP_INDEX)
        return self.predicted
