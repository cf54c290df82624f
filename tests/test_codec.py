import contextlib
import math
import os
import unittest
import warnings
from unittest import mock

import numpy as np

import imadpcm
from imadpcm import (
    TruncatedInput,
    UnsupportedChannelLayout,
    UnsupportedSampleWidth,
    decode,
    encode,
)
from imadpcm import framing
from imadpcm.framing import (
    QUAD_BLOCK_SIZE,
    QUAD_HALF_BLOCK,
    decode_mono,
    decode_quad,
    decode_stereo,
    encode_mono,
    encode_quad,
    encode_stereo,
    quad_decoded_size,
    quad_encoded_size,
)
from imadpcm.sample import encode_sample
from imadpcm.state import PredictorState


def _encoder_trajectory(samples) -> np.ndarray:
    state = PredictorState()
    out = []
    for s in np.asarray(samples).tolist():
        encode_sample(s, state)
        out.append(state.predicted)
    return np.array(out, dtype=np.int16)


def _tone(n_frames: int, channels: int, sr: int = 22050) -> np.ndarray:
    t = np.arange(n_frames, dtype=np.float64) / sr
    cols = [np.sin(2.0 * math.pi * (220.0 * (c + 1)) * t) * (12000 - 2000 * c) for c in range(channels)]
    return np.stack(cols, axis=1).astype(np.int16)


@contextlib.contextmanager
def _no_truncation():
    with warnings.catch_warnings():
        warnings.simplefilter("error", TruncatedInput)
        yield


class TestMonoStereo(unittest.TestCase):
    def test_mono_nibble_order(self) -> None:
        out = decode_mono(bytes([0xF7]))
        # low nibble first: +11, then -30 at step index 8
        np.testing.assert_array_equal(out, np.array([11, -19], dtype=np.int16))

    def test_stereo_nibble_order(self) -> None:
        out = decode_stereo(bytes([0xF7]))
        np.testing.assert_array_equal(out, np.array([11, -11], dtype=np.int16))

    def test_encode_packing(self) -> None:
        self.assertEqual(encode_stereo([100, -100]), bytes([0xF7]))
        self.assertEqual(encode_mono([100, 0]), bytes([(encode_sample(0, PredictorState(11, 8)) << 4) | 0x7]))

    def test_output_sizes(self) -> None:
        with _no_truncation():
            self.assertEqual(decode(b"\x00" * 10, 1).size, 20)
            self.assertEqual(decode(b"\x00" * 10, 2).size, 20)
            self.assertEqual(len(encode(np.zeros(20, dtype=np.int16), 1)), 10)
            self.assertEqual(len(encode(np.zeros(20, dtype=np.int16), 2)), 10)

    def test_all_zero_round_trip(self) -> None:
        for channels in (1, 2, 4):
            codes = encode(np.zeros(64, dtype=np.int16), channels)
            self.assertEqual(set(codes), {0})
            pcm = decode(codes, channels)
            self.assertFalse(pcm.any())

    def test_mono_matches_encoder_trajectory(self) -> None:
        x = _tone(4000, 1).reshape(-1)
        np.testing.assert_array_equal(decode(encode(x, 1), 1), _encoder_trajectory(x))

    def test_stereo_channels_follow_own_state(self) -> None:
        x = _tone(3000, 2)
        out = decode(encode(x, 2), 2).reshape(-1, 2)
        for c in range(2):
            np.testing.assert_array_equal(out[:, c], _encoder_trajectory(x[:, c]))

    def test_odd_sample_count_drops_last(self) -> None:
        for fn in (encode_mono, encode_stereo):
            with self.assertWarns(TruncatedInput):
                out = fn([100, -100, 5])
            self.assertEqual(len(out), 1)

    def test_empty(self) -> None:
        with _no_truncation():
            for channels in (1, 2, 4):
                self.assertEqual(decode(b"", channels).size, 0)
                self.assertEqual(encode([], channels), b"")


class TestQuadGeometry(unittest.TestCase):
    def test_decoded_size(self) -> None:
        self.assertEqual(quad_decoded_size(0), 0)
        self.assertEqual(quad_decoded_size(QUAD_BLOCK_SIZE), QUAD_BLOCK_SIZE)
        self.assertEqual(quad_decoded_size(2 * QUAD_BLOCK_SIZE), 2 * QUAD_BLOCK_SIZE)
        # partial block: size - (16384 - tail)
        self.assertEqual(quad_decoded_size(QUAD_BLOCK_SIZE - 1), QUAD_BLOCK_SIZE - 2)
        n = QUAD_BLOCK_SIZE + QUAD_HALF_BLOCK + 100
        self.assertEqual(quad_decoded_size(n), n - (QUAD_BLOCK_SIZE - (QUAD_HALF_BLOCK + 100)))
        # tails that never reach the rear half carry nothing
        self.assertEqual(quad_decoded_size(QUAD_BLOCK_SIZE + 1), QUAD_BLOCK_SIZE)
        self.assertEqual(quad_decoded_size(QUAD_BLOCK_SIZE + 100), QUAD_BLOCK_SIZE)
        self.assertEqual(quad_decoded_size(QUAD_HALF_BLOCK), 0)

    def test_encoded_size(self) -> None:
        self.assertEqual(quad_encoded_size(0), 0)
        self.assertEqual(quad_encoded_size(4), QUAD_HALF_BLOCK + 1)
        self.assertEqual(quad_encoded_size(7), QUAD_HALF_BLOCK + 1)
        self.assertEqual(quad_encoded_size(4 * QUAD_HALF_BLOCK), QUAD_BLOCK_SIZE)
        self.assertEqual(quad_encoded_size(4 * QUAD_HALF_BLOCK + 4), QUAD_BLOCK_SIZE + QUAD_HALF_BLOCK + 1)

    def test_sizes_agree(self) -> None:
        for frames in (1, 2, 100, QUAD_HALF_BLOCK - 1, QUAD_HALF_BLOCK, QUAD_HALF_BLOCK + 1, 3 * QUAD_HALF_BLOCK + 7):
            n_bytes = quad_encoded_size(frames * 4)
            self.assertEqual(quad_decoded_size(n_bytes) * 2, frames * 4)


class TestQuad(unittest.TestCase):
    def test_one_full_block(self) -> None:
        with _no_truncation():
            out = decode(b"\x00" * QUAD_BLOCK_SIZE, 4)
        self.assertEqual(out.size, QUAD_BLOCK_SIZE * 2)

    def test_one_block_minus_one(self) -> None:
        with _no_truncation():
            out = decode(b"\x00" * (QUAD_BLOCK_SIZE - 1), 4)
        self.assertEqual(out.size, (QUAD_BLOCK_SIZE - 2) * 2)

    def test_one_block_plus_short_tail(self) -> None:
        for extra in (1, 100, QUAD_HALF_BLOCK):
            with self.assertWarns(TruncatedInput):
                out = decode(b"\x00" * (QUAD_BLOCK_SIZE + extra), 4)
            self.assertEqual(out.size, QUAD_BLOCK_SIZE * 2)

    def test_partial_last_block(self) -> None:
        n = QUAD_BLOCK_SIZE + QUAD_HALF_BLOCK + 100
        with _no_truncation():
            out = decode(b"\x00" * n, 4)
        real_size = n - (QUAD_BLOCK_SIZE - (n - QUAD_BLOCK_SIZE))
        self.assertEqual(out.size, real_size * 2)

    def test_single_frame_layout(self) -> None:
        codes = encode_quad([100, -100, 5, 0])
        self.assertEqual(len(codes), QUAD_HALF_BLOCK + 1)
        self.assertEqual(codes[0], 0xF7)
        self.assertEqual(codes[QUAD_HALF_BLOCK], 0x03)
        self.assertEqual(set(codes[1:QUAD_HALF_BLOCK]), {0})
        np.testing.assert_array_equal(decode_quad(codes), np.array([11, -11, 4, 0], dtype=np.int16))

    def test_round_trip_across_blocks(self) -> None:
        frames = QUAD_HALF_BLOCK + 300
        x = _tone(frames, 4)
        with _no_truncation():
            codes = encode(x, 4)
            out = decode(codes, 4)
        self.assertEqual(len(codes), QUAD_BLOCK_SIZE + QUAD_HALF_BLOCK + 300)
        out = out.reshape(-1, 4)
        self.assertEqual(out.shape, (frames, 4))
        for c in range(4):
            np.testing.assert_array_equal(out[:, c], _encoder_trajectory(x[:, c]))

    def test_state_carries_over_block_boundary(self) -> None:
        # rear half of block 0 and front of block 1 are driven by the same states
        codes = bytearray(QUAD_BLOCK_SIZE + QUAD_HALF_BLOCK + 1)
        codes[QUAD_HALF_BLOCK - 1] = 0x77          # last L/R pair of block 0
        codes[QUAD_BLOCK_SIZE] = 0x00              # first L/R pair of block 1
        out = decode_quad(bytes(codes)).reshape(-1, 4)
        self.assertEqual(out[QUAD_HALF_BLOCK - 1, 0], 11)
        # step index is 8 going into block 1, so code 0 adds 16 >> 3
        self.assertEqual(out[QUAD_HALF_BLOCK, 0], 13)

    def test_channel_independence(self) -> None:
        rng = np.random.default_rng(5)
        base = rng.integers(0, 256, size=QUAD_BLOCK_SIZE + QUAD_HALF_BLOCK + 50, dtype=np.uint8)

        rear_changed = base.copy()
        rear_changed[QUAD_HALF_BLOCK:QUAD_BLOCK_SIZE] ^= 0x5A
        front_changed = base.copy()
        front_changed[:QUAD_HALF_BLOCK] ^= 0xA5

        a = decode(base, 4).reshape(-1, 4)
        b = decode(rear_changed, 4).reshape(-1, 4)
        c = decode(front_changed, 4).reshape(-1, 4)

        np.testing.assert_array_equal(a[:, :2], b[:, :2])
        self.assertFalse(np.array_equal(a[:, 2:], b[:, 2:]))
        np.testing.assert_array_equal(a[:, 2:], c[:, 2:])
        self.assertFalse(np.array_equal(a[:, :2], c[:, :2]))

    def test_incomplete_frame_dropped(self) -> None:
        with self.assertWarns(TruncatedInput):
            codes = encode_quad([1, 2, 3, 4, 5, 6])
        self.assertEqual(len(codes), QUAD_HALF_BLOCK + 1)


class TestTruncationWarnings(unittest.TestCase):
    def test_warning_points_at_caller(self) -> None:
        calls = [
            lambda: encode([1, 2, 3], 1),
            lambda: encode([1, 2, 3], 2),
            lambda: encode([1, 2, 3, 4, 5], 4),
            lambda: encode_mono([1, 2, 3]),
            lambda: decode(b"\x00" * (QUAD_BLOCK_SIZE + 1), 4),
            lambda: decode_quad(b"\x00" * 10),
        ]
        for call in calls:
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                call()
            truncated = [w for w in caught if issubclass(w.category, TruncatedInput)]
            self.assertEqual(len(truncated), 1)
            self.assertEqual(os.path.abspath(truncated[0].filename), os.path.abspath(__file__))


class TestFacade(unittest.TestCase):
    def test_rejects_unsupported_channels(self) -> None:
        for channels in (0, 3, 5, 8, 2.5, 2.7, 4.0, "2", None):
            with self.assertRaises(UnsupportedChannelLayout) as ctx:
                decode(b"\x00" * 16, channels)
            self.assertEqual(ctx.exception.channels, channels)
            with self.assertRaises(UnsupportedChannelLayout):
                encode([0] * 16, channels)

    def test_integer_like_channel_counts(self) -> None:
        codes = encode([100, -100], np.int64(2))
        self.assertEqual(codes, bytes([0xF7]))
        np.testing.assert_array_equal(decode(codes, np.uint8(2)), decode(codes, 2))

    def test_code_arrays_must_hold_bytes(self) -> None:
        np.testing.assert_array_equal(decode(np.array([7, 0xF7], dtype=np.int16), 1), decode(bytes([7, 0xF7]), 1))
        np.testing.assert_array_equal(decode(np.array([[7], [0xF7]], dtype=np.uint8), 1), decode(bytes([7, 0xF7]), 1))
        for bad in (np.array([263], dtype=np.int16), np.array([-1], dtype=np.int32), np.array([7.0])):
            with self.assertRaises(imadpcm.ImaAdpcmError):
                decode(bad, 1)

    def test_rejection_does_no_work(self) -> None:
        with mock.patch.object(framing, "encode_sample") as enc, mock.patch.object(framing, "decode_sample") as dec:
            with self.assertRaises(UnsupportedChannelLayout):
                encode([0] * 12, 3)
            with self.assertRaises(UnsupportedChannelLayout):
                decode(b"\x00" * 12, 3)
        enc.assert_not_called()
        dec.assert_not_called()

    def test_rejects_other_widths(self) -> None:
        with self.assertRaises(UnsupportedSampleWidth):
            encode([0, 0], 1, bits_per_sample=8)
        with self.assertRaises(UnsupportedSampleWidth):
            decode(b"\x00", 1, bits_per_sample=24)

    def test_errors_are_value_errors(self) -> None:
        self.assertTrue(issubclass(UnsupportedChannelLayout, imadpcm.ImaAdpcmError))
        self.assertTrue(issubclass(imadpcm.ImaAdpcmError, ValueError))

    def test_accepts_frames_array(self) -> None:
        x = _tone(64, 2)
        self.assertEqual(encode(x, 2), encode(x.reshape(-1), 2))
        self.assertEqual(encode(x, 2), encode(x.reshape(-1).tolist(), 2))

    def test_out_of_range_input_is_clipped(self) -> None:
        self.assertEqual(encode([40000, -40000], 2), encode([32767, -32768], 2))

    def test_deterministic(self) -> None:
        x = _tone(500, 1).reshape(-1)
        a = encode(x, 1)
        b = encode(x, 1)
        self.assertEqual(a, b)
        np.testing.assert_array_equal(decode(a, 1), decode(b, 1))

    def test_round_trip_quality(self) -> None:
        x = _tone(4000, 1).reshape(-1)
        y = decode(encode(x, 1), 1)
        ref = x.astype(np.float64)
        noise = ref - y.astype(np.float64)
        snr = 10.0 * math.log10(np.mean(ref ** 2) / np.mean(noise ** 2))
        self.assertGreater(snr, 15.0)


if __name__ == "__main__":
    unittest.main()
