from __future__ import annotations

import numpy as np
import pytest

from pitch_tuner.filters import BandLimiter, Biquad, CaptureChain, FrameWindow
from pitch_tuner.gate import frame_rms

SAMPLE_RATE = 44_100


def _sine(freq: float, seconds: float = 1.0) -> np.ndarray:
    t = np.arange(int(SAMPLE_RATE * seconds)) / SAMPLE_RATE
    return (0.3 * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def _gain(freq: float) -> float:
    x = _sine(freq)
    y = BandLimiter(SAMPLE_RATE).process(x)
    half = x.size // 2
    return frame_rms(y[half:]) / frame_rms(x[half:])


def test_band_limiter_passes_musical_range() -> None:
    assert 0.9 < _gain(440.0) < 1.05


def test_band_limiter_removes_hum_and_hiss() -> None:
    assert _gain(20.0) < 0.2
    assert _gain(5000.0) < 0.2


def test_biquad_state_carries_across_blocks() -> None:
    x = _sine(300.0, seconds=0.1)
    whole = Biquad("highpass", SAMPLE_RATE, 60.0).process(x)

    split = Biquad("highpass", SAMPLE_RATE, 60.0)
    parts = [split.process(x[i : i + 512]) for i in range(0, x.size, 512)]

    np.testing.assert_allclose(np.concatenate(parts), whole, rtol=1e-5, atol=1e-6)


def test_biquad_validation() -> None:
    with pytest.raises(ValueError, match="kind"):
        Biquad("bandpass", SAMPLE_RATE, 100.0)
    with pytest.raises(ValueError, match="cutoff_hz"):
        Biquad("lowpass", SAMPLE_RATE, 30_000.0)


def test_frame_window_fills_then_rolls() -> None:
    window = FrameWindow(8)
    window.push(np.arange(4, dtype=np.float32))
    assert window.latest() is None

    window.push(np.arange(4, 10, dtype=np.float32))

    np.testing.assert_array_equal(window.latest(), np.arange(2, 10, dtype=np.float32))


def test_frame_window_keeps_tail_of_large_block() -> None:
    window = FrameWindow(4)
    window.push(np.arange(10, dtype=np.float32))

    np.testing.assert_array_equal(window.latest(), np.array([6, 7, 8, 9], dtype=np.float32))


def test_capture_chain_returns_full_frames() -> None:
    chain = CaptureChain(SAMPLE_RATE, frame_size=2048)
    x = _sine(440.0, seconds=0.1)
    chain.push(x[:1024])
    assert chain.latest() is None

    chain.push(x[1024:])
    frame = chain.latest()
    assert frame is not None
    assert frame.shape == (2048,)

    chain.reset()
    assert chain.latest() is None


def test_capture_chain_reset_clears_filter_state() -> None:
    x = _sine(440.0, seconds=0.1)
    used = CaptureChain(SAMPLE_RATE, frame_size=2048)
    used.push(x[:3000])
    used.reset()
    fresh = CaptureChain(SAMPLE_RATE, frame_size=2048)

    used.push(x[:2048])
    fresh.push(x[:2048])

    np.testing.assert_array_equal(used.latest(), fresh.latest())
