from __future__ import annotations

import numpy as np
import pytest

from pitch_tuner.gate import FrameGate, GateConfig
from pitch_tuner.tuner import Tuner, TunerConfig, TunerState, analyze_recording

SAMPLE_RATE = 44_100


def _sine(freq: float, size: int = 2048, amp: float = 0.3) -> np.ndarray:
    t = np.arange(size, dtype=np.float64) / SAMPLE_RATE
    return (amp * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def test_tuner_reads_a4() -> None:
    tuner = Tuner()

    reading = tuner.process(_sine(440.0), SAMPLE_RATE)

    assert reading is not None
    assert reading.note_name == "A4"
    assert abs(reading.hz - 440.0) / 440.0 < 0.01
    assert abs(reading.display_cents) <= 2
    assert tuner.state is TunerState.TRACKING


def test_tuner_rounds_frequency_for_display() -> None:
    reading = Tuner().process(_sine(261.63), SAMPLE_RATE)

    assert reading is not None
    assert reading.note_name == "C4"
    assert reading.hz == round(reading.hz, 2)


def test_silence_resets_stabilizer() -> None:
    tuner = Tuner()
    for _ in range(3):
        tuner.process(_sine(445.0), SAMPLE_RATE)
    assert len(tuner.stabilizer.history) == 3

    assert tuner.process(np.zeros(2048, dtype=np.float32), SAMPLE_RATE) is None
    assert tuner.state is TunerState.IDLE
    assert not tuner.stabilizer.is_seeded

    reading = tuner.process(_sine(445.0), SAMPLE_RATE)
    assert reading is not None
    assert tuner.stabilizer.history == (reading.cents,)


def test_out_of_range_pitch_is_rejected() -> None:
    tuner = Tuner(TunerConfig(max_hz=300.0))
    tuner.process(_sine(220.0), SAMPLE_RATE)
    assert tuner.stabilizer.is_seeded

    assert tuner.process(_sine(440.0), SAMPLE_RATE) is None
    assert not tuner.stabilizer.is_seeded
    assert tuner.state is TunerState.IDLE


def test_display_cents_are_clamped() -> None:
    tuner = Tuner(TunerConfig(display_cents_limit=10.0))

    reading = tuner.process(_sine(445.0), SAMPLE_RATE)

    assert reading is not None
    assert reading.display_cents == 10
    assert reading.cents > 10.0


def test_reference_pitch_shifts_notes() -> None:
    tuner = Tuner()
    tuner.process(_sine(442.0), SAMPLE_RATE)

    tuner.set_reference_pitch(442.0)

    assert not tuner.stabilizer.is_seeded
    reading = tuner.process(_sine(442.0), SAMPLE_RATE)
    assert reading is not None
    assert reading.note_name == "A4"
    assert abs(reading.display_cents) <= 2


def test_stop_returns_to_idle() -> None:
    tuner = Tuner()
    tuner.process(_sine(330.0), SAMPLE_RATE)

    tuner.stop()

    assert tuner.state is TunerState.IDLE
    assert tuner.stabilizer.history == ()


def test_tuners_do_not_share_state() -> None:
    first = Tuner()
    second = Tuner()

    first.process(_sine(330.0), SAMPLE_RATE)

    assert first.stabilizer.is_seeded
    assert not second.stabilizer.is_seeded


def test_reading_event_payload() -> None:
    reading = Tuner().process(_sine(220.0), SAMPLE_RATE)

    assert reading is not None
    event = reading.to_event()
    assert event["note"] == "A3"
    assert set(event) == {"note", "hz", "cents", "rms"}


def test_config_validation() -> None:
    with pytest.raises(ValueError, match="display_cents_limit"):
        TunerConfig(raw_cents_limit=40.0, display_cents_limit=50.0)
    with pytest.raises(ValueError, match="reference_pitch"):
        TunerConfig(reference_pitch=0.0)


def test_analyze_recording_finds_median_pitch() -> None:
    audio = _sine(220.0, size=SAMPLE_RATE)

    summary = analyze_recording(audio, SAMPLE_RATE)

    assert summary.voiced_frames == summary.frames > 0
    assert summary.median_hz is not None
    assert abs(summary.median_hz - 220.0) / 220.0 < 0.01
    assert summary.note_name == "A3"


def test_analyze_recording_of_silence() -> None:
    summary = analyze_recording(np.zeros(SAMPLE_RATE, dtype=np.float32), SAMPLE_RATE)

    assert summary.voiced_frames == 0
    assert summary.median_hz is None
    assert summary.to_dict()["note"] is None


def test_silence_decision_belongs_to_gate() -> None:
    tuner = Tuner()
    tuner.gate = FrameGate(GateConfig(silence_rms=1.0))

    assert tuner.process(_sine(440.0), SAMPLE_RATE) is None
    assert tuner.state is TunerState.IDLE
