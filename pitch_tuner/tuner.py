from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum

import numpy as np

from pitch_tuner.gate import FrameGate, GateConfig, frame_rms
from pitch_tuner.notes import A4_HZ, frequency_to_note_number, note_number_to_name, read_note
from pitch_tuner.pitch import PitchEstimator
from pitch_tuner.stabilizer import DisplayStabilizer, StabilizerConfig

logger = logging.getLogger(__name__)


class TunerState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"


@dataclass(frozen=True)
class TunerConfig:
    reference_pitch: float = A4_HZ
    threshold: float = 0.1
    silence_rms: float = 0.005
    max_hz: float = 2000.0
    # Clamp before smoothing bounds outliers; clamp for display bounds the needle.
    raw_cents_limit: float = 100.0
    display_cents_limit: float = 50.0
    ema_alpha: float = 0.25
    median_window: int = 5

    def __post_init__(self) -> None:
        if not (0.0 < self.reference_pitch <= 2000.0):
            raise ValueError(f"reference_pitch must be in (0, 2000], got {self.reference_pitch}")
        if self.raw_cents_limit <= 0.0 or self.display_cents_limit <= 0.0:
            raise ValueError("cents limits must be positive")
        if self.display_cents_limit > self.raw_cents_limit:
            raise ValueError(
                f"display_cents_limit ({self.display_cents_limit}) must not exceed "
                f"raw_cents_limit ({self.raw_cents_limit})"
            )


@dataclass(frozen=True)
class TunerReading:
    note_name: str
    hz: float
    cents: float
    display_cents: int
    rms: float

    def to_event(self) -> dict[str, object]:
        return {
            "note": self.note_name,
            "hz": float(self.hz),
            "cents": int(self.display_cents),
            "rms": float(self.rms),
        }


class Tuner:
    """
    Per-frame tuner pipeline owning one stabilizer.

    Gate (silence) -> YIN -> gate (range) -> note + clamped cents -> stabilizer
    -> display clamp. Any rejected frame resets the stabilizer and yields ``None``.
    """

    def __init__(self, config: TunerConfig | None = None) -> None:
        self._cfg = config or TunerConfig()
        self._build()
        self._state = TunerState.IDLE

    def _build(self) -> None:
        cfg = self._cfg
        self.estimator = PitchEstimator(threshold=cfg.threshold)
        self.gate = FrameGate(GateConfig(silence_rms=cfg.silence_rms, max_hz=cfg.max_hz))
        self.stabilizer = DisplayStabilizer(
            StabilizerConfig(ema_alpha=cfg.ema_alpha, median_window=cfg.median_window)
        )

    @property
    def config(self) -> TunerConfig:
        return self._cfg

    @property
    def state(self) -> TunerState:
        return self._state

    @property
    def reference_pitch(self) -> float:
        return self._cfg.reference_pitch

    def set_reference_pitch(self, hz: float) -> None:
        self._cfg = replace(self._cfg, reference_pitch=float(hz))
        self._build()
        self._to_idle("reference pitch changed")

    def process(self, frame: np.ndarray, sample_rate: float) -> TunerReading | None:
        mono = np.asarray(frame, dtype=np.float32)
        rms = frame_rms(mono)
        if self.gate.is_silent_rms(rms):
            self._to_idle("silence")
            return None

        hz = self.estimator.estimate(mono, sample_rate)
        if not self.gate.in_range(hz):
            self._to_idle("out of range")
            return None

        note = read_note(hz, self._cfg.reference_pitch, self._cfg.raw_cents_limit)
        smoothed = self.stabilizer.smooth(note.cents)
        limit = self._cfg.display_cents_limit
        display = int(math.floor(max(-limit, min(limit, smoothed)) + 0.5))

        if self._state is not TunerState.TRACKING:
            logger.debug("tracking started at %.2f Hz (%s)", hz, note.note_name)
            self._state = TunerState.TRACKING
        return TunerReading(
            note_name=note.note_name,
            hz=round(float(hz), 2),
            cents=float(smoothed),
            display_cents=display,
            rms=rms,
        )

    def stop(self) -> None:
        self._to_idle("stopped")

    def _to_idle(self, reason: str) -> None:
        self.stabilizer.reset()
        if self._state is not TunerState.IDLE:
            logger.debug("tracking reset: %s", reason)
            self._state = TunerState.IDLE


@dataclass(frozen=True)
class RecordingSummary:
    frames: int
    voiced_frames: int
    median_hz: float | None
    note_name: str | None

    def to_dict(self) -> dict[str, object]:
        return {
            "frames": self.frames,
            "voicedFrames": self.voiced_frames,
            "medianHz": self.median_hz,
            "note": self.note_name,
        }


def analyze_recording(
    audio: np.ndarray,
    sample_rate: int,
    *,
    frame_size: int = 2048,
    hop_size: int = 1024,
    config: TunerConfig | None = None,
) -> RecordingSummary:
    """Run a fresh tuner across a whole recording and summarise the voiced frames."""
    tuner = Tuner(config)
    x = np.asarray(audio, dtype=np.float32)
    frames = 0
    hz_list: list[float] = []
    for i in range(0, max(1, x.size - frame_size + 1), hop_size):
        frame = x[i : i + frame_size]
        if frame.size == 0:
            continue
        frames += 1
        reading = tuner.process(frame, sample_rate)
        if reading is not None:
            hz_list.append(reading.hz)

    if not hz_list:
        return RecordingSummary(frames=frames, voiced_frames=0, median_hz=None, note_name=None)
    median_hz = float(np.median(np.array(hz_list, dtype=np.float64)))
    note_name = note_number_to_name(frequency_to_note_number(median_hz, tuner.reference_pitch))
    return RecordingSummary(
        frames=frames,
        voiced_frames=len(hz_list),
        median_hz=round(median_hz, 2),
        note_name=note_name,
    )
