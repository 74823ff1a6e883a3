from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class GateConfig:
    silence_rms: float = 0.005  # ~-46 dBFS for float32 [-1,1]
    max_hz: float = 2000.0

    def __post_init__(self) -> None:
        if self.silence_rms < 0.0:
            raise ValueError(f"silence_rms must be non-negative, got {self.silence_rms}")
        if self.max_hz <= 0.0:
            raise ValueError(f"max_hz must be positive, got {self.max_hz}")


class FrameGate:
    """Rejects silent frames before estimation and implausible pitches after it."""

    def __init__(self, config: GateConfig | None = None) -> None:
        self._cfg = config or GateConfig()

    @property
    def config(self) -> GateConfig:
        return self._cfg

    def is_silent(self, frame: np.ndarray) -> bool:
        return self.is_silent_rms(frame_rms(frame))

    def is_silent_rms(self, rms: float) -> bool:
        return rms < self._cfg.silence_rms

    def in_range(self, hz: float | None) -> bool:
        if hz is None or not math.isfinite(hz):
            return False
        return 0.0 < hz < self._cfg.max_hz


def frame_rms(frame: np.ndarray) -> float:
    x = np.asarray(frame, dtype=np.float64)
    if x.size == 0:
        return 0.0
    return float(math.sqrt(float(np.mean(np.square(x)))))
