from __future__ import annotations

from collections import deque
from dataclasses import dataclass


@dataclass(frozen=True)
class StabilizerConfig:
    ema_alpha: float = 0.25
    median_window: int = 5

    def __post_init__(self) -> None:
        if not (0.0 < self.ema_alpha <= 1.0):
            raise ValueError(f"ema_alpha must be in (0, 1], got {self.ema_alpha}")
        if self.median_window < 1:
            raise ValueError(f"median_window must be >= 1, got {self.median_window}")


class DisplayStabilizer:
    """
    Smooths a per-frame cents value for display.

    EMA removes frame-to-frame jitter; the median over the last few EMA
    outputs then rejects single-frame spikes such as octave errors.
    One instance belongs to one pitch track.
    """

    def __init__(self, config: StabilizerConfig | None = None) -> None:
        self._cfg = config or StabilizerConfig()
        self._ema: float | None = None
        self._history: deque[float] = deque(maxlen=self._cfg.median_window)

    @property
    def is_seeded(self) -> bool:
        return self._ema is not None

    @property
    def history(self) -> tuple[float, ...]:
        return tuple(self._history)

    def smooth(self, raw_cents: float) -> float:
        raw = float(raw_cents)
        if self._ema is None:
            self._ema = raw
        else:
            self._ema = self._ema + self._cfg.ema_alpha * (raw - self._ema)

        self._history.append(self._ema)
        ordered = sorted(self._history)
        # Upper of the two middle values for even counts.
        return ordered[len(ordered) // 2]

    def reset(self) -> None:
        self._ema = None
        self._history.clear()
