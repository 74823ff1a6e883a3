from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

MIN_FRAME_SIZE = 4


@dataclass(frozen=True)
class PitchEstimator:
    """
    Time-domain YIN pitch estimator for a single monophonic frame.

    Strategy:
    - Squared-difference function over lags [1, N/2).
    - Cumulative-mean normalization (CMNDF).
    - First lag under the absolute threshold, walked down to the bottom of its dip.
    - Global minimum as a fallback when nothing crosses the threshold.
    - Parabolic interpolation for sub-sample lag.
    """

    threshold: float = 0.1
    descend: bool = True

    def __post_init__(self) -> None:
        if not (0.0 < self.threshold < 1.0):
            raise ValueError(f"threshold must be in (0, 1), got {self.threshold}")

    def estimate(self, samples: np.ndarray, sample_rate: float) -> float | None:
        return yin(samples, sample_rate, self.threshold, descend=self.descend)


def yin(
    samples: np.ndarray,
    sample_rate: float,
    threshold: float = 0.1,
    *,
    descend: bool = True,
) -> float | None:
    """Return the fundamental frequency of ``samples`` in Hz, or ``None`` when no pitch is found."""
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim != 1 or x.size < MIN_FRAME_SIZE or not sample_rate > 0:
        return None

    half = x.size // 2
    cmndf = _cmndf(_difference(x, half))

    tau = _pick_lag(cmndf, threshold, descend=descend)
    if tau is None:
        return None

    lag = _parabolic_lag(cmndf, tau)
    if not math.isfinite(lag) or lag <= 0.0:
        return None
    hz = float(sample_rate) / lag
    if not math.isfinite(hz) or hz <= 0.0:
        return None
    return hz


def _difference(x: np.ndarray, half: int) -> np.ndarray:
    diff = np.zeros(half, dtype=np.float64)
    head = x[:half]
    for tau in range(1, half):
        delta = head - x[tau : tau + half]
        diff[tau] = float(np.dot(delta, delta))
    return diff


def _cmndf(diff: np.ndarray) -> np.ndarray:
    out = np.ones_like(diff)
    if diff.size < 2:
        return out
    taus = np.arange(1, diff.size, dtype=np.float64)
    running = np.cumsum(diff[1:])
    # Zero running sum (silent or constant frame) leaves the value at 1.
    np.divide(diff[1:] * taus, running, out=out[1:], where=running > 0.0)
    return out


def _pick_lag(cmndf: np.ndarray, threshold: float, *, descend: bool) -> int | None:
    size = cmndf.size
    if size <= 2:
        return None

    below = np.flatnonzero(cmndf[2:] < threshold)
    if below.size:
        tau = int(below[0]) + 2
        if descend:
            while tau + 1 < size and cmndf[tau + 1] < cmndf[tau]:
                tau += 1
        return tau

    # Nothing under the threshold: best lag overall, if it beats the cmndf(0) baseline.
    i = int(np.argmin(cmndf[2:]))
    if not cmndf[i + 2] < 1.0:
        return None
    return i + 2


def _parabolic_lag(cmndf: np.ndarray, tau: int) -> float:
    x0 = tau if tau <= 1 else tau - 1
    x2 = tau + 1 if tau + 1 < cmndf.size else tau
    s0, s1, s2 = float(cmndf[x0]), float(cmndf[tau]), float(cmndf[x2])
    a = (s0 + s2 - 2.0 * s1) / 2.0
    b = (s2 - s0) / 2.0
    if a == 0.0:
        return float(tau)
    return float(tau) - b / (2.0 * a)
