from __future__ import annotations

import math
import threading

import numpy as np

_BUTTERWORTH_Q = 1.0 / math.sqrt(2.0)


class Biquad:
    """RBJ-cookbook second-order section; state carries over between blocks."""

    def __init__(self, kind: str, sample_rate: float, cutoff_hz: float, q: float = _BUTTERWORTH_Q) -> None:
        if not (0.0 < cutoff_hz < sample_rate / 2.0):
            raise ValueError(f"cutoff_hz must be in (0, {sample_rate / 2.0}), got {cutoff_hz}")
        w0 = 2.0 * math.pi * float(cutoff_hz) / float(sample_rate)
        cos_w0 = math.cos(w0)
        alpha = math.sin(w0) / (2.0 * float(q))
        if kind == "lowpass":
            b0 = b2 = (1.0 - cos_w0) / 2.0
            b1 = 1.0 - cos_w0
        elif kind == "highpass":
            b0 = b2 = (1.0 + cos_w0) / 2.0
            b1 = -(1.0 + cos_w0)
        else:
            raise ValueError(f"Unknown filter kind: {kind!r}")
        a0 = 1.0 + alpha
        self.kind = kind
        self._b = (b0 / a0, b1 / a0, b2 / a0)
        self._a = (-2.0 * cos_w0 / a0, (1.0 - alpha) / a0)
        self._x1 = self._x2 = self._y1 = self._y2 = 0.0

    def process(self, x: np.ndarray) -> np.ndarray:
        y = np.empty(x.size, dtype=np.float32)
        b0, b1, b2 = self._b
        a1, a2 = self._a
        x1, x2, y1, y2 = self._x1, self._x2, self._y1, self._y2
        for i, xi in enumerate(x.tolist()):
            yi = b0 * xi + b1 * x1 + b2 * x2 - a1 * y1 - a2 * y2
            x2, x1 = x1, xi
            y2, y1 = y1, yi
            y[i] = yi
        self._x1, self._x2, self._y1, self._y2 = x1, x2, y1, y2
        return y

    def reset(self) -> None:
        self._x1 = self._x2 = self._y1 = self._y2 = 0.0


class BandLimiter:
    """High-pass out mains hum, low-pass out hiss above the useful fundamentals."""

    def __init__(self, sample_rate: float, low_hz: float = 60.0, high_hz: float = 1200.0) -> None:
        if low_hz >= high_hz:
            raise ValueError(f"low_hz ({low_hz}) must be below high_hz ({high_hz})")
        self._hp = Biquad("highpass", sample_rate, low_hz)
        self._lp = Biquad("lowpass", sample_rate, high_hz)

    def process(self, x: np.ndarray) -> np.ndarray:
        mono = np.asarray(x, dtype=np.float32)
        return self._lp.process(self._hp.process(mono))

    def reset(self) -> None:
        self._hp.reset()
        self._lp.reset()


class FrameWindow:
    """Keeps the newest ``size`` samples, like an analyser's time-domain buffer."""

    def __init__(self, size: int = 2048) -> None:
        if size < 4:
            raise ValueError(f"size must be >= 4, got {size}")
        self._size = int(size)
        self._buffer = np.zeros(self._size, dtype=np.float32)
        self._fill = 0

    @property
    def size(self) -> int:
        return self._size

    @property
    def is_full(self) -> bool:
        return self._fill >= self._size

    def push(self, x: np.ndarray) -> None:
        n = int(x.size)
        if n == 0:
            return
        if n >= self._size:
            self._buffer[:] = x[-self._size :]
        else:
            self._buffer[:-n] = self._buffer[n:]
            self._buffer[-n:] = x
        self._fill = min(self._size, self._fill + n)

    def latest(self) -> np.ndarray | None:
        if not self.is_full:
            return None
        return self._buffer.copy()

    def reset(self) -> None:
        self._buffer[:] = 0.0
        self._fill = 0


class CaptureChain:
    """Band limiter feeding a rolling window; safe to push from an audio callback thread."""

    def __init__(
        self,
        sample_rate: float,
        *,
        frame_size: int = 2048,
        low_hz: float = 60.0,
        high_hz: float = 1200.0,
    ) -> None:
        self.sample_rate = float(sample_rate)
        self._limiter = BandLimiter(sample_rate, low_hz, high_hz)
        self._window = FrameWindow(frame_size)
        self._lock = threading.Lock()

    def push(self, block: np.ndarray) -> None:
        with self._lock:
            self._window.push(self._limiter.process(block))

    def latest(self) -> np.ndarray | None:
        with self._lock:
            return self._window.latest()

    def reset(self) -> None:
        with self._lock:
            self._limiter.reset()
            self._window.reset()
