from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

import numpy as np
import sounddevice as sd

logger = logging.getLogger(__name__)

MIN_BPM = 30
MAX_BPM = 240
MAX_BEATS_PER_BAR = 12


@dataclass(frozen=True)
class Click:
    time: float
    beat: int
    accent: bool


class BeatScheduler:
    """
    Look-ahead beat scheduler.

    ``due(now)`` hands out every click that falls inside the look-ahead window,
    so a coarse polling loop still places each click on its exact beat time.
    """

    def __init__(self, bpm: int = 96, beats_per_bar: int = 4, lookahead: float = 0.1) -> None:
        self._bpm = _clamp_bpm(bpm)
        self._beats_per_bar = _clamp_beats(beats_per_bar)
        self._lookahead = float(lookahead)
        self._next_time = 0.0
        self._beat = 0
        self._running = False

    @property
    def bpm(self) -> int:
        return self._bpm

    @property
    def beats_per_bar(self) -> int:
        return self._beats_per_bar

    @property
    def running(self) -> bool:
        return self._running

    def set_bpm(self, bpm: int) -> None:
        self._bpm = _clamp_bpm(bpm)

    def set_beats_per_bar(self, beats: int) -> None:
        self._beats_per_bar = _clamp_beats(beats)
        self._beat %= self._beats_per_bar

    def start(self, now: float) -> None:
        self._beat = 0
        self._next_time = float(now) + 0.05
        self._running = True

    def stop(self) -> None:
        self._running = False

    def due(self, now: float) -> list[Click]:
        if not self._running:
            return []
        clicks: list[Click] = []
        while self._next_time < now + self._lookahead:
            clicks.append(Click(time=self._next_time, beat=self._beat, accent=self._beat == 0))
            self._next_time += 60.0 / float(self._bpm)
            self._beat = (self._beat + 1) % self._beats_per_bar
        return clicks


def click_wave(sample_rate: int, accent: bool, duration: float = 0.05, gain: float = 0.08) -> np.ndarray:
    n = int(sample_rate * duration)
    t = np.arange(n, dtype=np.float32) / float(sample_rate)
    freq = 1200.0 if accent else 800.0
    return (gain * np.sin(2.0 * np.pi * freq * t)).astype(np.float32)


class Metronome:
    def __init__(
        self,
        sample_rate: int = 44100,
        *,
        on_beat: Callable[[int], None] | None = None,
    ) -> None:
        self._sample_rate = int(sample_rate)
        self._scheduler = BeatScheduler()
        self._on_beat = on_beat
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def set_bpm(self, bpm: int) -> None:
        with self._lock:
            self._scheduler.set_bpm(bpm)

    def set_beats_per_bar(self, beats: int) -> None:
        with self._lock:
            self._scheduler.set_beats_per_bar(beats)

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        with self._lock:
            self._scheduler.start(time.monotonic())
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        logger.info("metronome started at %d bpm", self._scheduler.bpm)

    def stop(self) -> None:
        self._stop.set()
        with self._lock:
            self._scheduler.stop()
        if self._thread is not None:
            self._thread.join(timeout=0.5)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            with self._lock:
                clicks = self._scheduler.due(time.monotonic())
            for click in clicks:
                wait = click.time - time.monotonic()
                if wait > 0 and self._stop.wait(wait):
                    return
                self._play_click(click)
            time.sleep(0.005)

    def _play_click(self, click: Click) -> None:
        sd.play(click_wave(self._sample_rate, click.accent), samplerate=self._sample_rate, blocking=False)
        if self._on_beat is not None:
            self._on_beat(click.beat)


def _clamp_bpm(bpm: int) -> int:
    return int(max(MIN_BPM, min(MAX_BPM, bpm)))


def _clamp_beats(beats: int) -> int:
    return int(max(1, min(MAX_BEATS_PER_BAR, beats)))
