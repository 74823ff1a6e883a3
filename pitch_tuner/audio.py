from __future__ import annotations

import logging
import threading
from typing import Callable
from dataclasses import dataclass

import numpy as np
import sounddevice as sd

logger = logging.getLogger(__name__)


class AudioDeviceError(RuntimeError):
    pass


@dataclass(frozen=True)
class AudioInputConfig:
    sample_rate: int = 44100
    channels: int = 1
    block_size: int = 1024

    def __post_init__(self) -> None:
        if not (8_000 <= self.sample_rate <= 192_000):
            raise ValueError(f"sample_rate must be in [8000, 192000], got {self.sample_rate}")
        if self.channels < 1:
            raise ValueError(f"channels must be >= 1, got {self.channels}")
        if self.block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {self.block_size}")


class AudioInput:
    def __init__(self, config: AudioInputConfig | None = None) -> None:
        self._cfg = config or AudioInputConfig()
        self._lock = threading.Lock()
        self._stream: sd.InputStream | None = None
        self._tap: Callable[[np.ndarray], None] | None = None

    @property
    def sample_rate(self) -> int:
        return self._cfg.sample_rate

    @property
    def is_running(self) -> bool:
        return self._stream is not None

    def start(self) -> None:
        if self._stream is not None:
            return

        def callback(indata, frames, time_info, status) -> None:  # noqa: ARG001
            if status:
                # Drop blocks on over/underflow; the window keeps the last good samples.
                return
            mono = np.asarray(indata[:, 0], dtype=np.float32).copy()
            with self._lock:
                tap = self._tap
            if tap is not None:
                tap(mono)

        try:
            stream = sd.InputStream(
                samplerate=self._cfg.sample_rate,
                channels=self._cfg.channels,
                blocksize=self._cfg.block_size,
                dtype="float32",
                callback=callback,
            )
            stream.start()
        except sd.PortAudioError as exc:
            logger.warning("microphone unavailable: %s", exc)
            raise AudioDeviceError(f"Could not open the microphone: {exc}") from exc
        self._stream = stream
        logger.info("audio input started at %d Hz", self._cfg.sample_rate)

    def stop(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        finally:
            self._stream = None
            logger.info("audio input stopped")

    def set_tap(self, tap: Callable[[np.ndarray], None] | None) -> None:
        with self._lock:
            self._tap = tap
