from __future__ import annotations

import logging
import threading
import uuid

import numpy as np

from pitch_tuner.filters import CaptureChain
from pitch_tuner.gate import frame_rms
from pitch_tuner.tuner import Tuner, TunerConfig
from pitch_tuner.web.schemas import TunerUpdateEvent

logger = logging.getLogger(__name__)


class TunerSession:
    """One browser microphone stream: band limiting, rolling window and its own tuner."""

    def __init__(self, session_id: str, *, sample_rate: int = 44_100, block_size: int = 1024) -> None:
        self.session_id = session_id
        self.tuner = Tuner()
        self._sample_rate = int(sample_rate)
        self._block_size = int(block_size)
        self._chain = CaptureChain(self._sample_rate)
        self._pending = np.zeros(0, dtype=np.float32)
        self._clock = 0.0

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def init(self, *, sample_rate: int, reference_pitch: float) -> None:
        self._sample_rate = int(sample_rate)
        self._chain = CaptureChain(self._sample_rate)
        self._pending = np.zeros(0, dtype=np.float32)
        self._clock = 0.0
        self.tuner = Tuner(TunerConfig(reference_pitch=float(reference_pitch)))

    def set_config(self, *, reference_pitch: float | None = None) -> None:
        if reference_pitch is not None:
            self.tuner.set_reference_pitch(reference_pitch)

    def stop(self) -> None:
        self.tuner.stop()
        self._chain.reset()
        self._pending = np.zeros(0, dtype=np.float32)

    def process_audio_bytes(self, payload: bytes) -> list[dict[str, object]]:
        if not payload or len(payload) % 4:
            return []

        block = np.frombuffer(payload, dtype=np.float32)
        if not np.all(np.isfinite(block)):
            logger.warning("session %s sent non-finite audio; block dropped", self.session_id)
            return [{"type": "error", "code": "invalid_audio", "message": "Audio contains NaN or infinite samples"}]
        self._pending = np.concatenate((self._pending, block))
        events: list[dict[str, object]] = []

        while self._pending.size >= self._block_size:
            chunk = self._pending[: self._block_size]
            self._pending = self._pending[self._block_size :]
            self._clock += self._block_size / float(self._sample_rate)
            self._chain.push(chunk)
            frame = self._chain.latest()
            if frame is None:
                continue
            events.append(self._tick(frame))

        return events

    def _tick(self, frame: np.ndarray) -> dict[str, object]:
        reading = self.tuner.process(frame, self._sample_rate)
        if reading is None:
            event = TunerUpdateEvent(
                t=self._clock,
                voiced=False,
                note=None,
                hz=None,
                cents=None,
                rms=frame_rms(frame),
            )
        else:
            event = TunerUpdateEvent(
                t=self._clock,
                voiced=True,
                note=reading.note_name,
                hz=reading.hz,
                cents=reading.display_cents,
                rms=reading.rms,
            )
        return event.model_dump(by_alias=True)


class SessionManager:
    def __init__(self) -> None:
        self._sessions: dict[str, TunerSession] = {}
        self._lock = threading.Lock()

    def create(self) -> TunerSession:
        session_id = uuid.uuid4().hex
        session = TunerSession(session_id)
        with self._lock:
            self._sessions[session_id] = session
        logger.info("session %s opened", session_id)
        return session

    def remove(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
        logger.info("session %s closed", session_id)

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._sessions)
