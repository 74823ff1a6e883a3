from __future__ import annotations

import io
import json
import logging
import time

import numpy as np
import soundfile as sf
import uvicorn
from fastapi import FastAPI, File, Form, HTTPException, UploadFile, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from pitch_tuner import __version__
from pitch_tuner.tuner import TunerConfig, analyze_recording
from pitch_tuner.web.schemas import (
    AnalysisResult,
    InitMessage,
    SetConfigMessage,
    StopMessage,
    TransportPingMessage,
)
from pitch_tuner.web.session import SessionManager, TunerSession

logger = logging.getLogger(__name__)

app = FastAPI(title="Pitch Tuner", version=__version__)
sessions = SessionManager()


@app.get("/api/health")
async def health() -> dict[str, object]:
    return {
        "status": "ok",
        "version": __version__,
        "activeSessions": sessions.active_count,
    }


@app.post("/api/analyze")
async def analyze(
    audio: UploadFile = File(...),
    reference_pitch: float = Form(440.0, alias="referencePitch"),
) -> dict[str, object]:
    if not (0.0 < reference_pitch <= 2000.0):
        raise HTTPException(status_code=422, detail="referencePitch must be in range (0, 2000]")

    payload = await audio.read()
    if not payload:
        raise HTTPException(status_code=400, detail="Audio file is empty")

    try:
        waveform, sample_rate = _decode_audio(payload)
    except Exception as exc:  # noqa: BLE001
        logger.info("rejected upload %r: %s", audio.filename, exc)
        raise HTTPException(status_code=400, detail=f"Unable to decode audio: {exc}") from exc

    summary = analyze_recording(waveform, sample_rate, config=TunerConfig(reference_pitch=reference_pitch))
    result = AnalysisResult(
        frames=summary.frames,
        voiced_frames=summary.voiced_frames,
        median_hz=summary.median_hz,
        note=summary.note_name,
        reference_pitch=reference_pitch,
    )
    return result.model_dump(by_alias=True)


@app.websocket("/ws/tuner")
async def tuner_ws(websocket: WebSocket) -> None:
    await websocket.accept()
    session = sessions.create()
    await websocket.send_json({"type": "status", "message": "Connected."})

    try:
        while True:
            message = await websocket.receive()
            if message.get("type") == "websocket.disconnect":
                break
            text = message.get("text")
            binary = message.get("bytes")

            if text is not None:
                for event in _handle_text_message(session, text):
                    await websocket.send_json(event)
            elif binary is not None:
                for event in session.process_audio_bytes(binary):
                    await websocket.send_json(event)
    except WebSocketDisconnect:
        pass
    finally:
        sessions.remove(session.session_id)


def _handle_text_message(session: TunerSession, text: str) -> list[dict[str, object]]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return [{"type": "error", "code": "invalid_json", "message": "Invalid JSON payload"}]

    if not isinstance(payload, dict):
        return [{"type": "error", "code": "invalid_payload", "message": "Expected JSON object"}]

    msg_type = payload.get("type")
    try:
        if msg_type == "init":
            msg = InitMessage.model_validate(payload)
            session.init(sample_rate=msg.sample_rate, reference_pitch=msg.reference_pitch)
            return [{"type": "status", "message": "Session initialized."}]

        if msg_type == "set_config":
            msg = SetConfigMessage.model_validate(payload)
            session.set_config(reference_pitch=msg.reference_pitch)
            return [{"type": "status", "message": "Config updated."}]

        if msg_type == "stop":
            StopMessage.model_validate(payload)
            session.stop()
            return [{"type": "status", "message": "Tuner stopped."}]

        if msg_type == "transport_ping":
            msg = TransportPingMessage.model_validate(payload)
            return [
                {
                    "type": "transport_pong",
                    "clientTs": msg.client_ts,
                    "serverTs": time.time(),
                }
            ]

    except ValidationError as exc:
        return [{"type": "error", "code": "invalid_message", "message": str(exc)}]

    return [{"type": "error", "code": "unknown_message", "message": f"Unknown type: {msg_type}"}]


def _decode_audio(payload: bytes) -> tuple[np.ndarray, int]:
    data, sample_rate = sf.read(io.BytesIO(payload), dtype="float32", always_2d=False)
    audio = np.asarray(data, dtype=np.float32)
    if audio.ndim == 2:
        audio = np.mean(audio, axis=1, dtype=np.float32)
    if audio.size == 0:
        raise ValueError("decoded audio is empty")
    return audio, int(sample_rate)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(
        "pitch_tuner.web.server:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
    )


if __name__ == "__main__":
    main()
