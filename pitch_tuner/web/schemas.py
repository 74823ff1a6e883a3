from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _Model(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class InitMessage(_Model):
    type: Literal["init"]
    sample_rate: int = Field(alias="sampleRate", ge=8_000, le=192_000)
    reference_pitch: float = Field(alias="referencePitch", default=440.0, gt=0.0, le=2_000.0)


class SetConfigMessage(_Model):
    type: Literal["set_config"]
    reference_pitch: float | None = Field(alias="referencePitch", default=None, gt=0.0, le=2_000.0)


class StopMessage(_Model):
    type: Literal["stop"]


class TransportPingMessage(_Model):
    type: Literal["transport_ping"]
    client_ts: float = Field(alias="clientTs")


class TunerUpdateEvent(_Model):
    type: Literal["tuner_update"] = "tuner_update"
    t: float
    voiced: bool
    note: str | None
    hz: float | None
    cents: int | None = Field(ge=-50, le=50)
    rms: float


class AnalysisResult(_Model):
    frames: int
    voiced_frames: int = Field(alias="voicedFrames")
    median_hz: float | None = Field(alias="medianHz")
    note: str | None
    reference_pitch: float = Field(alias="referencePitch")
