from typing import Any

from pydantic import BaseModel, Field

from pawlens.core.contracts import AttentionResult, ClassificationResult, DetectedObject


class PhotoRequest(BaseModel):
    photo_data_uri: str


class TextRequest(BaseModel):
    text: str


class ViewRunRequest(BaseModel):
    photo_data_uri: str | None = None
    sample_id: str | None = None
    text: str | None = None


class EncodeResponse(BaseModel):
    ok: bool = True
    data_uri: str
    mime_type: str
    size_bytes: int


class ClassifyResponse(BaseModel):
    ok: bool = True
    model: str
    latency_ms: int
    result: ClassificationResult


class DetectResponse(BaseModel):
    ok: bool = True
    model: str
    latency_ms: int
    objects: list[DetectedObject]


class AttentionMapResponse(BaseModel):
    ok: bool = True
    model: str
    latency_ms: int
    result: AttentionResult


class EmbeddingResponse(BaseModel):
    ok: bool = True
    model: str | None = None
    latency_ms: int
    dimensions: int
    embedding: list[float]


class SampleOut(BaseModel):
    id: str
    url: str
    alt: str
    hint: str


class SamplesResponse(BaseModel):
    ok: bool = True
    samples: list[SampleOut]


class NotificationOut(BaseModel):
    title: str
    description: str
    variant: str = 'destructive'


class ViewSnapshotOut(BaseModel):
    view: str
    state: str
    selection: dict[str, Any] | None = None
    result: Any = None
    error: str | None = None
    notification: NotificationOut | None = None
    generation: int = 0


class SessionResponse(BaseModel):
    ok: bool = True
    session_id: str
    views: list[ViewSnapshotOut] = Field(default_factory=list)


class HealthResponse(BaseModel):
    ok: bool
    version: str
    provider: str
    model: str | None = None
    embedding_model: str | None = None
    sessions: int = 0
    uptime_s: float


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    message: str
    request_id: str | None = None
