import logging
import time
import uuid
from dataclasses import asdict

from fastapi import FastAPI, File, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from pawlens.config import get_settings
from pawlens.core import flows
from pawlens.core.data_uri import ImageInput
from pawlens.core.errors import PawLensError
from pawlens.core.interaction import InteractionSnapshot
from pawlens.core.model_client import ModelClient, create_model_client
from pawlens.logging_setup import setup_logging
from pawlens.schemas import (
    AttentionMapResponse,
    ClassifyResponse,
    DetectResponse,
    EmbeddingResponse,
    EncodeResponse,
    ErrorResponse,
    HealthResponse,
    NotificationOut,
    PhotoRequest,
    SampleOut,
    SamplesResponse,
    SessionResponse,
    TextRequest,
    ViewRunRequest,
    ViewSnapshotOut,
)
from pawlens.utils.image_io import fetch_remote_image, read_upload_as_data_uri
from pawlens.utils.timings import measure_ms
from pawlens.views import SAMPLE_IMAGES, SessionStore

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger('pawlens')

app = FastAPI(title='PawLens', version=settings.version)
started_at = time.time()


@app.on_event('startup')
def startup_event() -> None:
    client = create_model_client(settings)
    app.state.model_client = client
    app.state.sessions = SessionStore(
        client,
        max_entries=settings.max_sessions,
        proxy_timeout_ms=settings.proxy_timeout_ms,
        max_image_bytes=settings.max_image_bytes,
    )
    logger.info(
        'Model client initialized provider=%s model=%s embedding_model=%s max_sessions=%s',
        settings.provider,
        client.model_id,
        client.embedding_model_id,
        settings.max_sessions,
    )


def _request_id(request: Request) -> str:
    return request.headers.get('x-request-id') or str(uuid.uuid4())


def _snapshot_out(snapshot: InteractionSnapshot) -> ViewSnapshotOut:
    return ViewSnapshotOut(
        view=snapshot.view,
        state=snapshot.state.value,
        selection=snapshot.selection,
        result=snapshot.result,
        error=snapshot.error,
        notification=NotificationOut(**asdict(snapshot.notification)) if snapshot.notification else None,
        generation=snapshot.generation,
    )


@app.exception_handler(PawLensError)
async def pawlens_error_handler(request: Request, exc: PawLensError):
    request_id = _request_id(request)
    logger.warning('request failed request_id=%s code=%s message=%s', request_id, exc.code, exc.message)
    payload = ErrorResponse(
        error=exc.code,
        message=exc.message,
        request_id=request_id,
    )
    return JSONResponse(status_code=exc.status_code, content=payload.model_dump())


@app.exception_handler(Exception)
async def generic_error_handler(request: Request, exc: Exception):
    request_id = _request_id(request)
    logger.exception('Unhandled exception request_id=%s', request_id)
    payload = ErrorResponse(
        error='UNEXPECTED_SERVER_ERROR',
        message='Unexpected server error.',
        request_id=request_id,
    )
    return JSONResponse(status_code=500, content=payload.model_dump())


@app.get('/health', response_model=HealthResponse)
def health():
    client: ModelClient = app.state.model_client
    return HealthResponse(
        ok=True,
        version=settings.version,
        provider=settings.provider,
        model=client.model_id,
        embedding_model=client.embedding_model_id,
        sessions=len(app.state.sessions),
        uptime_s=round(time.time() - started_at, 3),
    )


@app.get('/samples', response_model=SamplesResponse)
def samples():
    return SamplesResponse(samples=[SampleOut(**asdict(sample)) for sample in SAMPLE_IMAGES])


@app.get('/api/image-proxy')
def image_proxy(url: str = Query(...)):
    body, mime_type = fetch_remote_image(url, timeout_ms=settings.proxy_timeout_ms, max_bytes=settings.max_image_bytes)
    return Response(content=body, media_type=mime_type)


@app.post('/encode', response_model=EncodeResponse)
async def encode(image: UploadFile = File(...)):
    image_bytes = await image.read()
    data_uri = read_upload_as_data_uri(image_bytes, image.content_type, settings.max_image_bytes)
    photo = ImageInput(data_uri=data_uri)
    return EncodeResponse(data_uri=photo.data_uri, mime_type=photo.mime_type, size_bytes=len(image_bytes))


@app.post('/classify', response_model=ClassifyResponse)
def classify(payload: PhotoRequest):
    client: ModelClient = app.state.model_client
    with measure_ms() as elapsed:
        result = flows.classify(client, ImageInput(data_uri=payload.photo_data_uri))
    return ClassifyResponse(model=client.model_id, latency_ms=elapsed(), result=result)


@app.post('/detect', response_model=DetectResponse)
def detect(payload: PhotoRequest):
    client: ModelClient = app.state.model_client
    with measure_ms() as elapsed:
        objects = flows.detect(client, ImageInput(data_uri=payload.photo_data_uri))
    return DetectResponse(model=client.model_id, latency_ms=elapsed(), objects=objects)


@app.post('/attention-map', response_model=AttentionMapResponse)
def attention_map(payload: PhotoRequest):
    client: ModelClient = app.state.model_client
    with measure_ms() as elapsed:
        result = flows.generate_attention_map(client, ImageInput(data_uri=payload.photo_data_uri))
    return AttentionMapResponse(model=client.model_id, latency_ms=elapsed(), result=result)


@app.post('/embed/image', response_model=EmbeddingResponse)
def embed_image(payload: PhotoRequest):
    client: ModelClient = app.state.model_client
    with measure_ms() as elapsed:
        vector = flows.embed_image(client, ImageInput(data_uri=payload.photo_data_uri))
    return EmbeddingResponse(
        model=client.embedding_model_id,
        latency_ms=elapsed(),
        dimensions=len(vector),
        embedding=vector,
    )


@app.post('/embed/text', response_model=EmbeddingResponse)
def embed_text(payload: TextRequest):
    client: ModelClient = app.state.model_client
    with measure_ms() as elapsed:
        vector = flows.embed_text(client, payload.text)
    return EmbeddingResponse(
        model=client.embedding_model_id,
        latency_ms=elapsed(),
        dimensions=len(vector),
        embedding=vector,
    )


@app.post('/sessions', response_model=SessionResponse)
def create_session():
    session = app.state.sessions.create()
    logger.info('demo session created session_id=%s', session.session_id)
    return SessionResponse(
        session_id=session.session_id,
        views=[_snapshot_out(snapshot) for snapshot in session.snapshots()],
    )


@app.get('/sessions/{session_id}', response_model=SessionResponse)
def get_session(session_id: str):
    session = app.state.sessions.get(session_id)
    return SessionResponse(
        session_id=session.session_id,
        views=[_snapshot_out(snapshot) for snapshot in session.snapshots()],
    )


@app.post('/sessions/{session_id}/views/{view_name}', response_model=ViewSnapshotOut)
def run_view(session_id: str, view_name: str, payload: ViewRunRequest, request: Request):
    view = app.state.sessions.get(session_id).view(view_name)
    snapshot = view.run(
        photo_data_uri=payload.photo_data_uri,
        sample_id=payload.sample_id,
        text=payload.text,
    )
    logger.info(
        'view run request_id=%s session_id=%s view=%s state=%s',
        _request_id(request),
        session_id,
        view_name,
        snapshot.state.value,
    )
    return _snapshot_out(snapshot)


@app.delete('/sessions/{session_id}/views/{view_name}', response_model=ViewSnapshotOut)
def reset_view(session_id: str, view_name: str):
    view = app.state.sessions.get(session_id).view(view_name)
    return _snapshot_out(view.reset())


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
