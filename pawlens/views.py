import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from pawlens.core import flows
from pawlens.core.data_uri import ImageInput
from pawlens.core.errors import MalformedInput, NotFound
from pawlens.core.interaction import Interaction, InteractionSnapshot
from pawlens.core.model_client import ModelClient
from pawlens.utils.image_io import DEFAULT_MAX_BYTES, fetch_remote_as_data_uri

logger = logging.getLogger('pawlens.views')

GENERIC_FAILURE = 'Something went wrong. Please try again.'
EMBEDDING_FAILURE = 'Could not generate an embedding for the image. Please try another one.'


@dataclass(frozen=True)
class SampleImage:
    id: str
    url: str
    alt: str
    hint: str


SAMPLE_IMAGES: tuple[SampleImage, ...] = (
    SampleImage(id='cat1', url='https://picsum.photos/id/219/300/200', alt='A fluffy cat', hint='cat'),
    SampleImage(id='dog1', url='https://picsum.photos/id/237/300/200', alt='A black puppy', hint='dog'),
    SampleImage(id='cat2', url='https://picsum.photos/id/1074/300/200', alt='A cat yawning', hint='cat'),
    SampleImage(id='dog2', url='https://picsum.photos/id/568/300/200', alt='A dog in a field', hint='dog'),
)


def find_sample(sample_id: str) -> SampleImage:
    for sample in SAMPLE_IMAGES:
        if sample.id == sample_id:
            return sample
    raise NotFound(f'Unknown sample image {sample_id!r}.')


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode='json')
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value


class View(ABC):
    name: str = ''
    failure_description: str = GENERIC_FAILURE

    def __init__(
        self,
        client: ModelClient,
        proxy_timeout_ms: int = 15000,
        max_image_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        self._client = client
        self._proxy_timeout_ms = proxy_timeout_ms
        self._max_image_bytes = max_image_bytes
        self.interaction = Interaction(self.name, self.failure_description)

    def run(
        self,
        photo_data_uri: str | None = None,
        sample_id: str | None = None,
        text: str | None = None,
    ) -> InteractionSnapshot:
        selection = self._selection(photo_data_uri=photo_data_uri, sample_id=sample_id, text=text)
        return self.interaction.run(
            selection,
            lambda: _jsonable(self._execute(photo_data_uri=photo_data_uri, sample_id=sample_id, text=text)),
        )

    def reset(self) -> InteractionSnapshot:
        self.interaction.reset()
        return self.interaction.snapshot()

    def snapshot(self) -> InteractionSnapshot:
        return self.interaction.snapshot()

    def _selection(self, photo_data_uri: str | None, sample_id: str | None, text: str | None) -> dict[str, Any]:
        if sample_id:
            sample = find_sample(sample_id)
            return {'kind': 'sample', 'sample_id': sample.id, 'url': sample.url}
        if photo_data_uri:
            return {'kind': 'upload', 'bytes': len(photo_data_uri)}
        raise MalformedInput('Please upload an image first.')

    def _resolve_image(self, photo_data_uri: str | None, sample_id: str | None) -> ImageInput:
        if sample_id:
            sample = find_sample(sample_id)
            data_uri = fetch_remote_as_data_uri(
                sample.url,
                timeout_ms=self._proxy_timeout_ms,
                max_bytes=self._max_image_bytes,
            )
            return ImageInput(data_uri=data_uri)
        return ImageInput(data_uri=photo_data_uri or '')

    @abstractmethod
    def _execute(self, photo_data_uri: str | None, sample_id: str | None, text: str | None) -> Any:
        raise NotImplementedError


class ClassifyView(View):
    name = 'classify'

    def _execute(self, photo_data_uri, sample_id, text):
        return flows.classify(self._client, self._resolve_image(photo_data_uri, sample_id))


class DetectView(View):
    name = 'detect'

    def _execute(self, photo_data_uri, sample_id, text):
        return flows.detect(self._client, self._resolve_image(photo_data_uri, sample_id))


class AttentionMapView(View):
    name = 'attention-map'

    def _execute(self, photo_data_uri, sample_id, text):
        return flows.generate_attention_map(self._client, self._resolve_image(photo_data_uri, sample_id))


def _embedding_payload(vector: list[float]) -> dict[str, Any]:
    return {
        'embedding': vector,
        'dimensions': len(vector),
        'preview': '[' + ', '.join(f'{value:.4f}' for value in vector) + ']',
    }


class ImageEmbeddingView(View):
    name = 'embed-image'
    failure_description = EMBEDDING_FAILURE

    def _execute(self, photo_data_uri, sample_id, text):
        return _embedding_payload(flows.embed_image(self._client, self._resolve_image(photo_data_uri, sample_id)))


class TextEmbeddingView(View):
    name = 'embed-text'
    failure_description = 'Could not generate an embedding for the text. Please try again.'

    def _selection(self, photo_data_uri, sample_id, text):
        if not text or not text.strip():
            raise MalformedInput('Please enter some text first.')
        return {'kind': 'text', 'chars': len(text)}

    def _execute(self, photo_data_uri, sample_id, text):
        return _embedding_payload(flows.embed_text(self._client, text or ''))


VIEW_TYPES: tuple[type[View], ...] = (ClassifyView, DetectView, AttentionMapView, ImageEmbeddingView, TextEmbeddingView)


class DemoSession:
    def __init__(
        self,
        session_id: str,
        client: ModelClient,
        proxy_timeout_ms: int = 15000,
        max_image_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        self.session_id = session_id
        self.views: dict[str, View] = {
            view_type.name: view_type(client, proxy_timeout_ms=proxy_timeout_ms, max_image_bytes=max_image_bytes)
            for view_type in VIEW_TYPES
        }

    def view(self, name: str) -> View:
        view = self.views.get(name)
        if view is None:
            raise NotFound(f'Unknown view {name!r}.')
        return view

    def snapshots(self) -> list[InteractionSnapshot]:
        return [view.snapshot() for view in self.views.values()]


class SessionStore:
    def __init__(
        self,
        client: ModelClient,
        max_entries: int = 256,
        proxy_timeout_ms: int = 15000,
        max_image_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        self.max_entries = max(1, int(max_entries))
        self._client = client
        self._proxy_timeout_ms = proxy_timeout_ms
        self._max_image_bytes = max_image_bytes
        self._store: OrderedDict[str, DemoSession] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._store)

    def create(self) -> DemoSession:
        session = DemoSession(
            uuid.uuid4().hex,
            self._client,
            proxy_timeout_ms=self._proxy_timeout_ms,
            max_image_bytes=self._max_image_bytes,
        )
        with self._lock:
            while len(self._store) >= self.max_entries:
                evicted, _ = self._store.popitem(last=False)
                logger.info('evicted demo session session_id=%s', evicted)
            self._store[session.session_id] = session
        return session

    def get(self, session_id: str) -> DemoSession:
        with self._lock:
            session = self._store.get(session_id)
        if session is None:
            raise NotFound(f'Unknown session {session_id!r}.')
        return session
