import hashlib

from pydantic import BaseModel

from pawlens.core.contracts import AttentionResult, ClassificationResult, DetectionResult
from pawlens.core.data_uri import ImageInput
from pawlens.core.errors import MalformedInput
from pawlens.core.model_client import ModelClient
from pawlens.core.types import Prompt

EMBEDDING_DIMENSIONS = 16


class DummyProvider(ModelClient):
    """Offline stand-in that answers every prompt with a fixed, valid payload."""

    def __init__(self, model_id: str = 'dummy-v1') -> None:
        self._model_id = model_id

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def embedding_model_id(self) -> str | None:
        return f'{self._model_id}-embedding'

    def invoke(self, prompt: Prompt, payload: BaseModel) -> BaseModel:
        if not isinstance(payload, prompt.input_model):
            raise TypeError(f'Prompt {prompt.name!r} expects {prompt.input_model.__name__}, got {type(payload).__name__}')
        photo = ImageInput(data_uri=getattr(payload, prompt.media_field))

        if prompt.output_model is ClassificationResult:
            return ClassificationResult(predicted_label='Cat', confidence=0.91)
        if prompt.output_model is DetectionResult:
            return DetectionResult.model_validate(
                {
                    'objects': [
                        {'label': 'Cat', 'confidence': 0.88, 'boundingBox': [0.12, 0.18, 0.64, 0.93]},
                    ]
                }
            )
        if prompt.output_model is AttentionResult:
            return AttentionResult(overlay_image=photo.data_uri, predicted_label='Cat', confidence=0.91)
        raise NotImplementedError(f'DummyProvider has no canned answer for {prompt.output_model.__name__}')

    def embed(self, content: ImageInput | str) -> list[float]:
        if isinstance(content, ImageInput):
            raw = content.data_uri.encode('ascii')
        else:
            if not content or not content.strip():
                raise MalformedInput('Cannot embed empty text.')
            raw = content.encode('utf-8')
        digest = hashlib.sha256(raw).digest()
        return [round(byte / 127.5 - 1.0, 4) for byte in digest[:EMBEDDING_DIMENSIONS]]
