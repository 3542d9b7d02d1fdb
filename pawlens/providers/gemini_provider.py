import logging
from typing import Any

import httpx
from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, StrictFloat, ValidationError
from pydantic.alias_generators import to_camel

from pawlens.core.data_uri import ImageInput, split_data_uri
from pawlens.core.errors import ConfigurationError, MalformedInput, RemoteError
from pawlens.core.model_client import ModelClient
from pawlens.core.types import Prompt
from pawlens.utils.timings import measure_ms

logger = logging.getLogger('pawlens.providers.gemini')


class _Envelope(BaseModel):
    model_config = ConfigDict(alias_generator=AliasGenerator(validation_alias=to_camel), populate_by_name=True)


class _Part(_Envelope):
    text: str | None = None


class _Content(_Envelope):
    parts: list[_Part] = Field(default_factory=list)


class _Candidate(_Envelope):
    content: _Content | None = None
    finish_reason: str | None = None


class _PromptFeedback(_Envelope):
    block_reason: str | None = None


class _GenerateContentResponse(_Envelope):
    candidates: list[_Candidate] = Field(default_factory=list)
    prompt_feedback: _PromptFeedback | None = None


class _Embedding(_Envelope):
    values: list[StrictFloat] = Field(min_length=1)


class _EmbedContentResponse(_Envelope):
    embedding: _Embedding


def _parse_envelope(model: type[_Envelope], body: dict[str, Any], what: str) -> Any:
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise RemoteError(
            f'API response did not contain {what}.',
            details={'errors': [row['msg'] for row in exc.errors()]},
        ) from exc


def _join_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    error = body.get('error') if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get('message'):
        return str(error['message'])
    return response.reason_phrase


def _candidate_text(body: dict[str, Any]) -> str:
    envelope: _GenerateContentResponse = _parse_envelope(_GenerateContentResponse, body, 'a valid candidate')
    if not envelope.candidates:
        block_reason = envelope.prompt_feedback.block_reason if envelope.prompt_feedback else None
        raise RemoteError(f'Model returned no candidates (block_reason={block_reason}).')
    candidate = envelope.candidates[0]
    parts = candidate.content.parts if candidate.content else []
    text = ''.join(part.text or '' for part in parts)
    if not text.strip():
        raise RemoteError(f'Model returned an empty response (finish_reason={candidate.finish_reason}).')
    return text


class GeminiProvider(ModelClient):
    def __init__(
        self,
        api_key: str,
        base_url: str = 'https://generativelanguage.googleapis.com',
        api_version: str = 'v1beta',
        generation_model: str = 'gemini-2.5-flash',
        embedding_model: str = 'embedding-004',
        timeout_ms: int = 60000,
    ) -> None:
        if not api_key:
            raise ConfigurationError('GEMINI_API_KEY is not set in the environment.')
        self._api_key = api_key
        self._base_url = base_url
        self._api_version = api_version
        self._generation_model = generation_model
        self._embedding_model = embedding_model
        self._timeout = max(int(timeout_ms), 1000) / 1000.0

    @property
    def model_id(self) -> str:
        return self._generation_model

    @property
    def embedding_model_id(self) -> str | None:
        return self._embedding_model

    def _endpoint(self, model: str, method: str) -> str:
        return _join_url(self._base_url, f'{self._api_version}/models/{model}:{method}')

    def _post(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        with measure_ms() as elapsed:
            try:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.post(url, json=body, headers={'x-goog-api-key': self._api_key})
            except httpx.HTTPError as exc:
                raise RemoteError(f'Request to model endpoint failed: {exc.__class__.__name__}: {exc}') from exc

        logger.info('remote call url=%s status=%s latency_ms=%s', url, response.status_code, elapsed())
        if response.is_error:
            raise RemoteError(
                f'API request failed with status {response.status_code}: {_error_message(response)}',
                details={'status_code': response.status_code},
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteError('Model endpoint returned a body that is not JSON.') from exc
        if not isinstance(data, dict):
            raise RemoteError('Model endpoint returned an unexpected JSON body.')
        return data

    def invoke(self, prompt: Prompt, payload: BaseModel) -> BaseModel:
        if not isinstance(payload, prompt.input_model):
            raise TypeError(f'Prompt {prompt.name!r} expects {prompt.input_model.__name__}, got {type(payload).__name__}')
        mime_type, data = split_data_uri(getattr(payload, prompt.media_field))
        before, after = prompt.text_segments()

        parts: list[dict[str, Any]] = []
        if before:
            parts.append({'text': before})
        parts.append({'inline_data': {'mime_type': mime_type, 'data': data}})
        if after:
            parts.append({'text': after})
        body = {
            'contents': [{'role': 'user', 'parts': parts}],
            'generationConfig': {'responseMimeType': 'application/json'},
        }

        response = self._post(self._endpoint(self._generation_model, 'generateContent'), body)
        text = _candidate_text(response)
        try:
            return prompt.output_model.model_validate_json(text)
        except ValidationError as exc:
            raise RemoteError(
                f'Model response for {prompt.name} did not match {prompt.output_model.__name__}.',
                details={'errors': [row['msg'] for row in exc.errors()]},
            ) from exc

    def embed(self, content: ImageInput | str) -> list[float]:
        if isinstance(content, ImageInput):
            part: dict[str, Any] = {'inline_data': {'mime_type': content.mime_type, 'data': content.payload}}
        else:
            if not content or not content.strip():
                raise MalformedInput('Cannot embed empty text.')
            part = {'text': content}
        body = {
            'model': f'models/{self._embedding_model}',
            'content': {'parts': [part]},
        }

        response = self._post(self._endpoint(self._embedding_model, 'embedContent'), body)
        envelope: _EmbedContentResponse = _parse_envelope(_EmbedContentResponse, response, 'an embedding')
        return list(envelope.embedding.values)
