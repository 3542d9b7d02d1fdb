from abc import ABC, abstractmethod

from pydantic import BaseModel

from pawlens.config import Settings
from pawlens.core.data_uri import ImageInput
from pawlens.core.errors import ConfigurationError
from pawlens.core.types import Prompt


class ModelClient(ABC):
    @abstractmethod
    def invoke(self, prompt: Prompt, payload: BaseModel) -> BaseModel:
        raise NotImplementedError

    @abstractmethod
    def embed(self, content: ImageInput | str) -> list[float]:
        raise NotImplementedError

    @property
    @abstractmethod
    def model_id(self) -> str:
        raise NotImplementedError

    @property
    def embedding_model_id(self) -> str | None:
        return None


def create_model_client(settings: Settings) -> ModelClient:
    provider = settings.provider.strip().lower()
    if provider == 'dummy':
        from pawlens.providers.dummy_provider import DummyProvider

        return DummyProvider()
    if provider == 'gemini':
        from pawlens.providers.gemini_provider import GeminiProvider

        api_key = settings.gemini_api_key.get_secret_value() if settings.gemini_api_key else ''
        if not api_key.strip():
            raise ConfigurationError('GEMINI_API_KEY is not set in the environment.')
        return GeminiProvider(
            api_key=api_key,
            base_url=settings.gemini_base_url,
            api_version=settings.gemini_api_version,
            generation_model=settings.generation_model,
            embedding_model=settings.embedding_model,
            timeout_ms=settings.request_timeout_ms,
        )
    raise ConfigurationError(f'Unsupported PROVIDER={settings.provider!r}')
