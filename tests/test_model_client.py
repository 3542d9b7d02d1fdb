import pytest

from pawlens.config import Settings
from pawlens.core.errors import ConfigurationError
from pawlens.core.model_client import create_model_client
from pawlens.providers.dummy_provider import DummyProvider
from pawlens.providers.gemini_provider import GeminiProvider


def test_create_dummy_client():
    client = create_model_client(Settings(provider='dummy'))

    assert isinstance(client, DummyProvider)
    assert client.model_id == 'dummy-v1'


def test_gemini_client_requires_api_key():
    with pytest.raises(ConfigurationError, match='GEMINI_API_KEY'):
        create_model_client(Settings(provider='gemini', gemini_api_key=None))

    with pytest.raises(ConfigurationError):
        create_model_client(Settings(provider='gemini', gemini_api_key='   '))


def test_create_gemini_client_from_settings():
    client = create_model_client(
        Settings(provider='Gemini', gemini_api_key='secret', generation_model='gemini-2.5-pro', embedding_model='embedding-004')
    )

    assert isinstance(client, GeminiProvider)
    assert client.model_id == 'gemini-2.5-pro'
    assert client.embedding_model_id == 'embedding-004'


def test_unknown_provider_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        create_model_client(Settings(provider='openai'))


def test_api_key_is_not_exposed_in_settings_repr():
    settings = Settings(provider='gemini', gemini_api_key='super-secret')

    assert 'super-secret' not in repr(settings)
