from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    provider: str = 'dummy'
    gemini_api_key: SecretStr | None = None
    gemini_base_url: str = 'https://generativelanguage.googleapis.com'
    gemini_api_version: str = 'v1beta'
    generation_model: str = 'gemini-2.5-flash'
    embedding_model: str = 'embedding-004'
    request_timeout_ms: int = 60000
    proxy_timeout_ms: int = 15000
    max_image_bytes: int = 8 * 1024 * 1024
    max_sessions: int = 256
    host: str = '127.0.0.1'
    port: int = 8001
    log_level: str = 'INFO'
    version: str = '1.0.0'


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
