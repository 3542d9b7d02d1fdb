import os
from io import BytesIO

import httpx
import pytest
from PIL import Image

os.environ['PROVIDER'] = 'dummy'

from pawlens.core.data_uri import encode_data_uri  # noqa: E402


def make_test_image_bytes(fmt: str = 'PNG', size: tuple[int, int] = (32, 24)) -> bytes:
    image = Image.new('RGB', size, color='white')
    buf = BytesIO()
    image.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_test_image_bytes('PNG')


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_test_image_bytes('JPEG')


@pytest.fixture
def png_data_uri(png_bytes) -> str:
    return encode_data_uri(png_bytes, 'image/png')


@pytest.fixture
def mock_httpx(monkeypatch):
    """Route every ``httpx.Client`` created by the code under test to ``handler``."""

    def install(handler):
        transport = httpx.MockTransport(handler)

        class MockClient(httpx.Client):
            def __init__(self, *args, **kwargs):
                kwargs['transport'] = transport
                super().__init__(*args, **kwargs)

        monkeypatch.setattr(httpx, 'Client', MockClient)

    return install
