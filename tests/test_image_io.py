import httpx
import pytest

from pawlens.core.data_uri import decode_data_uri
from pawlens.core.errors import FetchError, MalformedInput
from pawlens.utils.image_io import (
    fetch_remote_as_data_uri,
    fetch_remote_image,
    read_upload_as_data_uri,
    sniff_mime_type,
)

PICSUM_URL = 'https://picsum.photos/id/219/300/200'


def test_picsum_sample_is_encoded_as_jpeg_data_uri(mock_httpx, jpeg_bytes):
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == PICSUM_URL
        return httpx.Response(200, content=jpeg_bytes, headers={'content-type': 'image/jpeg'})

    mock_httpx(handler)

    data_uri = fetch_remote_as_data_uri(PICSUM_URL)

    assert data_uri.startswith('data:image/jpeg;base64,')
    assert decode_data_uri(data_uri)[1] == jpeg_bytes


def test_redirects_are_followed(mock_httpx, jpeg_bytes):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == '/id/219/300/200':
            return httpx.Response(302, headers={'location': 'https://fastly.picsum.photos/id/219/300/200.jpg'})
        return httpx.Response(200, content=jpeg_bytes, headers={'content-type': 'image/jpeg'})

    mock_httpx(handler)

    assert fetch_remote_as_data_uri(PICSUM_URL).startswith('data:image/jpeg;base64,')


def test_mime_type_falls_back_to_detected_format(mock_httpx, png_bytes):
    mock_httpx(lambda request: httpx.Response(200, content=png_bytes))

    assert fetch_remote_as_data_uri('https://example.com/cat').startswith('data:image/png;base64,')


def test_content_type_parameters_are_dropped(mock_httpx, jpeg_bytes):
    mock_httpx(lambda request: httpx.Response(200, content=jpeg_bytes, headers={'content-type': 'image/jpeg; charset=binary'}))

    assert fetch_remote_as_data_uri(PICSUM_URL).startswith('data:image/jpeg;base64,')


def test_non_success_status_is_a_fetch_error(mock_httpx):
    mock_httpx(lambda request: httpx.Response(404))

    with pytest.raises(FetchError) as excinfo:
        fetch_remote_as_data_uri(PICSUM_URL)

    assert excinfo.value.details['status_code'] == 404


def test_transport_failure_is_a_fetch_error(mock_httpx):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('connection refused', request=request)

    mock_httpx(handler)

    with pytest.raises(FetchError):
        fetch_remote_as_data_uri(PICSUM_URL)


def test_body_over_the_limit_is_a_fetch_error(mock_httpx, jpeg_bytes):
    mock_httpx(lambda request: httpx.Response(200, content=jpeg_bytes, headers={'content-type': 'image/jpeg'}))

    with pytest.raises(FetchError) as excinfo:
        fetch_remote_image(PICSUM_URL, max_bytes=len(jpeg_bytes) - 1)

    assert 'too large' in excinfo.value.message


def test_streamed_body_without_length_is_capped(mock_httpx, jpeg_bytes):
    def chunks():
        yield jpeg_bytes[:10]
        yield jpeg_bytes[10:]

    mock_httpx(lambda request: httpx.Response(200, content=chunks(), headers={'content-type': 'image/jpeg'}))

    with pytest.raises(FetchError):
        fetch_remote_image(PICSUM_URL, max_bytes=16)

    body, mime_type = fetch_remote_image(PICSUM_URL, max_bytes=len(jpeg_bytes))
    assert body == jpeg_bytes
    assert mime_type == 'image/jpeg'


def test_relative_url_is_rejected():
    with pytest.raises(MalformedInput):
        fetch_remote_as_data_uri('/api/image-proxy?url=x')


def test_upload_is_encoded_with_its_content_type(png_bytes):
    data_uri = read_upload_as_data_uri(png_bytes, 'image/png', max_bytes=1024 * 1024)

    assert data_uri.startswith('data:image/png;base64,')


def test_upload_without_content_type_uses_detected_format(jpeg_bytes):
    assert read_upload_as_data_uri(jpeg_bytes, None, max_bytes=1024 * 1024).startswith('data:image/jpeg;base64,')


@pytest.mark.parametrize(
    'content, content_type, max_bytes',
    [
        (b'', 'image/png', 1024),
        (b'hello', 'text/plain', 1024),
        (b'not really an image', 'image/png', 1024),
    ],
)
def test_invalid_uploads_are_rejected(content, content_type, max_bytes):
    with pytest.raises(MalformedInput):
        read_upload_as_data_uri(content, content_type, max_bytes=max_bytes)


def test_oversized_upload_is_rejected(png_bytes):
    with pytest.raises(MalformedInput):
        read_upload_as_data_uri(png_bytes, 'image/png', max_bytes=len(png_bytes) - 1)


def test_sniff_mime_type(png_bytes):
    assert sniff_mime_type(png_bytes) == 'image/png'
    assert sniff_mime_type(b'plain text') is None
