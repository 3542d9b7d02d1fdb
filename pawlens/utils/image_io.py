import logging
from io import BytesIO

import httpx
from PIL import Image, UnidentifiedImageError

from pawlens.core.data_uri import encode_data_uri
from pawlens.core.errors import FetchError, MalformedInput

logger = logging.getLogger('pawlens.image_io')

FALLBACK_MIME_TYPE = 'application/octet-stream'
DEFAULT_MAX_BYTES = 8 * 1024 * 1024


def sniff_mime_type(image_bytes: bytes) -> str | None:
    try:
        with Image.open(BytesIO(image_bytes)) as image:
            return Image.MIME.get(image.format or '')
    except (UnidentifiedImageError, OSError):
        return None


def _content_type(raw: str | None) -> str | None:
    if not raw:
        return None
    value = raw.split(';', 1)[0].strip().lower()
    return value or None


def read_upload_as_data_uri(image_bytes: bytes, content_type: str | None, max_bytes: int) -> str:
    if not image_bytes:
        raise MalformedInput('Missing image upload (field name: image).')
    mime_type = _content_type(content_type)
    if mime_type is not None and not mime_type.startswith('image/'):
        raise MalformedInput('Invalid File Type. Please upload an image file.', details={'content_type': mime_type})
    if len(image_bytes) > max_bytes:
        raise MalformedInput(f'Image too large. Max {max_bytes} bytes.')

    try:
        image = Image.open(BytesIO(image_bytes))
        image.verify()
    except Exception as exc:
        raise MalformedInput('Could not decode image.') from exc

    detected = Image.MIME.get(image.format or '')
    return encode_data_uri(image_bytes, mime_type or detected or FALLBACK_MIME_TYPE)


def _read_capped(response: httpx.Response, url: str, max_bytes: int) -> bytes:
    declared = response.headers.get('content-length')
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise FetchError(f'Image too large. Max {max_bytes} bytes.', details={'url': url, 'content_length': int(declared)})
    buf = bytearray()
    for chunk in response.iter_bytes():
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise FetchError(f'Image too large. Max {max_bytes} bytes.', details={'url': url})
    return bytes(buf)


def fetch_remote_image(url: str, timeout_ms: int = 15000, max_bytes: int = DEFAULT_MAX_BYTES) -> tuple[bytes, str]:
    """Fetch ``url`` server-side and return ``(body, mime_type)``.

    The body is streamed and the fetch is abandoned as soon as it exceeds
    ``max_bytes``.
    """
    if not url or not url.lower().startswith(('http://', 'https://')):
        raise MalformedInput('Image URL must be an absolute http(s) URL.')
    timeout = max(int(timeout_ms), 1000) / 1000.0

    try:
        with httpx.Client(timeout=timeout, follow_redirects=True) as client:
            with client.stream('GET', url) as response:
                if not response.is_success:
                    raise FetchError(
                        f'Failed to fetch image: {response.status_code} {response.reason_phrase}',
                        details={'url': url, 'status_code': response.status_code},
                    )
                body = _read_capped(response, url, max_bytes)
                header_mime = _content_type(response.headers.get('content-type'))
    except httpx.HTTPError as exc:
        raise FetchError(f'Failed to fetch image: {exc.__class__.__name__}', details={'url': url}) from exc

    if not body:
        raise FetchError('Failed to fetch image: empty response body.', details={'url': url})

    mime_type = header_mime or sniff_mime_type(body) or FALLBACK_MIME_TYPE
    logger.info('fetched remote image url=%s bytes=%s mime=%s', url, len(body), mime_type)
    return body, mime_type


def fetch_remote_as_data_uri(url: str, timeout_ms: int = 15000, max_bytes: int = DEFAULT_MAX_BYTES) -> str:
    body, mime_type = fetch_remote_image(url, timeout_ms=timeout_ms, max_bytes=max_bytes)
    return encode_data_uri(body, mime_type)
