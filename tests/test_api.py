import httpx
import pytest
from fastapi.testclient import TestClient

from pawlens.core.errors import ConfigurationError
from pawlens.main import app, settings


def test_health_ok():
    with TestClient(app) as client:
        response = client.get('/health')
    assert response.status_code == 200
    body = response.json()
    assert body['ok'] is True
    assert body['provider'] == 'dummy'
    assert body['model'] == 'dummy-v1'


def test_startup_fails_fast_without_api_key(monkeypatch):
    monkeypatch.setattr(settings, 'provider', 'gemini')
    monkeypatch.setattr(settings, 'gemini_api_key', None)

    with pytest.raises(ConfigurationError):
        with TestClient(app):
            pass


def test_samples_lists_gallery():
    with TestClient(app) as client:
        response = client.get('/samples')
    assert response.status_code == 200
    samples = response.json()['samples']
    assert [row['id'] for row in samples] == ['cat1', 'dog1', 'cat2', 'dog2']
    assert samples[0]['url'] == 'https://picsum.photos/id/219/300/200'


def test_encode_upload(png_bytes):
    with TestClient(app) as client:
        response = client.post('/encode', files={'image': ('cat.png', png_bytes, 'image/png')})
    assert response.status_code == 200
    body = response.json()
    assert body['data_uri'].startswith('data:image/png;base64,')
    assert body['mime_type'] == 'image/png'
    assert body['size_bytes'] == len(png_bytes)


def test_encode_rejects_non_images():
    with TestClient(app) as client:
        response = client.post('/encode', files={'image': ('notes.txt', b'hello', 'text/plain')})
    assert response.status_code == 400
    assert response.json()['error'] == 'MALFORMED_INPUT'


def test_flow_endpoints(png_data_uri):
    with TestClient(app) as client:
        classify = client.post('/classify', json={'photo_data_uri': png_data_uri})
        detect = client.post('/detect', json={'photo_data_uri': png_data_uri})
        attention = client.post('/attention-map', json={'photo_data_uri': png_data_uri})
        embed_image = client.post('/embed/image', json={'photo_data_uri': png_data_uri})
        embed_text = client.post('/embed/text', json={'text': 'a fluffy cat'})

    assert classify.status_code == 200
    assert classify.json()['result'] == {'predicted_label': 'Cat', 'confidence': 0.91}
    assert detect.status_code == 200
    assert detect.json()['objects'][0]['label'] == 'Cat'
    assert len(detect.json()['objects'][0]['bounding_box']) == 4
    assert attention.status_code == 200
    assert attention.json()['result']['overlay_image'].startswith('data:image/png;base64,')
    assert embed_image.status_code == 200
    assert embed_image.json()['dimensions'] == len(embed_image.json()['embedding'])
    assert embed_text.status_code == 200
    assert embed_text.json()['embedding'] != embed_image.json()['embedding']


def test_malformed_data_uri_is_rejected():
    with TestClient(app) as client:
        response = client.post('/classify', json={'photo_data_uri': 'https://picsum.photos/id/219/300/200'})
    assert response.status_code == 400
    body = response.json()
    assert body['ok'] is False
    assert body['error'] == 'MALFORMED_INPUT'


def test_empty_text_embedding_is_rejected():
    with TestClient(app) as client:
        response = client.post('/embed/text', json={'text': ' '})
    assert response.status_code == 400


def test_image_proxy_streams_upstream_bytes(mock_httpx, jpeg_bytes):
    mock_httpx(lambda request: httpx.Response(200, content=jpeg_bytes, headers={'content-type': 'image/jpeg'}))
    with TestClient(app) as client:
        response = client.get('/api/image-proxy', params={'url': 'https://picsum.photos/id/237/300/200'})
    assert response.status_code == 200
    assert response.headers['content-type'] == 'image/jpeg'
    assert response.content == jpeg_bytes


def test_image_proxy_reports_upstream_failure(mock_httpx):
    mock_httpx(lambda request: httpx.Response(404))
    with TestClient(app) as client:
        response = client.get('/api/image-proxy', params={'url': 'https://picsum.photos/id/0/300/200'})
    assert response.status_code == 502
    assert response.json()['error'] == 'FETCH_FAILED'


def test_image_proxy_enforces_size_limit(mock_httpx, monkeypatch, jpeg_bytes):
    monkeypatch.setattr(settings, 'max_image_bytes', len(jpeg_bytes) - 1)
    mock_httpx(lambda request: httpx.Response(200, content=jpeg_bytes, headers={'content-type': 'image/jpeg'}))
    with TestClient(app) as client:
        response = client.get('/api/image-proxy', params={'url': 'https://picsum.photos/id/568/300/200'})
    assert response.status_code == 502
    assert response.json()['error'] == 'FETCH_FAILED'


def test_session_views_round_trip(png_data_uri):
    with TestClient(app) as client:
        created = client.post('/sessions')
        assert created.status_code == 200
        session_id = created.json()['session_id']
        assert {row['state'] for row in created.json()['views']} == {'idle'}

        ran = client.post(f'/sessions/{session_id}/views/classify', json={'photo_data_uri': png_data_uri})
        assert ran.status_code == 200
        assert ran.json()['state'] == 'success'
        assert ran.json()['result']['predicted_label'] == 'Cat'

        failed = client.post(f'/sessions/{session_id}/views/detect', json={'photo_data_uri': 'data:image/png;base64,@@'})
        assert failed.status_code == 200
        assert failed.json()['state'] == 'error'
        assert failed.json()['notification']['title'] == 'Analysis Failed'

        fetched = client.get(f'/sessions/{session_id}')
        states = {row['view']: row['state'] for row in fetched.json()['views']}
        assert states['classify'] == 'success'
        assert states['detect'] == 'error'
        assert states['embed-image'] == 'idle'

        reset = client.delete(f'/sessions/{session_id}/views/classify')
        assert reset.json()['state'] == 'idle'


def test_unknown_session_and_view_are_not_found():
    with TestClient(app) as client:
        missing_session = client.get('/sessions/does-not-exist')
        session_id = client.post('/sessions').json()['session_id']
        missing_view = client.post(f'/sessions/{session_id}/views/training', json={'text': 'x'})
    assert missing_session.status_code == 404
    assert missing_view.status_code == 404
    assert missing_view.json()['error'] == 'NOT_FOUND'
