import urllib.error

import pytest
from fastapi.testclient import TestClient

from faceauth.api import proxy
from faceauth.core.embedding import EmbeddingExtractor
from faceauth.main import create_app
from faceauth.utils.image import encode_image_data_url

from conftest import BrightnessModel, make_session, solid_frame


@pytest.fixture
def sessions_created():
    return []


@pytest.fixture
def client(settings, sessions_created):
    def factory(mode):
        session = make_session(settings, solid_frame(255), mode=mode)
        sessions_created.append(session)
        return session

    extractor = EmbeddingExtractor("m", model_factory=lambda path: BrightnessModel())
    app = create_app(settings, factory, extractor=extractor)
    with TestClient(app) as client:
        yield client


def test_session_flow(client, sessions_created):
    response = client.post("/api/sessions", json={})
    assert response.status_code == 201
    body = response.json()
    assert body['mode'] == "authenticate"
    assert body['modelsLoaded'] is True
    assert body['pollInterval'] == 0.01
    session_id = body['sessionId']

    response = client.get(f"/api/sessions/{session_id}")
    assert response.status_code == 200
    assert response.json()['multipleFacesDetected'] is False

    response = client.post(f"/api/sessions/{session_id}/authenticate")
    assert response.status_code == 200
    result = response.json()
    assert result['accept'] is True
    assert result['distance'] == 0.0
    assert result['profileId'] == "3"
    assert result['reason'] is None

    response = client.delete(f"/api/sessions/{session_id}")
    assert response.status_code == 200
    assert response.json()['ended'] is True
    assert sessions_created[0].source.released
    assert not sessions_created[0].poller.running

    assert client.get(f"/api/sessions/{session_id}").status_code == 404


def test_rejected_attempt_reports_reason(client, sessions_created):
    session_id = client.post("/api/sessions", json={}).json()['sessionId']
    sessions_created[0].source.frame = solid_frame(0)
    result = client.post(f"/api/sessions/{session_id}/authenticate").json()
    assert result['accept'] is False
    assert result['reason']
    assert result['distance'] == pytest.approx(200.0)


def test_session_limit(client):
    assert client.post("/api/sessions", json={}).status_code == 201
    assert client.post("/api/sessions", json={}).status_code == 409


def test_preview_session_capture(client):
    response = client.post("/api/sessions", json={'mode': "preview"})
    assert response.status_code == 201
    session_id = response.json()['sessionId']
    result = client.post(f"/api/sessions/{session_id}/capture").json()
    assert result['captured'] is True


def test_invalid_mode(client):
    assert client.post("/api/sessions", json={'mode': "spy"}).status_code == 422


def test_unknown_session(client):
    assert client.post("/api/sessions/missing/authenticate").status_code == 404
    assert client.delete("/api/sessions/missing").status_code == 404


def test_shutdown_ends_sessions(settings, sessions_created):
    def factory(mode):
        session = make_session(settings, solid_frame(255), mode=mode)
        sessions_created.append(session)
        return session

    with TestClient(create_app(settings, factory)) as client:
        client.post("/api/sessions", json={})
    assert sessions_created[0].source.released


def test_proxy_returns_manifest_verbatim(client, monkeypatch):
    manifest = {'format': "graph-model", 'weightsManifest': [{'paths': ["group1-shard1of1.bin"]}]}
    seen = []

    def fake_fetch(url, timeout):
        seen.append(url)
        return manifest

    monkeypatch.setattr(proxy, "fetch_manifest", fake_fetch)
    response = client.get("/proxy", headers={'Origin': "http://localhost:5173"})
    assert response.status_code == 200
    assert response.json() == manifest
    assert seen == ["https://example.invalid/model.json"]
    assert response.headers['access-control-allow-origin'] in ("*", "http://localhost:5173")


def test_proxy_upstream_failure(client, monkeypatch):
    def unreachable(url, timeout):
        raise urllib.error.URLError("no route to host")

    monkeypatch.setattr(proxy.urllib.request, "urlopen", unreachable)
    response = client.get("/proxy")
    assert response.status_code == 502
    assert "unreachable" in response.json()['detail']


def test_list_sessions(client):
    assert client.get("/api/sessions").json() == []
    session_id = client.post("/api/sessions", json={}).json()['sessionId']
    listed = client.get("/api/sessions").json()
    assert [s['sessionId'] for s in listed] == [session_id]


def test_preview_session_cannot_authenticate(client):
    session_id = client.post("/api/sessions", json={'mode': "preview"}).json()['sessionId']
    result = client.post(f"/api/sessions/{session_id}/authenticate").json()
    assert result['accept'] is False
    assert result['errorCode'] == "WrongSessionMode"
    assert "preview" in result['reason']


def test_match_identical_images(client):
    image = encode_image_data_url(solid_frame(255))
    response = client.post("/api/match", json={'referenceImage': image, 'actualImage': image})
    assert response.status_code == 200
    result = response.json()
    assert result['accept'] is True
    assert result['distance'] == 0.0
    assert result['reason'] is None
    assert result['profileId'] is None


def test_match_distant_images(client):
    response = client.post("/api/match", json={
        'referenceImage': encode_image_data_url(solid_frame(255)),
        'actualImage': encode_image_data_url(solid_frame(0)),
    })
    assert response.status_code == 200
    result = response.json()
    assert result['accept'] is False
    assert result['errorCode'] == "NoMatch"
    assert result['distance'] == pytest.approx(200.0, abs=1.0)


def test_match_undecodable_image(client):
    response = client.post("/api/match", json={
        'referenceImage': encode_image_data_url(solid_frame(255)),
        'actualImage': "data:image/jpeg;base64,bm90IGFuIGltYWdl",
    })
    assert response.status_code == 400


def test_match_without_model(settings):
    app = create_app(settings, lambda mode: make_session(settings, solid_frame(255), mode=mode))
    image = encode_image_data_url(solid_frame(255))
    with TestClient(app) as client:
        response = client.post("/api/match", json={'referenceImage': image, 'actualImage': image})
    assert response.status_code == 503
