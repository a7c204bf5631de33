"""HTTP tests for the auth and scene routes."""

import pytest
from fastapi.testclient import TestClient

from nerfserve.auth.crypto import create_access_token
from nerfserve.main import app
from nerfserve.services import get_client_service
from nerfserve.services.resources import CHUNK_SIZE

from conftest import queued_messages


@pytest.fixture
def client(service):
    app.dependency_overrides[get_client_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.user_id)}"}


def upload_form(**overrides) -> dict:
    form = {
        "scene_name": "Backyard",
        "training_mode": "gaussian",
        "output_types": ["rgb"],
        "save_iterations": ["30000"],
        "total_iterations": "30000",
    }
    form.update(overrides)
    return form


class TestAuthRoutes:
    def test_register_and_login(self, client):
        response = client.post("/auth/register", json={"username": "dana", "password": "long enough"})
        assert response.status_code == 201

        response = client.post("/auth/login", json={"username": "dana", "password": "long enough"})
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user_id"]

        history = client.get("/scenes", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert history.status_code == 200
        assert history.json() == {"scenes": []}

    def test_register_taken(self, client, alice):
        response = client.post("/auth/register", json={"username": "alice", "password": "long enough"})
        assert response.status_code == 409
        assert response.json()["retryable"] is False

    def test_login_bad_password(self, client, alice):
        response = client.post("/auth/login", json={"username": "alice", "password": "not it"})
        assert response.status_code == 401

    def test_missing_token(self, client, scene):
        response = client.get(f"/scenes/{scene}/metadata")
        assert response.status_code in (401, 403)

    def test_garbage_token(self, client, scene):
        response = client.get(f"/scenes/{scene}/metadata", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401


class TestSubmitRoute:
    def test_accepts_mp4(self, client, alice, user_manager, stub_broker, videos_dir):
        response = client.post(
            "/scenes",
            files={"file": ("yard.mp4", b"\x00" * 2048, "video/mp4")},
            data=upload_form(),
            headers=auth_headers(alice),
        )

        assert response.status_code == 202
        scene_id = response.json()["id"]
        assert (videos_dir / f"{scene_id}.mp4").stat().st_size == 2048
        assert scene_id in user_manager.users[alice.user_id].scene_ids
        assert [m.args[0] for m in queued_messages(stub_broker)] == [scene_id]

    def test_rejects_other_extension(self, client, alice, videos_dir):
        response = client.post(
            "/scenes",
            files={"file": ("yard.avi", b"\x00" * 10, "video/x-msvideo")},
            data=upload_form(),
            headers=auth_headers(alice),
        )

        assert response.status_code == 400
        assert response.json()["retryable"] is False
        assert not videos_dir.exists()

    def test_rejects_bad_training_mode(self, client, alice, videos_dir):
        response = client.post(
            "/scenes",
            files={"file": ("yard.mp4", b"\x00" * 10, "video/mp4")},
            data=upload_form(training_mode="photogrammetry"),
            headers=auth_headers(alice),
        )

        assert response.status_code == 400
        assert not videos_dir.exists()

    def test_downstream_failure_is_retryable(self, client, alice, scene_manager):
        scene_manager.fail_on.add("set_video")

        response = client.post(
            "/scenes",
            files={"file": ("yard.mp4", b"\x00" * 10, "video/mp4")},
            data=upload_form(),
            headers=auth_headers(alice),
        )

        assert response.status_code == 503
        assert response.json()["retryable"] is True


class TestMetadataRoute:
    def test_metadata(self, client, alice, scene, scene_manager, tmp_path):
        scene_manager.add_output(scene, "splat_cloud", "1000", tmp_path / "missing.ply")

        response = client.get(f"/scenes/{scene}/metadata", headers=auth_headers(alice))

        assert response.status_code == 200
        resources = response.json()["resources"]
        assert resources["rgb"]["1000"] == {
            "exists": True,
            "size": 1_536_000,
            "chunks": 2,
            "last_chunk_size": 1_536_000 - CHUNK_SIZE,
        }
        assert resources["splat_cloud"]["1000"] == {"exists": False}

    def test_filter(self, client, alice, scene):
        response = client.get(
            f"/scenes/{scene}/metadata",
            params={"output_type": "splat_cloud"},
            headers=auth_headers(alice),
        )

        assert response.json() == {"resources": {"splat_cloud": {}}}

    def test_forbidden(self, client, user_manager, scene):
        bob = user_manager.create("bob")

        response = client.get(f"/scenes/{scene}/metadata", headers=auth_headers(bob))

        assert response.status_code == 403
        assert response.json()["retryable"] is False


class TestResourceRoute:
    def test_full_download(self, client, alice, scene):
        response = client.get(f"/scenes/{scene}/resources/rgb/1000", headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.headers["accept-ranges"] == "bytes"
        assert response.content == bytes(range(256)) * 6000

    def test_range_request(self, client, alice, scene):
        headers = {**auth_headers(alice), "Range": "bytes=256-511"}

        response = client.get(f"/scenes/{scene}/resources/rgb/1000", headers=headers)

        assert response.status_code == 206
        assert response.headers["content-range"] == "bytes 256-511/1536000"
        assert response.content == bytes(range(256))

    def test_chunk_request(self, client, alice, scene):
        response = client.get(
            f"/scenes/{scene}/resources/rgb/1000",
            params={"chunk": 1},
            headers=auth_headers(alice),
        )

        assert response.status_code == 206
        assert len(response.content) == 1_536_000 - CHUNK_SIZE
        assert response.headers["content-range"] == f"bytes {CHUNK_SIZE}-1535999/1536000"

    def test_unsatisfiable_range(self, client, alice, scene):
        headers = {**auth_headers(alice), "Range": "bytes=9999999-"}

        response = client.get(f"/scenes/{scene}/resources/rgb/1000", headers=headers)

        assert response.status_code == 416
        assert response.headers["content-range"] == "bytes */1536000"

    def test_unknown_iteration(self, client, alice, scene):
        response = client.get(f"/scenes/{scene}/resources/rgb/5", headers=auth_headers(alice))
        assert response.status_code == 404


class TestHistoryAndPreviewRoutes:
    def test_history(self, client, alice, scene):
        response = client.get("/scenes", headers=auth_headers(alice))

        assert response.status_code == 200
        scenes = response.json()["scenes"]
        assert [s["scene_id"] for s in scenes] == [scene]
        assert scenes[0]["name"] == "Kitchen"

    def test_preview(self, client, alice, scene):
        response = client.get(f"/scenes/{scene}/preview", headers=auth_headers(alice))

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Kitchen"
        assert body["latest"]["rgb"]["iteration"] == "1000"
        assert body["latest"]["rgb"]["resource"]["chunks"] == 2

    def test_preview_forbidden(self, client, user_manager, scene):
        bob = user_manager.create("bob")
        response = client.get(f"/scenes/{scene}/preview", headers=auth_headers(bob))
        assert response.status_code == 403


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
