"""WebSocket task stream tests; TestClient runs the full application lifespan."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from taskboard_api.db.migrations import run_migrations
from taskboard_api.main import create_app
from taskboard_api.settings import Settings

PASSWORD = "correct horse battery staple"


@pytest.fixture()
def client(settings: Settings, email_sender, push_sender, text_generator) -> Iterator[TestClient]:
    run_migrations(settings)
    application = create_app(
        settings,
        email_sender=email_sender,
        push_sender=push_sender,
        text_generator=text_generator,
    )
    with TestClient(application) as test_client:
        yield test_client


def _signup(client: TestClient, name: str) -> dict:
    response = client.post(
        "/api/auth/signup",
        json={"name": name, "email": f"{name.lower()}@example.com", "password": PASSWORD},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _bearer(session: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {session['accessToken']}"}


def test_rejects_invalid_token(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/workspaces/1/tasks/updates?token=garbage"):
            pass
    assert excinfo.value.code == 1008


def test_rejects_non_member(client: TestClient) -> None:
    owner = _signup(client, "Owner")
    stranger = _signup(client, "Stranger")
    workspace = client.post(
        "/api/workspaces", json={"name": "Acme"}, headers=_bearer(owner)
    ).json()

    url = f"/api/workspaces/{workspace['id']}/tasks/updates?token={stranger['accessToken']}"
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(url):
            pass
    assert excinfo.value.code == 1008


def test_member_receives_task_changes(client: TestClient) -> None:
    owner = _signup(client, "Owner")
    headers = _bearer(owner)
    workspace = client.post("/api/workspaces", json={"name": "Acme"}, headers=headers).json()
    project = client.post(
        f"/api/workspaces/{workspace['id']}/projects", json={"name": "Launch"}, headers=headers
    ).json()

    url = f"/api/workspaces/{workspace['id']}/tasks/updates?token={owner['accessToken']}"
    with client.websocket_connect(url) as websocket:
        created = client.post(
            f"/api/projects/{project['id']}/tasks",
            json={"title": "Write docs", "assignedToIds": [owner["user"]["id"]]},
            headers=headers,
        ).json()
        client.patch(f"/api/tasks/{created['id']}", json={"status": "DONE"}, headers=headers)

        first = websocket.receive_json()
        second = websocket.receive_json()

    assert (first["id"], first["status"]) == (created["id"], "TODO")
    assert (second["id"], second["status"]) == (created["id"], "DONE")
