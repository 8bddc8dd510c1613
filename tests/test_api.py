import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from hackmates.database.blob_store import BlobStore
from hackmates.main import create_app

from conftest import MemoryBucket


@pytest.fixture
def client(settings, db):
    with TestClient(create_app(settings, database=db)) as test_client:
        yield test_client


def signup(client: TestClient, email: str, name: str):
    resp = client.post("/auth/register", json={"email": email, "password": "password1", "full_name": name})
    assert resp.status_code == 201, resp.text
    user_id = resp.json()["id"]
    resp = client.post("/auth/login", data={"username": email, "password": "password1"})
    assert resp.status_code == 200, resp.text
    token = resp.json()["access_token"]
    return user_id, token


def auth(token: str):
    return {"Authorization": f"Bearer {token}"}


def receive_until(ws, done, limit: int = 5):
    for _ in range(limit):
        frame = ws.receive_json()
        if done(frame):
            return frame
    raise AssertionError(f"no matching frame in {limit} frames, last was {frame}")


def test_register_login_me_logout(client):
    user_id, token = signup(client, "alice@example.com", "Alice")
    me = client.get("/auth/me", headers=auth(token))
    assert me.status_code == 200
    assert me.json()["id"] == user_id
    assert me.json()["onboarding_completed"] is False

    assert client.post("/auth/logout", headers=auth(token)).status_code == 204
    assert client.get("/auth/me", headers=auth(token)).status_code == 401


def test_bad_login_is_401(client):
    signup(client, "alice@example.com", "Alice")
    resp = client.post("/auth/login", data={"username": "alice@example.com", "password": "wrong"})
    assert resp.status_code == 401


def test_onboarding_errors_are_reported_per_field(client):
    _, token = signup(client, "alice@example.com", "Alice")
    resp = client.post("/profiles/me/onboarding", json={"name": "A"}, headers=auth(token))
    assert resp.status_code == 422
    assert "name" in resp.json()["fields"]
    assert "college" in resp.json()["fields"]


def test_profile_and_discover(client):
    alice_id, alice_token = signup(client, "alice@example.com", "Alice")
    bob_id, _ = signup(client, "bob@example.com", "Bob")

    resp = client.put("/profiles/me", json={"college": "NIT Warangal", "skills": ["Go"]}, headers=auth(alice_token))
    assert resp.status_code == 200
    assert resp.json()["college"] == "NIT Warangal"

    options = client.get("/profiles/options").json()
    assert "Python" in options["skills"]

    found = client.get("/discover", headers=auth(alice_token)).json()
    assert [p["id"] for p in found] == [bob_id]
    assert client.get(f"/profiles/{bob_id}", headers=auth(alice_token)).json()["name"] == "Bob"
    assert client.get("/profiles/nope", headers=auth(alice_token)).status_code == 404


def test_messages_and_conversations(client):
    alice_id, alice_token = signup(client, "alice@example.com", "Alice")
    bob_id, bob_token = signup(client, "bob@example.com", "Bob")

    resp = client.post(f"/messages/{bob_id}", json={"content": "   "}, headers=auth(alice_token))
    assert resp.status_code == 422
    resp = client.post(f"/messages/{alice_id}", json={"content": "me"}, headers=auth(alice_token))
    assert resp.status_code == 422

    for content, token, to in (("hi bob", alice_token, bob_id), ("hi alice", bob_token, alice_id)):
        resp = client.post(f"/messages/{to}", json={"content": content}, headers=auth(token))
        assert resp.status_code == 201, resp.text

    thread = client.get(f"/messages/{bob_id}", headers=auth(alice_token)).json()
    assert [m["content"] for m in thread["messages"]] == ["hi bob", "hi alice"]
    assert thread["scroll_to"] == thread["messages"][-1]["id"]

    convos = client.get("/conversations", headers=auth(alice_token)).json()
    assert len(convos) == 1
    assert convos[0]["counterpart_id"] == bob_id
    assert convos[0]["counterpart_name"] == "Bob"
    assert convos[0]["last_message_content"] == "hi alice"
    assert convos[0]["unread_count"] == 0


def test_chat_socket_streams_thread(client):
    alice_id, alice_token = signup(client, "alice@example.com", "Alice")
    bob_id, _ = signup(client, "bob@example.com", "Bob")

    with client.websocket_connect(f"/ws/chat/{bob_id}?token={alice_token}") as ws:
        header = ws.receive_json()
        assert header["type"] == "header"
        assert header["counterpart_name"] == "Bob"
        assert header["status"] == "Online"

        snapshot = ws.receive_json()
        assert snapshot == {"type": "snapshot", "messages": [], "scroll_to": None}

        ws.send_json({"type": "send", "content": "hello from the socket"})
        snapshot = ws.receive_json()
        assert snapshot["type"] == "snapshot"
        assert [m["content"] for m in snapshot["messages"]] == ["hello from the socket"]
        assert snapshot["scroll_to"] == snapshot["messages"][0]["id"]

        ws.send_json({"type": "typing"})
        assert ws.receive_json()["type"] == "error"


def test_sockets_reject_bad_tokens(client):
    with pytest.raises(WebSocketDisconnect) as info:
        with client.websocket_connect("/ws/conversations?token=bad") as ws:
            ws.receive_json()
    assert info.value.code == 4401


def test_conversations_socket_pushes_summaries(client):
    alice_id, alice_token = signup(client, "alice@example.com", "Alice")
    bob_id, bob_token = signup(client, "bob@example.com", "Bob")

    with client.websocket_connect(f"/ws/conversations?token={alice_token}") as ws:
        assert ws.receive_json() == {"type": "conversations", "items": []}

        resp = client.post(f"/messages/{alice_id}", json={"content": "hey alice"}, headers=auth(bob_token))
        assert resp.status_code == 201
        frame = receive_until(ws, lambda f: f["items"])
        assert frame["type"] == "conversations"
        assert [i["counterpart_id"] for i in frame["items"]] == [bob_id]
        assert frame["items"][0]["counterpart_name"] == "Bob"
        assert frame["items"][0]["last_message_content"] == "hey alice"

        client.post(f"/messages/{bob_id}", json={"content": "hey bob"}, headers=auth(alice_token))
        frame = receive_until(ws, lambda f: f["items"] and f["items"][0]["last_message_content"] == "hey bob")
        assert len(frame["items"]) == 1


def test_logout_closes_live_chat_socket(client):
    _, alice_token = signup(client, "alice@example.com", "Alice")
    bob_id, _ = signup(client, "bob@example.com", "Bob")

    with pytest.raises(WebSocketDisconnect) as info:
        with client.websocket_connect(f"/ws/chat/{bob_id}?token={alice_token}") as ws:
            assert ws.receive_json()["type"] == "header"
            assert ws.receive_json()["type"] == "snapshot"
            assert client.post("/auth/logout", headers=auth(alice_token)).status_code == 204
            ws.receive_json()
    assert info.value.code == 4403


def test_photo_upload_and_download(client, db):
    client.app.state.blobs = BlobStore(db, "http://testserver", bucket=MemoryBucket())
    _, token = signup(client, "alice@example.com", "Alice")

    resp = client.post(
        "/profiles/me/photo",
        files={"photo": ("me.gif", b"GIF89a", "image/gif")},
        headers=auth(token),
    )
    assert resp.status_code == 422

    resp = client.post(
        "/profiles/me/photo",
        files={"photo": ("me.png", b"\x89PNG fake image bytes", "image/png")},
        headers=auth(token),
    )
    assert resp.status_code == 200, resp.text
    photo_url = resp.json()["photo_url"]
    assert photo_url.startswith("http://testserver/files/")

    download = client.get(photo_url)
    assert download.status_code == 200
    assert download.headers["content-type"] == "image/png"
    assert download.content == b"\x89PNG fake image bytes"

    assert client.get("/files/65a000000000000000000000").status_code == 404
