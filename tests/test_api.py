"""HTTP surface tests: sessions, messages, polling fallback, partners."""

import asyncio

import httpx
import pytest

from app.core.messages import AI_FALLBACK_REPLY
from main import create_app

from conftest import FakeProvider, USER_A, USER_B, USER_C, auth_headers


API = "/api/v1"


@pytest.fixture
def app(engine, provider):
    return create_app(engine=engine, provider=provider)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    await app.state.chat.coordinator.wait_idle()


@pytest.fixture
def alice():
    return auth_headers(USER_A, email="alice@example.com", first_name="Alice", last_name="Moss")


@pytest.fixture
def bob():
    return auth_headers(USER_B, email="bob@example.com", first_name="Bob")


async def _create_session(client, headers, **body):
    payload = {"title": "Private Session 1", "type": "private", **body}
    response = await client.post(f"{API}/sessions", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _poll_until(client, headers, message_id, predicate, attempts=200):
    for _ in range(attempts):
        response = await client.get(f"{API}/messages/{message_id}/stream", headers=headers)
        assert response.status_code == 200
        body = response.json()
        if predicate(body):
            return body
        await asyncio.sleep(0.01)
    raise AssertionError(f"Condition never met for message {message_id}: {body}")


class TestAuth:
    async def test_missing_token(self, client):
        response = await client.get(f"{API}/sessions")
        assert response.status_code == 401

    async def test_invalid_token(self, client):
        response = await client.get(f"{API}/sessions", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    async def test_current_user_is_created_from_claims(self, client, alice):
        response = await client.get(f"{API}/auth/user", headers=alice)

        assert response.status_code == 200
        assert response.json() == {
            "id": USER_A,
            "email": "alice@example.com",
            "firstName": "Alice",
            "lastName": "Moss",
            "profileImageUrl": None,
        }

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestSessions:
    async def test_create_and_list(self, client, alice):
        created = await _create_session(client, alice)

        response = await client.get(f"{API}/sessions", headers=alice)

        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == [created["id"]]
        assert created["creatorId"] == USER_A
        assert created["type"] == "private"

    async def test_list_filters_by_type(self, client, alice):
        await _create_session(client, alice)
        couples = await _create_session(client, alice, title="Couples Session 1", type="couples", partnerId=USER_B)

        response = await client.get(f"{API}/sessions", params={"type": "couples"}, headers=alice)

        assert [s["id"] for s in response.json()] == [couples["id"]]

    async def test_partner_sees_couples_session(self, client, alice, bob):
        couples = await _create_session(client, alice, title="Couples Session 1", type="couples", partnerId=USER_B)

        response = await client.get(f"{API}/sessions/{couples['id']}", headers=bob)

        assert response.status_code == 200

    async def test_private_session_rejects_partner(self, client, alice):
        response = await client.post(
            f"{API}/sessions",
            json={"title": "Private Session 1", "type": "private", "partnerId": USER_B},
            headers=alice,
        )
        assert response.status_code == 400

    async def test_unknown_type_is_rejected(self, client, alice):
        response = await client.post(f"{API}/sessions", json={"title": "x", "type": "group"}, headers=alice)
        assert response.status_code == 422

    async def test_access_errors(self, client, alice):
        session = await _create_session(client, alice)
        carol = auth_headers(USER_C)

        assert (await client.get(f"{API}/sessions/abc", headers=alice)).status_code == 400
        assert (await client.get(f"{API}/sessions/9999", headers=alice)).status_code == 404
        assert (await client.get(f"{API}/sessions/{session['id']}", headers=carol)).status_code == 403

    async def test_rename(self, client, alice):
        session = await _create_session(client, alice)

        response = await client.patch(
            f"{API}/sessions/{session['id']}", json={"title": "  Sleep Troubles "}, headers=alice
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Sleep Troubles"

    async def test_rename_rejects_blank_title(self, client, alice):
        session = await _create_session(client, alice)

        response = await client.patch(f"{API}/sessions/{session['id']}", json={"title": "   "}, headers=alice)

        assert response.status_code == 400

    async def test_delete_removes_session_and_messages(self, client, app, alice):
        session = await _create_session(client, alice)
        await client.post(f"{API}/sessions/{session['id']}/messages", json={"content": "Hello"}, headers=alice)
        await app.state.chat.coordinator.wait_idle()

        response = await client.delete(f"{API}/sessions/{session['id']}", headers=alice)

        assert response.status_code == 204
        assert (await client.get(f"{API}/sessions/{session['id']}", headers=alice)).status_code == 404
        assert await app.state.chat.storage.get_session_messages(session["id"]) == []


class TestMessages:
    async def test_post_returns_ids_and_reply_completes(self, client, app, alice, provider):
        session = await _create_session(client, alice)

        response = await client.post(
            f"{API}/sessions/{session['id']}/messages", json={"content": "Hello"}, headers=alice
        )

        assert response.status_code == 202
        ids = response.json()
        assert set(ids) == {"userMessageId", "aiMessageId"}

        final = await _poll_until(client, alice, ids["aiMessageId"], lambda body: body["isComplete"])
        assert final["content"] == "".join(provider.fragments)

        await app.state.chat.coordinator.wait_idle()
        history = (await client.get(f"{API}/sessions/{session['id']}/messages", headers=alice)).json()
        assert [m["id"] for m in history] == [ids["userMessageId"], ids["aiMessageId"]]
        assert [m["isAi"] for m in history] == [False, True]
        assert history[0]["content"] == "Hello"

    async def test_blank_content_is_rejected(self, client, alice):
        session = await _create_session(client, alice)

        response = await client.post(
            f"{API}/sessions/{session['id']}/messages", json={"content": "   "}, headers=alice
        )

        assert response.status_code == 400

    async def test_post_to_foreign_session(self, client, alice):
        session = await _create_session(client, alice)

        response = await client.post(
            f"{API}/sessions/{session['id']}/messages",
            json={"content": "Hi"},
            headers=auth_headers(USER_C),
        )

        assert response.status_code == 403

    async def test_user_message_poll_is_complete(self, client, app, alice):
        session = await _create_session(client, alice)
        ids = (
            await client.post(f"{API}/sessions/{session['id']}/messages", json={"content": "Hi"}, headers=alice)
        ).json()

        body = (await client.get(f"{API}/messages/{ids['userMessageId']}/stream", headers=alice)).json()

        assert body == {"messageId": ids["userMessageId"], "content": "Hi", "isComplete": True}

    async def test_poll_unknown_or_foreign_message(self, client, alice):
        session = await _create_session(client, alice)
        ids = (
            await client.post(f"{API}/sessions/{session['id']}/messages", json={"content": "Hi"}, headers=alice)
        ).json()

        assert (await client.get(f"{API}/messages/123456/stream", headers=alice)).status_code == 404
        assert (await client.get(f"{API}/messages/nope/stream", headers=alice)).status_code == 400
        foreign = await client.get(f"{API}/messages/{ids['aiMessageId']}/stream", headers=auth_headers(USER_C))
        assert foreign.status_code == 404


class TestPollingFallback:
    @pytest.fixture
    def provider(self):
        return FakeProvider(gate_after=1)

    async def test_poll_reports_partial_content_mid_stream(self, client, app, alice, provider):
        session = await _create_session(client, alice)
        ids = (
            await client.post(f"{API}/sessions/{session['id']}/messages", json={"content": "Hello"}, headers=alice)
        ).json()

        partial = await _poll_until(client, alice, ids["aiMessageId"], lambda body: body["content"])
        assert partial == {
            "messageId": ids["aiMessageId"],
            "content": provider.fragments[0],
            "isComplete": False,
        }

        provider.gate.set()
        await app.state.chat.coordinator.wait_idle()
        final = (await client.get(f"{API}/messages/{ids['aiMessageId']}/stream", headers=alice)).json()
        assert final["isComplete"] is True
        assert final["content"] == "".join(provider.fragments)


class TestFailedGeneration:
    @pytest.fixture
    def provider(self):
        return FakeProvider(fail_after=0)

    async def test_poll_reports_fallback_as_complete(self, client, app, alice):
        session = await _create_session(client, alice)
        ids = (
            await client.post(f"{API}/sessions/{session['id']}/messages", json={"content": "Hello"}, headers=alice)
        ).json()
        await app.state.chat.coordinator.wait_idle()

        body = (await client.get(f"{API}/messages/{ids['aiMessageId']}/stream", headers=alice)).json()

        assert body == {"messageId": ids["aiMessageId"], "content": AI_FALLBACK_REPLY, "isComplete": True}


class TestPartners:
    async def test_create_and_list(self, client, alice, bob):
        await client.get(f"{API}/auth/user", headers=bob)

        response = await client.post(f"{API}/partners", json={"partnerId": USER_B}, headers=alice)

        assert response.status_code == 201
        listed = (await client.get(f"{API}/partners", headers=alice)).json()
        assert [(p["userId"], p["partnerId"]) for p in listed] == [(USER_A, USER_B)]

    async def test_errors(self, client, alice, bob):
        await client.get(f"{API}/auth/user", headers=bob)
        await client.post(f"{API}/partners", json={"partnerId": USER_B}, headers=alice)

        assert (await client.post(f"{API}/partners", json={"partnerId": USER_A}, headers=alice)).status_code == 400
        assert (await client.post(f"{API}/partners", json={"partnerId": "ghost"}, headers=alice)).status_code == 404
        assert (await client.post(f"{API}/partners", json={"partnerId": USER_B}, headers=alice)).status_code == 409
