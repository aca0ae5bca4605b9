"""
Tests for the chat endpoints.
"""
from jose import jwt

import support_bot.config as config_mod
from support_bot.errors import AllModelsExhausted
from support_bot.routes.chat import get_user_id_or_ip, limiter

DIRECTIVE_REPLY = (
    "Sorry about that! I've raised a case.\n"
    '```json\n{"createCase": true, "orderId": "A1", "productIndex": 0, '
    '"description": "Headphones arrived damaged"}\n```'
)


def _select(client, headers, order_id="A1", product_index=0):
    return client.post(
        "/api/chat/select",
        json={"orderId": order_id, "productIndex": product_index},
        headers=headers,
    )


def test_select_returns_context(client, alice_headers):
    resp = _select(client, alice_headers, "A1", 1)

    assert resp.status_code == 200
    data = resp.json()
    assert data["orderId"] == "A1"
    assert data["productIndex"] == 1
    assert data["productName"] == "USB-C Charger"
    assert data["orderStatus"] == "shipped"


def test_select_invalid_index(client, alice_headers):
    resp = _select(client, alice_headers, "A1", 99)
    assert resp.status_code == 400


def test_select_someone_elses_order(client, alice_headers):
    resp = _select(client, alice_headers, "C3", 0)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Order C3 not found"


def test_select_negative_index_rejected(client, alice_headers):
    resp = _select(client, alice_headers, "A1", -1)
    assert resp.status_code == 422


def test_chat_requires_token(client):
    resp = client.post("/api/chat", json={"message": "hello"})
    assert resp.status_code == 401


def test_chat_without_selection(client, alice_headers, gateway):
    resp = client.post("/api/chat", json={"message": "hello"}, headers=alice_headers)

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Please select a product first"
    assert gateway.prompts == []


def test_chat_reply(client, alice_headers, gateway):
    gateway.replies = ["It ships tomorrow."]
    _select(client, alice_headers)

    resp = client.post("/api/chat", json={"message": "When does it ship?"}, headers=alice_headers)

    assert resp.status_code == 200
    assert resp.json() == {"reply": "It ships tomorrow.", "caseId": None}


def test_chat_directive_opens_case(client, alice_headers, gateway):
    gateway.replies = [DIRECTIVE_REPLY]
    _select(client, alice_headers)

    resp = client.post("/api/chat", json={"message": "My headphones arrived damaged"}, headers=alice_headers)

    assert resp.status_code == 200
    data = resp.json()
    assert data["reply"] == "Sorry about that! I've raised a case."
    assert isinstance(data["caseId"], int)


def test_chat_generation_failure(client, alice_headers, gateway, log_store, seeded):
    gateway.error = AllModelsExhausted(["m1", "m2"])
    _select(client, alice_headers)

    resp = client.post("/api/chat", json={"message": "hello"}, headers=alice_headers)

    assert resp.status_code == 502
    assert resp.json()["detail"] == "Chat failed"
    assert log_store.entries(seeded.alice_id) == []


def test_empty_message_rejected(client, alice_headers):
    _select(client, alice_headers)
    resp = client.post("/api/chat", json={"message": ""}, headers=alice_headers)
    assert resp.status_code == 422


def test_whitespace_message_rejected(client, alice_headers):
    _select(client, alice_headers)
    resp = client.post("/api/chat", json={"message": "   "}, headers=alice_headers)
    assert resp.status_code == 400


def test_message_too_long(client, alice_headers):
    _select(client, alice_headers)
    long_message = "x" * (config_mod.MAX_MESSAGE_LENGTH + 1)
    resp = client.post("/api/chat", json={"message": long_message}, headers=alice_headers)
    assert resp.status_code == 422


def test_clear_selection(client, alice_headers):
    _select(client, alice_headers)
    assert client.post("/api/chat/clear", headers=alice_headers).status_code == 200

    resp = client.post("/api/chat", json={"message": "hello"}, headers=alice_headers)
    assert resp.status_code == 400


def test_rate_limit_returns_429_when_exceeded(client, alice_headers, monkeypatch):
    monkeypatch.setattr(config_mod, "RATE_LIMIT_CHAT", "2 per minute")
    limiter.enabled = True
    limiter.reset()
    _select(client, alice_headers)

    try:
        for _ in range(2):
            resp = client.post("/api/chat", json={"message": "hello"}, headers=alice_headers)
            assert resp.status_code == 200

        resp = client.post("/api/chat", json={"message": "hello"}, headers=alice_headers)
        assert resp.status_code == 429
    finally:
        limiter.enabled = False
        limiter.reset()


def test_rate_limit_key_uses_token_subject(alice_headers, seeded):
    class FakeRequest:
        headers = alice_headers
        client = None

    assert get_user_id_or_ip(FakeRequest()) == f"user:{seeded.alice_id}"


def test_rate_limit_key_ignores_forged_subject(seeded):
    forged = jwt.encode({"sub": str(seeded.bob_id)}, "not-the-server-secret", algorithm="HS256")

    class FakeRequest:
        headers = {"Authorization": f"Bearer {forged}"}
        client = None

    assert get_user_id_or_ip(FakeRequest()) == "127.0.0.1"
