"""Tests for the POST /ask endpoint and session authentication."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from starlette.requests import Request

from api.ask import (
    get_llm,
    get_mailbox,
    get_memory_store,
    get_ocr,
    get_result_cache,
    router,
)
from api.session_auth import SESSION_COOKIE, SESSION_HEADER, require_session
from src.core.exceptions import LLMUnavailableError

SESSION = {"user_id": "u1", "email": "me@example.com", "access_token": "ya29.token"}


def _session_redis(record: dict | None = SESSION):
    redis = MagicMock()
    redis.get = AsyncMock(return_value=json.dumps(record) if record else None)
    return redis


def _app(mailbox, llm, memory=None) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_mailbox] = lambda: mailbox
    app.dependency_overrides[get_llm] = lambda: llm
    app.dependency_overrides[get_memory_store] = lambda: memory
    app.dependency_overrides[get_ocr] = lambda: None
    app.dependency_overrides[get_result_cache] = lambda: None
    return app


@pytest.fixture
def configured_llm(llm_factory):
    def make(responses):
        llm = llm_factory(responses)
        llm.is_configured = lambda task="answer": True
        return llm

    return make


@pytest.fixture
def history():
    with (
        patch("api.ask.get_recent_messages", AsyncMock(return_value=[])) as recent,
        patch("api.ask.record_exchange", AsyncMock()) as record,
    ):
        yield recent, record


def _request(headers: dict | None = None, cookies: str = "") -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        raw.append((b"cookie", cookies.encode()))
    return Request({"type": "http", "headers": raw})


# --- Session resolution ---


async def test_require_session_from_header():
    with patch("api.session_auth.redis", _session_redis()) as redis:
        user = await require_session(_request({SESSION_HEADER: "tok"}))
    assert user.user_id == "u1"
    redis.get.assert_awaited_once_with("session:tok")


async def test_require_session_from_cookie():
    with patch("api.session_auth.redis", _session_redis()) as redis:
        user = await require_session(_request(cookies=f"{SESSION_COOKIE}=cookie-tok"))
    assert user.access_token == "ya29.token"
    redis.get.assert_awaited_once_with("session:cookie-tok")


async def test_require_session_missing_token():
    with pytest.raises(HTTPException) as exc:
        await require_session(_request())
    assert exc.value.status_code == 401


async def test_require_session_unknown_token():
    with patch("api.session_auth.redis", _session_redis(None)), pytest.raises(HTTPException) as exc:
        await require_session(_request({SESSION_HEADER: "gone"}))
    assert exc.value.status_code == 401


async def test_require_session_malformed_record():
    redis = MagicMock()
    redis.get = AsyncMock(return_value="{not json")
    with patch("api.session_auth.redis", redis), pytest.raises(HTTPException) as exc:
        await require_session(_request({SESSION_HEADER: "tok"}))
    assert exc.value.status_code == 401


# --- Endpoint ---


def test_ask_requires_session(mailbox_factory, configured_llm, history):
    client = TestClient(_app(mailbox_factory(), configured_llm({})))
    resp = client.post("/ask", json={"question": "what is new?"})
    assert resp.status_code == 401


def test_ask_without_answer_model_credentials(mailbox_factory, llm_factory, history):
    llm = llm_factory({})
    llm.is_configured = lambda task="answer": False
    with patch("api.session_auth.redis", _session_redis()):
        client = TestClient(_app(mailbox_factory(), llm))
        resp = client.post("/ask", json={"question": "what is new?"}, headers={SESSION_HEADER: "tok"})
    assert resp.status_code == 500


def test_ask_blank_question(mailbox_factory, configured_llm, history):
    with patch("api.session_auth.redis", _session_redis()):
        client = TestClient(_app(mailbox_factory(), configured_llm({})))
        resp = client.post("/ask", json={"question": "   "}, headers={SESSION_HEADER: "tok"})
    assert resp.status_code == 400


def test_ask_returns_answer_payload(mailbox_factory, make_message, configured_llm, history):
    recent, record = history
    mailbox = mailbox_factory([make_message("m1", subject="Lease", sender="Landlord <l@rent.com>", body="Sign by Friday.")])
    llm = configured_llm({"answer": '{"answer": "Sign the lease by Friday.", "citations": ["Lease"]}'})

    with patch("api.session_auth.redis", _session_redis()):
        client = TestClient(_app(mailbox, llm))
        resp = client.post("/ask", json={"question": "what did the landlord say?"}, headers={SESSION_HEADER: "tok"})

    assert resp.status_code == 200
    data = resp.json()
    assert set(data) == {"answer", "citations", "action", "send", "schedule", "messages", "queries"}
    assert data["answer"] == "Sign the lease by Friday."
    assert data["action"] is None
    assert [m["id"] for m in data["messages"]] == ["m1"]
    assert data["queries"]
    recent.assert_awaited_once_with("u1", 4)
    record.assert_awaited_once_with("u1", "what did the landlord say?", "Sign the lease by Friday.", None)


def test_ask_send_action_payload(mailbox_factory, configured_llm, history):
    llm = configured_llm({"answer": '{"answer": "Drafted a note."}'})
    with patch("api.session_auth.redis", _session_redis()):
        client = TestClient(_app(mailbox_factory(), llm))
        resp = client.post(
            "/ask",
            json={"question": "send an email to priya@example.com saying thanks"},
            headers={SESSION_HEADER: "tok"},
        )

    data = resp.json()
    assert data["action"] == "send"
    assert data["send"] == {"toEmail": "priya@example.com", "subject": "Quick note", "body": "Drafted a note."}


def test_ask_answer_model_outage_is_500(mailbox_factory, configured_llm, history):
    llm = configured_llm({"answer": LLMUnavailableError("down")})
    with patch("api.session_auth.redis", _session_redis()):
        client = TestClient(_app(mailbox_factory(), llm))
        resp = client.post("/ask", json={"question": "what is new?"}, headers={SESSION_HEADER: "tok"})
    assert resp.status_code == 500


def test_ask_schedules_memory_capture(mailbox_factory, configured_llm, memory_store_factory, history):
    store = memory_store_factory()
    llm = configured_llm({"answer": '{"answer": "Noted."}'})
    with patch("api.session_auth.redis", _session_redis()):
        client = TestClient(_app(mailbox_factory(), llm, memory=store))
        resp = client.post(
            "/ask", json={"question": "remember that gate code: 4512"}, headers={SESSION_HEADER: "tok"}
        )

    assert resp.status_code == 200
    assert store.created == [("u1", "note", "gate code", "4512")]
