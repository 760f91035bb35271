# =============================================================================
# tests/test_api.py - HTTP Layer Tests
# =============================================================================
# Exercises the FastAPI app end to end with services patched:
# - response envelope and X-Request-ID
# - JWT verification (missing, invalid, expired, valid, forged with no secret)
# - unhandled errors still carry X-Request-ID and the request log line
# - validation errors as INVALID_INPUT / 400
# - login rate limiting and webhook signature checks
# - /auth/me profile, tier and limits
# =============================================================================

import json
import logging
import time
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.auth import AuthUser, get_current_user
from app.auth.dependencies import decode_token, signing_key_for
from app.config import settings
from app.dependencies import get_llm_client, get_login_rate_limiter
from app.exceptions import AuthRequiredError
from app.main import app
from core.models.chat import ChatResponse, TokenUsage
from core.models.tier import Tier
from core.services.chat_service import ChatService, ChatTurn, sse_event
from core.services.tank_service import TankService
from core.services.tier_service import TierService
from lib.rate_limit import FixedWindowRateLimiter, MemoryRateLimitStorage
from lib.supabase_client import SupabaseClient
from tests.conftest import OTHER_USER_ID, USER_ID


def make_token(expires_in: int = 3600) -> str:
    return jwt.encode(
        {
            "sub": str(USER_ID),
            "email": "fish@example.com",
            "aud": "authenticated",
            "exp": int(time.time()) + expires_in,
        },
        settings.SUPABASE_JWT_SECRET,
        algorithm="HS256",
    )


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def authed(client):
    app.dependency_overrides[get_current_user] = lambda: AuthUser(id=USER_ID, email="fish@example.com")
    return client


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Request-ID"].startswith("req_")

    def test_liveness(self, client):
        assert client.get("/api/v1/health/live").status_code == 200


class TestAuthentication:
    """Bearer token handling on a protected route."""

    def test_missing_token(self, client):
        response = client.get("/api/v1/tanks")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "AUTH_REQUIRED"
        assert body["meta"]["request_id"].startswith("req_")

    def test_garbage_token(self, client):
        response = client.get("/api/v1/tanks", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_REQUIRED"

    def test_expired_token(self, client):
        response = client.get("/api/v1/tanks", headers={"Authorization": f"Bearer {make_token(-60)}"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_EXPIRED"

    def test_valid_token(self, client):
        with patch.object(TankService, "list_tanks", return_value=[]) as list_tanks:
            response = client.get("/api/v1/tanks", headers={"Authorization": f"Bearer {make_token()}"})

        assert response.status_code == 200
        assert response.json()["data"] == {"tanks": [], "count": 0}
        list_tanks.assert_called_once()
        assert str(list_tanks.call_args.args[0]) == str(USER_ID)

    def test_forged_token_rejected_without_secret(self, client):
        forged = jwt.encode(
            {"sub": str(OTHER_USER_ID), "aud": "authenticated", "exp": int(time.time()) + 3600},
            "",
            algorithm="HS256",
        )

        with patch.object(settings, "SUPABASE_JWT_SECRET", ""), \
                patch.object(TankService, "list_tanks", return_value=[]) as list_tanks:
            response = client.get("/api/v1/tanks", headers={"Authorization": f"Bearer {forged}"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_REQUIRED"
        list_tanks.assert_not_called()


class TestDecodeToken:
    """decode_token() and signing key selection."""

    def test_empty_secret_refuses_hs256(self):
        forged = jwt.encode({"sub": str(USER_ID), "aud": "authenticated"}, "", algorithm="HS256")

        with patch.object(settings, "SUPABASE_JWT_SECRET", ""):
            with pytest.raises(AuthRequiredError):
                decode_token(forged)

    def test_empty_secret_refuses_unparseable_header(self):
        with patch.object(settings, "SUPABASE_JWT_SECRET", ""):
            with pytest.raises(AuthRequiredError):
                signing_key_for("not-a-jwt")

    def test_configured_secret_is_used(self):
        key, algorithm = signing_key_for(make_token())

        assert key == settings.SUPABASE_JWT_SECRET
        assert algorithm == "HS256"


class TestUnhandledErrors:
    def test_envelope_header_and_log_line(self, authed, caplog):
        with patch.object(TankService, "list_tanks", side_effect=RuntimeError("connection reset")), \
                caplog.at_level(logging.INFO, logger="app.main"):
            response = authed.get("/api/v1/tanks")

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "connection reset" not in body["error"]["message"]
        assert response.headers["X-Request-ID"] == body["meta"]["request_id"]
        assert "status_code=500" in caplog.text


class TestChatEndpoint:
    def test_empty_message_is_invalid_input(self, authed):
        app.dependency_overrides[get_llm_client] = lambda: MagicMock(model="claude-test")

        response = authed.post("/api/v1/ai/chat", json={"message": ""})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INPUT"

    def test_reply_in_envelope(self, authed):
        app.dependency_overrides[get_llm_client] = lambda: MagicMock(model="claude-test")
        turn = ChatTurn(user_id=str(USER_ID), tank_id=None, system="sys", messages=[])
        reply = ChatResponse(id="m1", content="Test your water first.", usage=TokenUsage(input_tokens=5, output_tokens=4))

        with patch.object(ChatService, "prepare_turn", return_value=turn), \
                patch.object(ChatService, "complete", return_value=reply):
            response = authed.post("/api/v1/ai/chat", json={"message": "Why is my fish gasping?"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["content"] == "Test your water first."
        assert data["role"] == "assistant"

    def test_stream_query_returns_sse(self, authed):
        app.dependency_overrides[get_llm_client] = lambda: MagicMock(model="claude-test")
        turn = ChatTurn(user_id=str(USER_ID), tank_id=None, system="sys", messages=[])
        events = [
            sse_event({"type": "text_delta", "text": "Test "}),
            sse_event({"type": "text_delta", "text": "first."}),
            sse_event({"type": "done", "id": "m1", "usage": {"input_tokens": 5, "output_tokens": 2}}),
        ]

        with patch.object(ChatService, "prepare_turn", return_value=turn), \
                patch.object(ChatService, "stream_events", return_value=iter(events)) as stream_events, \
                patch.object(ChatService, "complete") as complete:
            response = authed.post("/api/v1/ai/chat?stream=true", json={"message": "Cloudy water?"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["Cache-Control"] == "no-cache"
        frames = [frame for frame in response.text.split("\n\n") if frame]
        assert all(frame.startswith("data: ") for frame in frames)
        payloads = [json.loads(frame[len("data: "):]) for frame in frames]
        assert [p["type"] for p in payloads] == ["text_delta", "text_delta", "done"]
        assert stream_events.call_args.args[0] is turn
        complete.assert_not_called()


class TestLogin:
    def test_rate_limited(self, client):
        limiter = FixedWindowRateLimiter(limit=0, window_seconds=900, storage=MemoryRateLimitStorage())
        app.dependency_overrides[get_login_rate_limiter] = lambda: limiter

        response = client.post("/api/v1/auth/login", json={"email": "fish@example.com", "password": "pw"})

        assert response.status_code == 429
        body = response.json()
        assert body["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert "Too many login attempts" in body["error"]["message"]
        assert response.headers["X-RateLimit-Limit"] == "0"


class TestMe:
    def test_profile_tier_and_limits(self, authed):
        profile = {"id": str(USER_ID), "email": "fish@example.com", "full_name": "Fish Keeper"}
        with patch.object(SupabaseClient, "fetch_user_profile", return_value=profile), \
                patch.object(TierService, "get_user_tier", return_value=Tier.PRO):
            response = authed.get("/api/v1/auth/me")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["profile"] == profile
        assert data["tier"] == "pro"
        assert data["limits"]["photo_diagnosis_per_day"] == 30
        assert data["limits"]["equipment_recs_per_day"] == 10

    def test_missing_profile_falls_back_to_token(self, authed):
        with patch.object(SupabaseClient, "fetch_user_profile", return_value=None), \
                patch.object(TierService, "get_user_tier", return_value=Tier.FREE):
            data = authed.get("/api/v1/auth/me").json()["data"]

        assert data["profile"] == {"id": str(USER_ID), "email": "fish@example.com"}
        assert data["limits"]["photo_diagnosis_per_day"] == 0


class TestStripeWebhook:
    def test_missing_signature(self, client):
        response = client.post("/api/v1/webhooks/stripe", content=b"{}")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing signature"}

    def test_invalid_signature(self, client):
        response = client.post(
            "/api/v1/webhooks/stripe",
            content=b"{}",
            headers={"stripe-signature": "t=1,v1=deadbeef"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid signature"}
