# =============================================================================
# tests/test_responses.py - Envelope & Exception Tests
# =============================================================================
# Tests for the success/error envelopes and the exception hierarchy.
# =============================================================================

import json
import re

from app.exceptions import (
    AuthRequiredError,
    ErrorCode,
    NotFoundError,
    RateLimitExceededError,
    TankNotFoundError,
    format_validation_errors,
)
from app.responses import error_response, generate_request_id, success_response


class TestRequestId:
    """Tests for generate_request_id()."""

    def test_format(self):
        assert re.fullmatch(r"req_\d{13}_[0-9a-z]{7}", generate_request_id())

    def test_unique(self):
        assert generate_request_id() != generate_request_id()


class TestEnvelopes:
    """Tests for success_response() and error_response()."""

    def test_success_envelope(self):
        response = success_response({"tank": {"id": "t1"}}, status_code=201)
        body = json.loads(response.body)

        assert response.status_code == 201
        assert body["success"] is True
        assert body["data"] == {"tank": {"id": "t1"}}
        assert body["meta"]["request_id"].startswith("req_")
        assert "timestamp" in body["meta"]

    def test_success_headers(self):
        response = success_response([], headers={"Cache-Control": "public, max-age=3600"})
        assert response.headers["cache-control"] == "public, max-age=3600"

    def test_error_envelope(self):
        response = error_response("NOT_FOUND", "Tank not found", 404, details={"id": "t1"})
        body = json.loads(response.body)

        assert response.status_code == 404
        assert body["success"] is False
        assert body["error"] == {"code": "NOT_FOUND", "message": "Tank not found", "details": {"id": "t1"}}


class TestExceptions:
    """Tests for the AquaBotException hierarchy."""

    def test_auth_required_defaults(self):
        exc = AuthRequiredError()
        assert exc.message == "You must be logged in"
        assert exc.status_code == 401
        assert exc.headers == {"WWW-Authenticate": "Bearer"}

    def test_not_found_message(self):
        exc = NotFoundError("Livestock", "abc")
        assert exc.message == "Livestock not found"
        assert exc.code == ErrorCode.NOT_FOUND
        assert exc.to_dict() == {"code": "NOT_FOUND", "message": "Livestock not found", "details": {"id": "abc"}}

    def test_tank_not_found_is_not_found(self):
        exc = TankNotFoundError()
        assert isinstance(exc, NotFoundError)
        assert exc.message == "Tank not found"

    def test_rate_limit_status_and_headers(self):
        exc = RateLimitExceededError("slow down", headers={"Retry-After": "60"})
        assert exc.status_code == 429
        assert exc.headers == {"Retry-After": "60"}


class TestFormatValidationErrors:
    """Tests for format_validation_errors()."""

    def test_groups_by_field_and_drops_location(self):
        errors = [
            {"loc": ("body", "name"), "msg": "too short"},
            {"loc": ("body", "name"), "msg": "required"},
            {"loc": ("query", "limit"), "msg": "too big"},
        ]
        assert format_validation_errors(errors) == "name: too short, required; limit: too big"

    def test_model_level_errors_are_general(self):
        assert format_validation_errors([{"loc": ("body",), "msg": "bad"}]) == "general: bad"
