# =============================================================================
# app/responses.py - API Response Envelope
# =============================================================================
# Every JSON endpoint answers with the same envelope:
#
#   success: {"success": true,  "data": {...}, "meta": {"timestamp", "request_id"}}
#   failure: {"success": false, "error": {"code", "message"}, "meta": {...}}
#
# Routers return success_response(...); errors are raised as AquaBotException
# and rendered by the handlers in app/exceptions.py via error_response(...).
# =============================================================================

import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

_BASE36 = string.digits + string.ascii_lowercase


def generate_request_id() -> str:
    """
    Build a request id like "req_1718035200000_k3j9x0a".

    Epoch milliseconds followed by 7 random base36 characters.
    """
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"req_{int(time.time() * 1000)}_{suffix}"


def build_meta(request_id: str | None = None) -> dict[str, str]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id or generate_request_id(),
    }


def request_id_for(request: Request | None) -> str | None:
    """Return the id assigned by the request logging middleware, if any."""
    if request is None:
        return None
    return getattr(request.state, "request_id", None)


def success_response(
    data: Any,
    status_code: int = 200,
    request: Request | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """
    Wrap data in the success envelope.

    Args:
        data: Payload (pydantic models, dicts, lists - anything jsonable)
        status_code: HTTP status (201 for creates)
        request: Current request, used to reuse its request_id
        headers: Extra response headers (cache control, rate limit info)
    """
    body = {
        "success": True,
        "data": jsonable_encoder(data),
        "meta": build_meta(request_id_for(request)),
    }
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def error_response(
    code: str,
    message: str,
    status_code: int,
    request: Request | None = None,
    suggestion: str | None = None,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Wrap an error in the failure envelope."""
    error: dict[str, Any] = {"code": code, "message": message}
    if suggestion:
        error["suggestion"] = suggestion
    if details:
        error["details"] = jsonable_encoder(details)

    body = {
        "success": False,
        "error": error,
        "meta": build_meta(request_id_for(request)),
    }
    return JSONResponse(status_code=status_code, content=body, headers=headers)
