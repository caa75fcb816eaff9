# app/core/request_id.py
from __future__ import annotations

import uuid
from typing import Optional
import contextvars

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

_request_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)


def set_request_id(request_id: Optional[str]) -> None:
    _request_id_ctx.set(request_id)

def get_request_id() -> Optional[str]:
    return _request_id_ctx.get()

def clear_request_id() -> None:
    _request_id_ctx.set(None)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Propagate (or mint) X-Request-Id and log request start/end.

    Unhandled faults from the routes become a plain 500 here, so the error
    response still passes through the outer middlewares and carries the id.
    """

    async def dispatch(self, request: Request, call_next):
        # imported lazily: app.core.logging depends on this module
        from app.core.logging import get_logger

        logger = get_logger()
        req_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        set_request_id(req_id)

        logger.info("request_started", method=request.method, path=request.url.path)
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            logger.exception("unhandled_exception", path=request.url.path, error=exc.__class__.__name__)
            response = PlainTextResponse("Internal Server Error", status_code=500)
        logger.info("request_ended", status_code=response.status_code)
        response.headers["X-Request-Id"] = req_id
        clear_request_id()
        return response
