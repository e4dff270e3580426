"""Logging setup and per-request access logging."""
from __future__ import annotations

import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

request_logger = logging.getLogger("src.request")


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the root logger."""

    root = logging.getLogger()
    if not any(getattr(h, "_school_saas", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        handler._school_saas = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level.upper())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one JSON line per request and echo the request id."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = int((time.perf_counter() - start) * 1000)
            payload = self._build_payload(request, request_id, duration_ms, status=500)
            request_logger.exception(json.dumps(payload, ensure_ascii=True))
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        payload = self._build_payload(
            request, request_id, duration_ms, status=response.status_code
        )
        if response.status_code >= 500:
            request_logger.error(json.dumps(payload, ensure_ascii=True))
        elif response.status_code >= 400:
            request_logger.warning(json.dumps(payload, ensure_ascii=True))
        else:
            request_logger.info(json.dumps(payload, ensure_ascii=True))

        response.headers["X-Request-Id"] = request_id
        return response

    @staticmethod
    def _build_payload(request: Request, request_id: str, duration_ms: int, status: int) -> dict:
        context = getattr(request.state, "subscription", None)
        return {
            "event": "http_request",
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "duration_ms": duration_ms,
            "tenant": str(context.tenant_id) if context is not None else None,
            "plan": context.plan_code if context is not None else None,
        }
