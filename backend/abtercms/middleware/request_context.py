from __future__ import annotations

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.context import request_id_var
from ..op_context import OpContext


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Accepts inbound X-Request-Id (if present) or generates a UUIDv4.
    - Stores it in request.state.request_id and a contextvar for logging.
    - Opens an OpContext bounded by `timeout_s` in request.state.op_context; it is
      cancelled once the response is produced so late storage calls fail fast.
    - Always echoes X-Request-Id on the response.
    """

    header_name = "X-Request-Id"

    def __init__(self, app, *, timeout_s: float | None = None):
        super().__init__(app)
        self._timeout_s = timeout_s

    async def dispatch(self, request: Request, call_next):
        inbound = request.headers.get("x-request-id")
        request_id = (str(inbound).strip() if inbound else "") or str(uuid.uuid4())

        ctx = OpContext.with_timeout(self._timeout_s) if self._timeout_s else OpContext.background()
        request.state.request_id = request_id
        request.state.op_context = ctx
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers[self.header_name] = request_id
            return response
        finally:
            ctx.cancel()
            request_id_var.reset(token)
