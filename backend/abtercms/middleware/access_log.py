from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.logging import get_logger
from ..problem_details import to_problem


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    One structured line per request: method, path, status, duration and, when the
    request failed, the error text.
    """

    def __init__(self, app, *, exclude_paths: set[str] | None = None):
        super().__init__(app)
        self._exclude = exclude_paths or set()
        self._log = get_logger("access")

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in self._exclude:
            return await call_next(request)

        start = time.perf_counter()
        method = request.method.upper()

        try:
            response = await call_next(request)
        except Exception as exc:
            self._log.error(
                f"{method} {path}",
                http_method=method,
                path=path,
                status_code=to_problem(exc).status,
                duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
                error=str(exc),
            )
            raise

        # Exception handlers leave the error text on request.state.
        error = getattr(request.state, "error", None)
        self._log.info(
            f"{method} {path}",
            http_method=method,
            path=path,
            status_code=int(response.status_code),
            duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
            error=str(error) if error else None,
        )
        return response
