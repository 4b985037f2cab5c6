from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .middleware.access_log import AccessLogMiddleware
from .middleware.request_context import RequestContextMiddleware
from .observability.logging import configure_logging, get_logger
from .problem_details import Problem, new_problem, problem_response, to_problem
from .routers.health import router as health_router
from .routers.websites import router as websites_router
from .settings import get_settings


def create_app() -> FastAPI:
    settings = get_settings()

    # Logging must be configured before the app starts handling requests.
    configure_logging(level=settings.log_level, json_output=settings.log_json)
    log = get_logger("startup")

    app = FastAPI(
        title="abtercms websites",
        version="1.0.0",
        default_response_class=ORJSONResponse,
        redirect_slashes=False,
    )

    log.info("app_starting", settings=settings.to_log_safe_dict())

    # Middlewares (order matters; last added is outermost)
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/"})
    # Outermost: request context (request-id, deadline) wraps everything.
    app.add_middleware(RequestContextMiddleware, timeout_s=settings.request_timeout_s)

    # Error handlers
    app.add_exception_handler(Problem, _problem_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    # Routes
    app.include_router(health_router)
    app.include_router(websites_router, prefix="/websites")

    return app


def _render(request: Request, problem: Problem, errors: list[dict[str, object]] | None = None) -> Response:
    # Picked up by the access log.
    request.state.error = str(problem)
    response = problem_response(request=request, problem=problem, errors=errors)
    # Responses built outside RequestContextMiddleware still echo the request id.
    rid = getattr(request.state, "request_id", None)
    if rid:
        response.headers[RequestContextMiddleware.header_name] = str(rid)
    return response


def _problem_handler(request: Request, exc: Problem) -> Response:
    return _render(request, to_problem(exc))


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)

    msg = str(detail).strip() if detail else ""
    if status_code == 404 and msg in ("", "Not Found"):
        msg = "Route not found"

    problem = new_problem(status_code, msg or "http error", detail=msg)
    return _render(request, to_problem(problem))


def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors: list[dict[str, object]] = []
    for e in exc.errors():
        loc = e.get("loc") or ()
        loc_path = ".".join([str(x) for x in loc if x != "body"])
        errors.append(
            {
                "location": list(loc) if isinstance(loc, (list, tuple)) else [],
                "path": loc_path,
                "message": e.get("msg", "Invalid value"),
                "type": e.get("type"),
            }
        )
    problem = new_problem(422, "failed to unmarshal request", detail="Request validation failed")
    return _render(request, problem, errors=errors)


def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    problem = to_problem(exc)
    # Runs in a worker thread with no active exception, so exc_info is passed explicitly.
    get_logger("unhandled").error(
        "unhandled_exception",
        http_method=str(request.method).upper(),
        path=str(request.url.path),
        status_code=problem.status,
        error=str(exc),
        exc_info=exc,
    )
    return _render(request, problem)


app = create_app()
