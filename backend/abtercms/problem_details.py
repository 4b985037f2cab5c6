"""
RFC 7807 problem details.

`Problem` is the single error type that crosses layer boundaries: the storage layer
raises it, handlers raise it, and the exception handlers render it. Anything else that
escapes is normalized with `to_problem` before it reaches the wire.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.responses import ORJSONResponse

PROBLEM_JSON = "application/problem+json"

_TYPE_FORMAT = "https://developer.mozilla.org/en-US/docs/Web/HTTP/Status/{status}"

# Stands in for a missing error so to_problem stays total.
UNKNOWN_ERROR = RuntimeError("unknown error")


def _default_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def _problem_type(status_code: int) -> str:
    return _TYPE_FORMAT.format(status=status_code)


def _format(msg: str, args: tuple[Any, ...]) -> str:
    return msg % args if args else msg


class Problem(Exception):
    """An error carrying an HTTP status alongside human-readable title/detail.

    `str(problem)` is the internal message (it includes the cause's text when one is
    wrapped); `detail` is what clients see and may be filled in later by `to_problem`.
    """

    def __init__(
        self,
        status: int,
        message: str,
        *,
        cause: BaseException | None = None,
        detail: str = "",
    ) -> None:
        status = int(status)
        if not 100 <= status <= 599:
            raise ValueError(f"invalid HTTP status: {status}")

        text = f"{message} (status {status})"
        if cause is not None:
            text = f"{text}, err: {cause}"
        super().__init__(text)

        self.message = message
        self.type = _problem_type(status)
        self.title = _default_title(status)
        self.status = status
        self.detail = detail
        self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def __reduce__(self):
        return _restore_problem, (self.status, self.message, self.__cause__, self.detail)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "status": self.status,
            "detail": self.detail,
        }

    def __repr__(self) -> str:
        return f"Problem(status={self.status}, message={str(self)!r}, detail={self.detail!r})"


def _restore_problem(status: int, message: str, cause: BaseException | None, detail: str) -> Problem:
    return Problem(status, message, cause=cause, detail=detail)


def new_problem(status: int, msg: str, *args: Any, detail: str = "") -> Problem:
    return Problem(status, _format(msg, args), detail=detail)


def wrap_problem(
    cause: BaseException, status: int, msg: str, *args: Any, detail: str = ""
) -> Problem:
    return Problem(status, _format(msg, args), cause=cause, detail=detail)


def find_problem(err: BaseException) -> Problem | None:
    """
    Walk the explicit cause chain (`__cause__`) outer -> inner and return the first
    Problem found.

    The first match wins, not the innermost one: a Problem that wraps another Problem
    keeps the outer status.
    """
    seen: set[int] = set()
    cur: BaseException | None = err
    while cur is not None and id(cur) not in seen:
        if isinstance(cur, Problem):
            return cur
        seen.add(id(cur))
        cur = cur.__cause__
    return None


def to_problem(err: BaseException | None) -> Problem:
    """Normalize any error into a Problem with a non-empty detail."""
    if err is None:
        err = UNKNOWN_ERROR

    problem = find_problem(err)
    if problem is None:
        problem = wrap_problem(err, 500, str(err) or type(err).__name__)

    if not problem.detail:
        problem.detail = str(err) or problem.title

    return problem


def _request_id(request: Request) -> str | None:
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        return str(rid)
    hdr = request.headers.get("x-request-id")
    return str(hdr) if hdr else None


def problem_payload(
    *,
    request: Request,
    problem: Problem,
    errors: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    payload = problem.to_dict()

    inst = str(getattr(request.url, "path", "") or "")
    if inst:
        payload["instance"] = inst

    rid = _request_id(request)
    if rid:
        payload["requestId"] = rid

    if errors:
        payload["errors"] = errors

    return payload


def problem_response(
    *,
    request: Request,
    problem: Problem,
    errors: list[dict[str, Any]] | None = None,
) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=problem.status,
        content=problem_payload(request=request, problem=problem, errors=errors),
        media_type=PROBLEM_JSON,
    )
