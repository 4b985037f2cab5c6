from __future__ import annotations

from typing import Any, Callable, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from ...observability.logging import get_logger
from ...op_context import ContextDone, OpContext
from ...problem_details import wrap_problem
from .errors import (
    DdbCancelled,
    DdbError,
    DdbInternal,
    DdbThrottled,
    DdbUnavailable,
    DdbValidation,
)

T = TypeVar("T")

PROBLEM_COMMAND = "dynamodb command issue"

_CODE_TO_ERROR: dict[str, type[DdbError]] = {
    "ValidationException": DdbValidation,
    "ParamValidationError": DdbValidation,
    "ProvisionedThroughputExceededException": DdbThrottled,
    "ThrottlingException": DdbThrottled,
    "RequestLimitExceeded": DdbThrottled,
    "AccessDeniedException": DdbUnavailable,
    "UnrecognizedClientException": DdbUnavailable,
    "ResourceNotFoundException": DdbUnavailable,
    "ServiceUnavailable": DdbUnavailable,
    "InternalServerError": DdbInternal,
}

_log = get_logger("dynamodb")


def _aws_request_id_from_client_error(e: ClientError) -> str | None:
    return (e.response or {}).get("ResponseMetadata", {}).get("RequestId")


def _err_code_from_client_error(e: ClientError) -> str | None:
    return (e.response or {}).get("Error", {}).get("Code")


def map_botocore_error(
    *,
    operation: str,
    table_name: str | None,
    key: dict[str, Any] | None,
    exc: Exception,
) -> DdbError:
    if isinstance(exc, DdbError):
        return exc

    where: dict[str, Any] = {"operation": operation, "table_name": table_name, "key": key}

    if isinstance(exc, ContextDone):
        return DdbCancelled(message=f"request abandoned ({exc})", **where)

    if isinstance(exc, ClientError):
        code = _err_code_from_client_error(exc) or "ClientError"
        cls = _CODE_TO_ERROR.get(code, DdbInternal)
        return cls(
            message=f"request failed ({code})",
            aws_request_id=_aws_request_id_from_client_error(exc),
            **where,
        )

    if isinstance(exc, BotoCoreError):
        return DdbUnavailable(message=f"client error ({exc})", **where)

    return DdbInternal(message="unexpected error", **where)


def ddb_call(
    operation: str,
    fn: Callable[[], T],
    *,
    ctx: OpContext,
    detail: str,
    table_name: str | None = None,
    key: dict[str, Any] | None = None,
) -> T:
    """
    Run a single DynamoDB round trip under `ctx`.

    The context is checked before the call and again after it returns, so work the
    caller has abandoned is reported as a failure. Any failure is mapped to a DdbError
    and raised as a 500 Problem carrying `detail`.
    """
    try:
        ctx.raise_if_done()
        out = fn()
        ctx.raise_if_done()
        return out
    except (BotoCoreError, ClientError, ContextDone) as e:
        mapped = map_botocore_error(operation=operation, table_name=table_name, key=key, exc=e)
        mapped.__cause__ = e
        _log.warning(
            "dynamodb_call_failed",
            operation=operation,
            table=table_name,
            error_type=type(mapped).__name__,
            error=str(e),
            aws_request_id=mapped.aws_request_id,
        )
        raise wrap_problem(mapped, 500, PROBLEM_COMMAND, detail=detail) from mapped
