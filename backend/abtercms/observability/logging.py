from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from .context import get_request_id


def _add_request_id(_: Any, __: str, event_dict: dict) -> dict:
    rid = get_request_id()
    if rid:
        event_dict["request_id"] = rid
    return event_dict


def _drop_none(_: Any, __: str, event_dict: dict) -> dict:
    # Callers pass optional fields unconditionally; keep log lines compact.
    return {k: v for k, v in event_dict.items() if v is not None}


_CONFIGURED = False


def configure_logging(*, level: str | int = "INFO", json_output: bool = True) -> None:
    """
    Route stdlib logging and structlog through one handler on stdout.

    JSON lines by default; `json_output=False` switches to the console renderer
    for local runs.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    shared: list[Any] = [
        _add_request_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    renderer = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _drop_none,
                renderer,
            ],
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper() if isinstance(level, str) else level)

    # botocore is chatty at INFO; uvicorn should share our formatting.
    logging.getLogger("botocore").setLevel(logging.WARNING)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        log = logging.getLogger(name)
        log.handlers = []
        log.propagate = True

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)
