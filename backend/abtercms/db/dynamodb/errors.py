from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class DdbError(Exception):
    """Storage failure attached as the cause of a Problem.

    The repository never lets these escape on their own. `str()` names the operation
    and key so the Problem text in logs shows what was being done.
    """

    message: str
    operation: str | None = None
    table_name: str | None = None
    key: dict[str, Any] | None = None
    aws_request_id: str | None = None

    def __str__(self) -> str:
        where = self.operation or "dynamodb"
        if self.key:
            where = f"{where} {self.key}"
        return f"{where}: {self.message}"

    def __reduce__(self):
        return type(self), (self.message, self.operation, self.table_name, self.key, self.aws_request_id)


@dataclass(slots=True)
class DdbMarshalError(DdbError):
    """An item could not be converted to or from its AttributeValue shape."""


@dataclass(slots=True)
class DdbNotFound(DdbError):
    pass


@dataclass(slots=True)
class DdbCancelled(DdbError):
    """The caller's context was done before or while the call ran."""


@dataclass(slots=True)
class DdbValidation(DdbError):
    pass


@dataclass(slots=True)
class DdbThrottled(DdbError):
    """Capacity or request-rate limits rejected the call."""


@dataclass(slots=True)
class DdbUnavailable(DdbError):
    """The table or the service could not be reached."""


@dataclass(slots=True)
class DdbInternal(DdbError):
    pass
