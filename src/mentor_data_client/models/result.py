"""
Результаты операций клиента: успех несёт значение, неудача несёт код ошибки.

Вызывающий код проверяет ``isinstance(res, Ok)`` / ``isinstance(res, Err)``
и разбирает все варианты перечисления ошибки.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=enum.Enum)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E
    detail: Optional[str] = None


Result = Union[Ok[T], Err[E]]


class UploadError(str, enum.Enum):
    INVALID_FILE = "invalid_file"
    UNCONFIGURED = "unconfigured"
    UNAVAILABLE = "unavailable"
    CONFLICT = "conflict"
    WRITE_FAILED = "write_failed"
    UNKNOWN = "unknown"


class PersistError(str, enum.Enum):
    CONNECTION_FAILED = "connection_failed"
    WRITE_REJECTED = "write_rejected"
    INTERNAL_ERROR = "internal_error"


class FetchError(str, enum.Enum):
    CONNECTION_FAILED = "connection_failed"
    QUERY_FAILED = "query_failed"
    INTERNAL_ERROR = "internal_error"
