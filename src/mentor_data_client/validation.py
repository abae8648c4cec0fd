import logging
from typing import NamedTuple, Optional, Protocol

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
})

REASON_TOO_LARGE = "too large"
REASON_UNSUPPORTED_TYPE = "unsupported type"


class FileDescriptor(Protocol):
    size_bytes: int
    mime_type: str


class ValidationResult(NamedTuple):
    valid: bool
    reason: Optional[str] = None


def validate_file(file: FileDescriptor) -> ValidationResult:
    """
    Проверяет размер и тип файла до любого обращения к сети или хранилищу.
    Размер проверяется первым, поэтому слишком большой файл отклоняется
    с причиной "too large" независимо от типа.
    """
    if file.size_bytes > MAX_FILE_SIZE:
        logger.debug(f"Rejected file: {file.size_bytes} bytes exceeds {MAX_FILE_SIZE}")
        return ValidationResult(False, REASON_TOO_LARGE)
    if file.mime_type not in ALLOWED_MIME_TYPES:
        logger.debug(f"Rejected file: unsupported type {file.mime_type!r}")
        return ValidationResult(False, REASON_UNSUPPORTED_TYPE)
    return ValidationResult(True)


def format_file_size(size_bytes: int) -> str:
    """1536 -> '1.5 KB'."""
    if size_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def file_category(mime_type: str) -> str:
    if mime_type.startswith("image/"):
        return "image"
    if mime_type == "application/pdf":
        return "pdf"
    if "word" in mime_type:
        return "document"
    if "excel" in mime_type or "sheet" in mime_type:
        return "spreadsheet"
    if mime_type == "text/plain":
        return "text"
    return "other"
