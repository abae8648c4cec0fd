from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class ChatRole(str, enum.Enum):
    user = "user"
    assistant = "assistant"


class FileUpload(BaseModel):
    """
    Файл, пришедший от клиента, до загрузки в хранилище.

    Без content это только описание файла (его можно проверить, но не загрузить).
    Если content передан, size_bytes обязан совпадать с его длиной.
    """
    name: str
    mime_type: str
    size_bytes: int = Field(..., ge=0)
    content: Optional[bytes] = Field(default=None, repr=False)

    @model_validator(mode="after")
    def _size_matches_content(self) -> "FileUpload":
        if self.content is not None and self.size_bytes != len(self.content):
            raise ValueError(
                f"size_bytes={self.size_bytes} does not match content length {len(self.content)}"
            )
        return self

    @classmethod
    def from_bytes(cls, name: str, content: bytes, mime_type: str) -> "FileUpload":
        return cls(name=name, mime_type=mime_type, size_bytes=len(content), content=content)


class UploadedFile(BaseModel):
    storage_key: str
    bucket: str
    public_url: str
    name: str
    size_bytes: int
    mime_type: str

    def as_attachment(self) -> "Attachment":
        return Attachment(url=self.public_url, name=self.name, mime_type=self.mime_type, size_bytes=self.size_bytes)


class Attachment(BaseModel):
    url: str
    name: str
    mime_type: str
    size_bytes: int = Field(..., ge=0)

    model_config = {"frozen": True}


# Схема для добавления реплики: id и created_at назначает хранилище
class ChatTurnCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    role: ChatRole
    content: str
    attachment: Optional[Attachment] = None


class ChatTurn(ChatTurnCreate):
    id: UUID
    created_at: datetime

    model_config = {"from_attributes": True, "frozen": True}
