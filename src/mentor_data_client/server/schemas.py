from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mentor_data_client.models.chat import Attachment, ChatRole, ChatTurn, ChatTurnCreate


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadResponse(CamelModel):
    success: bool
    url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    error: Optional[str] = None


# Плоский формат вложения, как его присылает фронтенд
class SaveMessageRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
    role: ChatRole
    content: str
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)

    def to_turn(self) -> ChatTurnCreate:
        attachment = None
        if self.file_url:
            attachment = Attachment(
                url=self.file_url,
                name=self.file_name or self.file_url.rsplit("/", 1)[-1],
                mime_type=self.file_type or "application/octet-stream",
                size_bytes=self.file_size or 0,
            )
        return ChatTurnCreate(user_id=self.user_id, role=self.role, content=self.content, attachment=attachment)


class ChatMessageOut(CamelModel):
    id: str
    user_id: str
    role: ChatRole
    content: str
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    created_at: str

    @classmethod
    def from_turn(cls, turn: ChatTurn) -> "ChatMessageOut":
        a = turn.attachment
        return cls(
            id=str(turn.id),
            user_id=turn.user_id,
            role=turn.role,
            content=turn.content,
            file_url=a.url if a else None,
            file_name=a.name if a else None,
            file_type=a.mime_type if a else None,
            file_size=a.size_bytes if a else None,
            created_at=turn.created_at.isoformat(),
        )


class SaveMessageResponse(CamelModel):
    success: bool
    message: Optional[ChatMessageOut] = None
    error: Optional[str] = None


class HistoryResponse(CamelModel):
    success: bool
    data: List[ChatMessageOut] = Field(default_factory=list)
