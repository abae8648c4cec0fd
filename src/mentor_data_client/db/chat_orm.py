from datetime import timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Enum as SAEnum, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from mentor_data_client.db.base import Base, CreatedAt
from mentor_data_client.models.chat import Attachment, ChatRole, ChatTurn


class ChatTurnORM(Base):
    """
    Журнал переписки ученика с AI-наставником. Только вставка:
    строки не обновляются и не удаляются этим клиентом.
    """
    __tablename__ = "ai_interactions"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[ChatRole] = mapped_column(
        SAEnum(ChatRole, name="chat_role_enum", native_enum=False, length=16),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Вложение: либо все четыре поля, либо ни одного
    file_url: Mapped[Optional[str]] = mapped_column(Text)
    file_name: Mapped[Optional[str]] = mapped_column(String(1024))
    file_type: Mapped[Optional[str]] = mapped_column(String(255))
    file_size: Mapped[Optional[int]] = mapped_column(BigInteger)

    created_at: Mapped[CreatedAt]

    __table_args__ = (
        Index("idx_ai_interactions_user_created", "user_id", "created_at"),
    )

    def to_pydantic(self) -> ChatTurn:
        attachment = None
        if self.file_url:
            attachment = Attachment(
                url=self.file_url,
                name=self.file_name or "",
                mime_type=self.file_type or "",
                size_bytes=self.file_size or 0,
            )
        created_at = self.created_at
        # SQLite возвращает naive datetime, хранится всегда UTC
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return ChatTurn(
            id=self.id,
            user_id=self.user_id,
            role=self.role,
            content=self.content,
            attachment=attachment,
            created_at=created_at,
        )
