import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from mentor_data_client.db.base import get_session
from mentor_data_client.db.chat_orm import ChatTurnORM
from mentor_data_client.exceptions import DatabaseError, DatabaseUnavailableError, WriteRejectedError
from mentor_data_client.models.chat import ChatTurn, ChatTurnCreate

logger = logging.getLogger(__name__)


def _wrap_db_error(e: Exception, action: str) -> DatabaseError:
    """Переводит ошибку драйвера в исключение клиента нужного вида."""
    if isinstance(e, IntegrityError):
        return WriteRejectedError(f"{action}: {e}")
    if isinstance(e, (OperationalError, InterfaceError)) or (
        isinstance(e, DBAPIError) and e.connection_invalidated
    ):
        return DatabaseUnavailableError(f"{action}: {e}")
    if isinstance(e, (OSError, asyncio.TimeoutError)):
        return DatabaseUnavailableError(f"{action}: {e}")
    return DatabaseError(f"{action}: {e}")


class ChatRepository:
    """Журнал реплик чата: только добавление и упорядоченное чтение."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def append(self, turn: ChatTurnCreate) -> ChatTurn:
        attachment = turn.attachment
        orm = ChatTurnORM(
            user_id=turn.user_id,
            role=turn.role,
            content=turn.content,
            file_url=attachment.url if attachment else None,
            file_name=attachment.name if attachment else None,
            file_type=attachment.mime_type if attachment else None,
            file_size=attachment.size_bytes if attachment else None,
        )
        try:
            async with get_session(self._session_factory) as session:
                try:
                    session.add(orm)
                    await session.commit()
                    await session.refresh(orm)
                    return orm.to_pydantic()
                except SQLAlchemyError:
                    await session.rollback()
                    raise
        except (SQLAlchemyError, OSError) as e:
            raise _wrap_db_error(e, f"Failed to append chat turn for user {turn.user_id}") from e

    async def fetch(self, user_id: str, limit: int) -> list[ChatTurn]:
        """Самые старые `limit` реплик пользователя, по возрастанию created_at."""
        try:
            async with get_session(self._session_factory) as session:
                q = (
                    select(ChatTurnORM)
                    .where(ChatTurnORM.user_id == user_id)
                    .order_by(ChatTurnORM.created_at.asc(), ChatTurnORM.id.asc())
                    .limit(limit)
                )
                rows = await session.execute(q)
                return [o.to_pydantic() for o in rows.scalars().all()]
        except (SQLAlchemyError, OSError) as e:
            raise _wrap_db_error(e, f"Failed to fetch chat history for user {user_id}") from e

    async def probe(self, timeout: float = 5.0):
        """Минимальный запрос к известной таблице: одна строка, ограничение по времени."""
        logger.debug("Probing chat log store...")

        async def _probe():
            async with get_session(self._session_factory) as session:
                await session.execute(select(ChatTurnORM.id).limit(1))

        try:
            await asyncio.wait_for(_probe(), timeout=timeout)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            raise _wrap_db_error(e, "Chat log store probe failed") from e
        logger.debug("Chat log store is reachable.")
