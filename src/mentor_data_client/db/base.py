from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Annotated
import threading
from datetime import datetime, timedelta, timezone

from sqlalchemy import MetaData, DateTime
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, mapped_column

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)


_clock_lock = threading.Lock()
_last_issued: datetime | None = None


def utcnow() -> datetime:
    """
    Текущее время UTC, строго возрастающее в пределах процесса: при совпадении
    с предыдущим значением сдвигается на 1 мкс. Реплики одного процесса
    читаются в порядке вставки даже внутри одной микросекунды.
    """
    global _last_issued
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if _last_issued is not None and now <= _last_issued:
            now = _last_issued + timedelta(microseconds=1)
        _last_issued = now
        return now

# Время ставится в момент INSERT с точностью до микросекунд: по нему упорядочен журнал
CreatedAt = Annotated[datetime, mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)]

@asynccontextmanager
async def get_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
