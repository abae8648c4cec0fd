from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

# Импортируем Base для создания/удаления таблиц
from mentor_data_client.db.base import Base
from mentor_data_client import DataClient, ChatRepository, HealthAggregator
from mentor_data_client.exceptions import ObjectExistsError
from mentor_data_client.models import ChatTurn, ChatTurnCreate


class FakeStorage:
    """Хранилище объектов в памяти с тем же интерфейсом, что у MinioRepository."""

    def __init__(self, bucket: str = "student-files-ai", fail_with: Exception | None = None):
        self.default_bucket = bucket
        self.fail_with = fail_with
        self.objects: dict[tuple[str, str], tuple[bytes, str | None]] = {}
        self.put_calls = 0

    async def put_object_once(self, object_name, data, content_type=None, bucket=None):
        self.put_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        bucket = bucket or self.default_bucket
        if (bucket, object_name) in self.objects:
            raise ObjectExistsError(object_name)
        self.objects[(bucket, object_name)] = (data, content_type)

    def public_url(self, object_name, bucket=None):
        return f"http://storage.test/{bucket or self.default_bucket}/{object_name}"


class FakeChatRepository:
    """Журнал в памяти; запоминает все попытки записи."""

    def __init__(self, fail_with: Exception | None = None, probe_error: Exception | None = None):
        self.fail_with = fail_with
        self.probe_error = probe_error
        self.append_calls: list[ChatTurnCreate] = []
        self.turns: list[ChatTurn] = []
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    async def append(self, turn: ChatTurnCreate) -> ChatTurn:
        self.append_calls.append(turn)
        if self.fail_with is not None:
            raise self.fail_with
        self._clock += timedelta(seconds=1)
        saved = ChatTurn(id=uuid4(), created_at=self._clock, **turn.model_dump())
        self.turns.append(saved)
        return saved

    async def fetch(self, user_id: str, limit: int) -> list[ChatTurn]:
        if self.fail_with is not None:
            raise self.fail_with
        own = sorted((t for t in self.turns if t.user_id == user_id), key=lambda t: t.created_at)
        return own[:limit]

    async def probe(self, timeout: float = 5.0):
        if self.probe_error is not None:
            raise self.probe_error


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def fake_chat_repo() -> FakeChatRepository:
    return FakeChatRepository()


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """
    SQLite-файл во временной папке со всеми таблицами.
    После теста таблицы удаляются, движок закрывается.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def chat_repo(db_engine) -> ChatRepository:
    return ChatRepository(async_sessionmaker(bind=db_engine, expire_on_commit=False))


@pytest_asyncio.fixture(scope="function")
async def data_client(chat_repo, storage) -> DataClient:
    """DataClient поверх настоящего журнала (SQLite) и хранилища в памяти."""
    return DataClient(chat_repo=chat_repo, minio_repo=storage, health=HealthAggregator(chat_repo))
