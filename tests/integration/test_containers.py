"""
Полный цикл на настоящих PostgreSQL и MinIO в Docker.
Запускается только при RUN_CONTAINER_TESTS=1.
"""
import os

import pytest
import pytest_asyncio
import urllib3

pytest.importorskip("testcontainers")
from testcontainers.minio import MinioContainer
from testcontainers.postgres import PostgresContainer

from mentor_data_client import DataClient, create_data_client
from mentor_data_client.config import AppConfig, DataClientConfig, MinioConfig, PostgresConfig
from mentor_data_client.db.base import Base
from mentor_data_client.models import ChatRole, DependencyStatus, FileUpload, HealthStatus, Ok

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not os.getenv("RUN_CONTAINER_TESTS"), reason="set RUN_CONTAINER_TESTS=1 to run"),
]


@pytest.fixture(scope="module")
def containers_config():
    """Запускает контейнеры один раз на модуль и отдаёт конфигурацию для фабрики."""
    postgres = PostgresContainer("postgres:15")
    minio = MinioContainer("minio/minio:latest", access_key="minioadmin", secret_key="minioadmin")
    postgres.start()
    minio.start()
    try:
        minio_config = minio.get_config()
        yield DataClientConfig(
            postgres=PostgresConfig(
                user=postgres.username,
                password=postgres.password,
                db=postgres.dbname,
                host=postgres.get_container_host_ip(),
                port=int(postgres.get_exposed_port(5432)),
            ),
            minio=MinioConfig(
                endpoint=minio_config["endpoint"].replace("http://", ""),
                access_key=minio_config["access_key"],
                secret_key=minio_config["secret_key"],
                bucket="test-bucket",
            ),
            app=AppConfig(environment="test"),
        )
    finally:
        postgres.stop()
        minio.stop()


@pytest_asyncio.fixture(scope="function")
async def live_client(containers_config) -> DataClient:
    client = create_data_client(containers_config)
    async with client.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await client.minio.check_connection()
    yield client
    async with client.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await client.aclose()


@pytest.mark.asyncio
async def test_send_message_round_trip(live_client: DataClient):
    upload = FileUpload.from_bytes("notes.txt", "конспект".encode(), "text/plain")

    sent = await live_client.send_message("student-1", "Посмотрите конспект", file=upload)
    reply = await live_client.send_message("student-1", "Посмотрел", role=ChatRole.assistant)

    assert isinstance(sent, Ok) and isinstance(reply, Ok)
    key = sent.value.attachment.url.split("/test-bucket/", 1)[1]
    assert key.startswith("student-1/") and key.endswith(".txt")
    assert await live_client.minio.object_exists(key)

    # Ссылка из реплики открывается без подписи
    resp = urllib3.PoolManager().request("GET", sent.value.attachment.url)
    assert resp.status == 200
    assert resp.data == "конспект".encode()
    assert resp.headers["Cache-Control"] == "max-age=3600"

    history = await live_client.fetch_history("student-1")
    assert isinstance(history, Ok)
    assert [t.id for t in history.value] == [sent.value.id, reply.value.id]
    assert history.value[0].attachment == sent.value.attachment


@pytest.mark.asyncio
async def test_health_against_live_store(live_client: DataClient):
    snapshot = await live_client.check_health()
    assert snapshot.checks.database is DependencyStatus.healthy
    assert snapshot.status is HealthStatus.healthy
    assert snapshot.environment == "test"
