# Файл: src/mentor_data_client/__init__.py

from typing import Optional
from minio import Minio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from .client import DataClient, build_storage_key
from .config import get_settings, DataClientConfig, PostgresConfig, MinioConfig, AppConfig, ChatConfig
from .health import HealthAggregator
from .repositories.minio_repository import MinioRepository
from .repositories.pg_repositoryChat import ChatRepository
from .validation import validate_file, ValidationResult, MAX_FILE_SIZE, ALLOWED_MIME_TYPES
from .models import *

from .exceptions import *

def create_data_client(config: Optional[DataClientConfig] = None,
                       minio_client: Optional[Minio] = None) -> DataClient:
    """
    Фабричная функция для создания и конфигурации DataClient.
    Вызывается один раз в точке входа (lifespan сервера, команда CLI).

    :param config: Единый объект с настройками.
                   Если не предоставлен, используются переменные окружения.
    :param minio_client: Готовый клиент MinIO (например, в тестах).
    :return: Сконфигурированный экземпляр DataClient.
    """
    if config is None:
        # Получаем настройки только когда они нужны
        config = get_settings().to_client_config()

    engine = None
    chat_repo = None
    if config.postgres.enabled:
        engine_kwargs = {"pool_pre_ping": config.postgres.pool_pre_ping}
        if config.postgres.is_postgres():
            engine_kwargs.update(
                pool_size=config.postgres.pool_size,
                max_overflow=config.postgres.max_overflow,
                pool_timeout=config.postgres.pool_timeout,
                pool_recycle=config.postgres.pool_recycle,
                connect_args={
                    "server_settings": {
                        "application_name": config.postgres.application_name
                    }
                },
            )
        engine = create_async_engine(config.postgres.get_pg_dsn(), **engine_kwargs)
        session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
        chat_repo = ChatRepository(session_factory)

    minio_repo = None
    if config.minio.enabled:
        minio_repo = MinioRepository(config.minio, client=minio_client)

    health = HealthAggregator(chat_repo, config.app, probe_timeout=config.chat.health_probe_timeout)

    client = DataClient(
        chat_repo=chat_repo,
        minio_repo=minio_repo,
        health=health,
        default_history_limit=config.chat.default_history_limit,
    )
    client.engine = engine
    if engine is not None:
        async def _aclose():
            await engine.dispose()
        client.aclose = _aclose

    return client

__all__ = [
    "DataClient", "create_data_client", "build_storage_key", "HealthAggregator",
    "DataClientConfig", "PostgresConfig", "MinioConfig", "AppConfig", "ChatConfig",
    "ChatRepository", "MinioRepository",
    "validate_file", "ValidationResult", "MAX_FILE_SIZE", "ALLOWED_MIME_TYPES",
    "ChatRole", "FileUpload", "UploadedFile", "Attachment", "ChatTurnCreate", "ChatTurn",
    "HealthStatus", "DependencyStatus", "HealthSnapshot",
    "Ok", "Err", "Result", "UploadError", "PersistError", "FetchError",
    "DataClientError", "DatabaseError", "DatabaseUnavailableError", "WriteRejectedError",
    "MinioError", "StorageUnavailableError", "ObjectExistsError",
]
