# Файл: src/mentor_data_client/config.py

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

# --- 1. Настройки PostgreSQL (журнал переписки) ---
class PostgresConfig(BaseModel):
    enabled: bool = True
    user: str = "postgres"
    password: str = "postgres"
    host: str = "localhost"
    port: int = 5432
    db: str = "mentor"
    # Полный DSN, если нужен другой драйвер (например, sqlite+aiosqlite для локального запуска)
    dsn: Optional[str] = None

    pool_size: int = 5
    max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True
    application_name: str = "mentor_data_client"

    def get_pg_dsn(self) -> str:
        """Собирает DSN для SQLAlchemy из полей этого объекта."""
        if self.dsn:
            return self.dsn
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"

    def is_postgres(self) -> bool:
        return self.get_pg_dsn().startswith("postgresql")


# --- 2. Настройки MinIO (вложения чата) ---
class MinioConfig(BaseModel):
    enabled: bool = True
    endpoint: str = "localhost:9000"
    access_key: str = "minioadmin"
    secret_key: str = "minioadmin"
    bucket: str = "student-files-ai"
    secure: bool = False
    # Базовый адрес, с которого файлы отдаются наружу (CDN, reverse proxy)
    public_base_url: Optional[str] = None
    cache_control: str = "max-age=3600"
    # Анонимное чтение объектов бакета: public_url отдаётся наружу без подписи.
    # Если false, public_base_url должен указывать на прокси, который сам читает бакет.
    public_read: bool = True

    def get_public_base_url(self) -> str:
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.endpoint}"


# --- 3. Параметры приложения, попадающие в /health ---
class AppConfig(BaseModel):
    environment: str = "development"
    version: str = "1.0.0"


class ChatConfig(BaseModel):
    default_history_limit: int = Field(50, gt=0)
    health_probe_timeout: float = Field(5.0, gt=0)


# --- 4. Явная передача конфигурации одной переменной ---
class DataClientConfig(BaseModel):
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    minio: MinioConfig = Field(default_factory=MinioConfig)
    app: AppConfig = Field(default_factory=AppConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)


# --- 5. Чтение из .env / окружения: POSTGRES__HOST, MINIO__BUCKET, APP__ENVIRONMENT ... ---
class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    minio: MinioConfig = Field(default_factory=MinioConfig)
    app: AppConfig = Field(default_factory=AppConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)

    def to_client_config(self) -> DataClientConfig:
        return DataClientConfig(postgres=self.postgres, minio=self.minio, app=self.app, chat=self.chat)


# --- Ленивая инициализация ---
_cached_settings: Optional[Settings] = None

def get_settings() -> Settings:
    """
    Возвращает синглтон-экземпляр настроек, создавая его при первом вызове.
    Это предотвращает ошибки валидации при импорте.
    """
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = Settings()
    return _cached_settings
