from .minio_repository import MinioRepository
from .pg_repositoryChat import ChatRepository

__all__ = [
    "MinioRepository",
    "ChatRepository",
]
