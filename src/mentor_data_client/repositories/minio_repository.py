import json
import logging
from io import BytesIO
from typing import Optional
from urllib.parse import quote

from minio import Minio
from minio.error import S3Error
from mentor_data_client.exceptions import MinioError, ObjectExistsError, StorageUnavailableError
from mentor_data_client.utils.minio_async import run_io_bound
from mentor_data_client.config import MinioConfig
import urllib3

logger = logging.getLogger(__name__)
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

_MISSING_CODES = {"NoSuchKey", "NoSuchObject", "ResourceNotFound"}
# Сетевые сбои, которые SDK пробрасывает как есть
_NETWORK_ERRORS = (urllib3.exceptions.HTTPError, OSError)


def public_read_policy(bucket: str) -> dict:
    """Политика бакета: любой может читать объекты, но не листинг и не запись."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"AWS": ["*"]},
                "Action": ["s3:GetObject"],
                "Resource": [f"arn:aws:s3:::{bucket}/*"],
            }
        ],
    }


class MinioRepository:
    def __init__(self, settings: MinioConfig, client: Optional[Minio] = None):
        if client is None:
            http_client = None
            if settings.secure:
                http_client = urllib3.PoolManager(
                    cert_reqs='CERT_NONE',
                )
            client = Minio(
                endpoint=settings.endpoint,
                access_key=settings.access_key,
                secret_key=settings.secret_key,
                secure=settings.secure,
                http_client=http_client
            )
        self._client = client
        self._bucket = settings.bucket
        self._public_base_url = settings.get_public_base_url()
        self._cache_control = settings.cache_control
        self._public_read = settings.public_read

    @property
    def default_bucket(self) -> str:
        return self._bucket

    async def _ensure_bucket(self, bucket: str):
        exists = await run_io_bound(self._client.bucket_exists, bucket)
        if not exists:
            logger.info(f"Creating MinIO bucket '{bucket}'")
            await run_io_bound(self._client.make_bucket, bucket)

    async def _allow_anonymous_read(self, bucket: str):
        await run_io_bound(self._client.set_bucket_policy, bucket, json.dumps(public_read_policy(bucket)))

    async def check_connection(self, bucket: str | None = None):
        """
        Проверяет соединение с MinIO, создаёт бакет при необходимости и
        (если public_read) разрешает анонимное чтение его объектов.
        """
        bucket = bucket or self._bucket
        logger.debug(f"Checking MinIO connection and bucket '{bucket}' existence...")
        try:
            await self._ensure_bucket(bucket)
            if self._public_read:
                await self._allow_anonymous_read(bucket)
            logger.debug("MinIO connection and bucket presence confirmed.")
        except S3Error as e:
            logger.error(f"MinIO connection failed: {e}")
            raise MinioError(str(e)) from e
        except _NETWORK_ERRORS as e:
            logger.error(f"MinIO is unreachable: {e}")
            raise StorageUnavailableError(str(e)) from e

    async def object_exists(self, object_name: str, bucket: str | None = None) -> bool:
        bucket = bucket or self._bucket
        try:
            await run_io_bound(self._client.stat_object, bucket, object_name)
            return True
        except S3Error as e:
            if e.code in _MISSING_CODES:
                return False
            raise MinioError(str(e)) from e
        except _NETWORK_ERRORS as e:
            raise StorageUnavailableError(str(e)) from e

    async def put_object_once(self,
                              object_name: str,
                              data: bytes,
                              content_type: str | None = None,
                              bucket: str | None = None):
        """
        Кладёт объект, только если ключа ещё нет. Существующий объект
        никогда не перезаписывается: в этом случае ObjectExistsError.
        Бакет не создаётся: его готовит check_connection (cli init),
        запись в неизвестный бакет завершается MinioError (NoSuchBucket).
        """
        bucket = bucket or self._bucket
        try:
            if await self.object_exists(object_name, bucket):
                raise ObjectExistsError(f"Object '{object_name}' already exists in bucket '{bucket}'")
            await run_io_bound(
                self._client.put_object,
                bucket,
                object_name,
                BytesIO(data),
                len(data),
                content_type=content_type or "application/octet-stream",
                metadata={"Cache-Control": self._cache_control},
            )
        except S3Error as e:
            raise MinioError(str(e)) from e
        except _NETWORK_ERRORS as e:
            raise StorageUnavailableError(str(e)) from e

    def public_url(self, object_name: str, bucket: str | None = None) -> str:
        """Постоянная ссылка на объект, вычисляется только из ключа."""
        bucket = bucket or self._bucket
        return f"{self._public_base_url}/{bucket}/{quote(object_name)}"
