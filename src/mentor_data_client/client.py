import logging
import time
from pathlib import Path
from typing import Optional, Union
from uuid import uuid4

from mentor_data_client.repositories import ChatRepository, MinioRepository
from mentor_data_client.health import HealthAggregator
from mentor_data_client.validation import validate_file
from mentor_data_client.models import (ChatRole,
                                       ChatTurn,
                                       ChatTurnCreate,
                                       Err,
                                       FetchError,
                                       FileUpload,
                                       HealthSnapshot,
                                       Ok,
                                       PersistError,
                                       Result,
                                       UploadedFile,
                                       UploadError,
                                       )
from mentor_data_client.exceptions import (DatabaseError,
                                           DatabaseUnavailableError,
                                           MinioError,
                                           ObjectExistsError,
                                           StorageUnavailableError,
                                           WriteRejectedError,
                                           )

DEFAULT_HISTORY_LIMIT = 50

logger = logging.getLogger(__name__)


def build_storage_key(user_id: str, file_name: str, now_ms: Optional[int] = None) -> str:
    """
    <user_id>/<epoch_ms>-<random>.<ext>

    Случайная часть разводит загрузки одного пользователя в одну и ту же
    миллисекунду: координации между загрузками нет.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    ext = Path(file_name).suffix.lower().lstrip('.') or "bin"
    return f"{user_id}/{now_ms}-{uuid4().hex}.{ext}"


class DataClient:
    """
    Единая точка доступа для бизнес-логики чата с наставником.

    Репозитории передаются снаружи (см. create_data_client). Отсутствующий
    репозиторий означает, что зависимость не настроена: операции записи
    возвращают типизированную ошибку, health отдаёт not_configured.
    """

    def __init__(
        self,
        chat_repo: ChatRepository | None = None,
        minio_repo: MinioRepository | None = None,
        health: HealthAggregator | None = None,
        default_history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.chat_repo = chat_repo
        self.minio = minio_repo
        self.health = health or HealthAggregator(chat_repo)
        self.default_history_limit = default_history_limit
        self.engine = None

    async def aclose(self):
        """Закрывает ресурсы; фабрика подменяет на dispose движка."""

    # ――― upload ――― #

    async def upload_attachment(self,
                                file: FileUpload,
                                user_id: str,
                                bucket: str | None = None) -> Result[UploadedFile, UploadError]:
        """
        Проверяет файл и кладёт его в хранилище под новым уникальным ключом.
        Повторных попыток нет: решение о retry принимает вызывающий код.
        """
        if not user_id:
            raise ValueError("user_id must be a non-empty string")

        verdict = validate_file(file)
        if not verdict.valid:
            return Err(UploadError.INVALID_FILE, verdict.reason)
        if file.content is None:
            raise ValueError("file content is required for upload")

        if self.minio is None:
            logger.error("Attachment upload requested but object storage is not configured")
            return Err(UploadError.UNCONFIGURED, "Storage not configured")

        bucket = bucket or self.minio.default_bucket
        key = build_storage_key(user_id, file.name)
        logger.info(f"Uploading attachment '{file.name}' ({file.size_bytes} bytes) to {bucket}/{key}")
        try:
            await self.minio.put_object_once(key, file.content, content_type=file.mime_type, bucket=bucket)
        except ObjectExistsError as e:
            logger.warning(f"Storage key collision, refusing to overwrite: {e}")
            return Err(UploadError.CONFLICT, str(e))
        except StorageUnavailableError as e:
            logger.error(f"Object storage unreachable: {e}")
            return Err(UploadError.UNAVAILABLE, "Storage unavailable")
        except MinioError as e:
            logger.error(f"Upload error: {e}")
            return Err(UploadError.WRITE_FAILED, str(e))
        except Exception as e:
            logger.exception(f"File upload error: {e}")
            return Err(UploadError.UNKNOWN, "Upload failed")

        return Ok(UploadedFile(
            storage_key=key,
            bucket=bucket,
            public_url=self.minio.public_url(key, bucket),
            name=file.name,
            size_bytes=file.size_bytes,
            mime_type=file.mime_type,
        ))

    # ――― chat log ――― #

    async def append_turn(self, turn: ChatTurnCreate) -> Result[ChatTurn, PersistError]:
        """Добавляет реплику в журнал. id и created_at назначает хранилище."""
        if self.chat_repo is None:
            logger.error("Chat turn append requested but the log store is not configured")
            return Err(PersistError.CONNECTION_FAILED, "Database connection failed")
        try:
            saved = await self.chat_repo.append(turn)
        except DatabaseUnavailableError as e:
            logger.error(f"Error saving chat message: {e}")
            return Err(PersistError.CONNECTION_FAILED, "Database connection failed")
        except WriteRejectedError as e:
            logger.error(f"Error saving chat message: {e}")
            return Err(PersistError.WRITE_REJECTED, "Message rejected by the store")
        except DatabaseError as e:
            logger.error(f"Error saving chat message: {e}")
            return Err(PersistError.INTERNAL_ERROR, "Failed to save message")
        except Exception as e:
            logger.exception(f"Error saving chat message: {e}")
            return Err(PersistError.INTERNAL_ERROR, "Failed to save message")
        logger.debug(f"Saved chat turn {saved.id} for user {saved.user_id}")
        return Ok(saved)

    async def fetch_history(self,
                            user_id: str,
                            limit: int | None = None) -> Result[list[ChatTurn], FetchError]:
        """
        Старейшие `limit` реплик пользователя в порядке разговора.
        Ошибка хранилища не пробрасывается, а возвращается как Err.
        """
        if limit is None:
            limit = self.default_history_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")

        if self.chat_repo is None:
            logger.error("Chat history requested but the log store is not configured")
            return Err(FetchError.CONNECTION_FAILED)
        try:
            turns = await self.chat_repo.fetch(user_id, limit)
        except DatabaseUnavailableError as e:
            logger.error(f"Error fetching chat history: {e}")
            return Err(FetchError.CONNECTION_FAILED)
        except DatabaseError as e:
            logger.error(f"Error fetching chat history: {e}")
            return Err(FetchError.QUERY_FAILED)
        except Exception as e:
            logger.exception(f"Error fetching chat history: {e}")
            return Err(FetchError.INTERNAL_ERROR)
        return Ok(turns)

    # ――― atomic high-level ops ――― #

    async def send_message(self,
                           user_id: str,
                           content: str,
                           file: FileUpload | None = None,
                           role: ChatRole = ChatRole.user,
                           bucket: str | None = None) -> Result[ChatTurn, Union[UploadError, PersistError]]:
        """
        Загружает вложение (если есть) и только после успешной загрузки
        добавляет реплику со ссылкой на него.

        - Ошибка загрузки: реплика не создаётся, возвращается ошибка загрузки.
        - Ошибка записи после загрузки: объект остаётся в хранилище без ссылки
          (сирота). Ключ попадает в лог, автоматической очистки нет.
        """
        uploaded: UploadedFile | None = None
        if file is not None:
            upload = await self.upload_attachment(file, user_id, bucket)
            if isinstance(upload, Err):
                return upload
            uploaded = upload.value

        turn = ChatTurnCreate(
            user_id=user_id,
            role=role,
            content=content,
            attachment=uploaded.as_attachment() if uploaded else None,
        )
        res = await self.append_turn(turn)
        if isinstance(res, Err) and uploaded is not None:
            logger.error(
                f"Chat turn was not saved; uploaded object {uploaded.bucket}/{uploaded.storage_key} is now orphaned"
            )
        return res

    # ――― health ――― #

    async def check_health(self) -> HealthSnapshot:
        return await self.health.check()
