# src/mentor_data_client/server/main.py
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Query, UploadFile, status
from fastapi.responses import JSONResponse

from mentor_data_client import create_data_client, logging as client_logging
from mentor_data_client.client import DataClient
from mentor_data_client.models import Err, FileUpload, HealthStatus, PersistError, UploadError
from mentor_data_client.validation import MAX_FILE_SIZE
from .deps import get_data_client
from .schemas import ChatMessageOut, HistoryResponse, SaveMessageRequest, SaveMessageResponse, UploadResponse

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate"}

UPLOAD_ERROR_STATUS = {
    UploadError.INVALID_FILE: status.HTTP_400_BAD_REQUEST,
    UploadError.UNCONFIGURED: status.HTTP_503_SERVICE_UNAVAILABLE,
    UploadError.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    UploadError.CONFLICT: status.HTTP_409_CONFLICT,
    UploadError.WRITE_FAILED: status.HTTP_502_BAD_GATEWAY,
    UploadError.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

PERSIST_ERROR_STATUS = {
    PersistError.CONNECTION_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
    PersistError.WRITE_REJECTED: status.HTTP_409_CONFLICT,
    PersistError.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

router = APIRouter(prefix="/chat", tags=["AI Mentor Chat"])
health_router = APIRouter(tags=["Health"])


def _json(model, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model.model_dump(mode="json", by_alias=True, exclude_none=True))


def _error_status(err: Err) -> int:
    if isinstance(err.error, UploadError):
        return UPLOAD_ERROR_STATUS[err.error]
    return PERSIST_ERROR_STATUS[err.error]


async def _read_upload(file: UploadFile) -> FileUpload:
    """
    Читает не больше MAX_FILE_SIZE + 1 байт. Слишком большой файл возвращается
    без содержимого, только с размером: валидатор отклонит его как "too large".
    """
    name = file.filename or "upload.bin"
    mime_type = file.content_type or "application/octet-stream"
    if file.size is not None and file.size > MAX_FILE_SIZE:
        return FileUpload(name=name, mime_type=mime_type, size_bytes=file.size)
    content = await file.read(MAX_FILE_SIZE + 1)
    if len(content) > MAX_FILE_SIZE:
        return FileUpload(name=name, mime_type=mime_type, size_bytes=file.size or len(content))
    return FileUpload.from_bytes(name=name, content=content, mime_type=mime_type)


@router.post("/attachments", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_attachment(
    data_client: Annotated[DataClient, Depends(get_data_client)],
    file: UploadFile = File(...),
    user_id: str = Form(..., alias="userId", min_length=1),
    bucket: Optional[str] = Form(None),
):
    """
    Загружает вложение в хранилище и возвращает постоянную ссылку на него.
    Реплику со ссылкой вызывающий код добавляет отдельно, после успешной загрузки.
    """
    res = await data_client.upload_attachment(await _read_upload(file), user_id, bucket)
    if isinstance(res, Err):
        return _json(UploadResponse(success=False, error=res.detail or res.error.value), _error_status(res))
    uploaded = res.value
    return _json(
        UploadResponse(
            success=True,
            url=uploaded.public_url,
            file_name=uploaded.name,
            file_size=uploaded.size_bytes,
            file_type=uploaded.mime_type,
        ),
        status.HTTP_201_CREATED,
    )


@router.post("/messages", response_model=SaveMessageResponse, status_code=status.HTTP_201_CREATED)
async def save_message(
    body: SaveMessageRequest,
    data_client: Annotated[DataClient, Depends(get_data_client)],
):
    res = await data_client.append_turn(body.to_turn())
    if isinstance(res, Err):
        return _json(SaveMessageResponse(success=False, error=res.detail or res.error.value), _error_status(res))
    return _json(SaveMessageResponse(success=True, message=ChatMessageOut.from_turn(res.value)), status.HTTP_201_CREATED)


@router.get("/messages", response_model=HistoryResponse)
async def get_history(
    data_client: Annotated[DataClient, Depends(get_data_client)],
    user_id: str = Query(..., alias="userId", min_length=1),
    limit: Optional[int] = Query(None, ge=1),
):
    """История пользователя, старые реплики первыми. При сбое хранилища возвращается пустой список."""
    res = await data_client.fetch_history(user_id, limit)
    if isinstance(res, Err):
        return _json(HistoryResponse(success=False, data=[]), status.HTTP_200_OK)
    return _json(HistoryResponse(success=True, data=[ChatMessageOut.from_turn(t) for t in res.value]), status.HTTP_200_OK)


@router.post("/send", response_model=SaveMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    data_client: Annotated[DataClient, Depends(get_data_client)],
    user_id: str = Form(..., alias="userId", min_length=1),
    content: str = Form(...),
    file: Optional[UploadFile] = File(None),
):
    """Сообщение ученика с необязательным вложением: сначала загрузка, потом запись в журнал."""
    upload = await _read_upload(file) if file is not None else None
    res = await data_client.send_message(user_id, content, upload)
    if isinstance(res, Err):
        return _json(SaveMessageResponse(success=False, error=res.detail or res.error.value), _error_status(res))
    return _json(SaveMessageResponse(success=True, message=ChatMessageOut.from_turn(res.value)), status.HTTP_201_CREATED)


async def _health_response(data_client: DataClient) -> JSONResponse:
    started = time.perf_counter()
    try:
        snapshot = await data_client.check_health()
    except Exception as e:
        logger.exception(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": "Health check failed",
                "responseTime": f"{int((time.perf_counter() - started) * 1000)}ms",
            },
            headers=NO_CACHE_HEADERS,
        )
    code = status.HTTP_200_OK if snapshot.status is HealthStatus.healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=snapshot.to_response(), headers=NO_CACHE_HEADERS)


@health_router.api_route("/health", methods=["GET", "HEAD"])
async def health(data_client: Annotated[DataClient, Depends(get_data_client)]):
    # На HEAD отдаётся тот же ответ: тело отбрасывает ASGI-сервер, заголовки совпадают с GET
    return await _health_response(data_client)


def create_app(data_client: DataClient | None = None) -> FastAPI:
    """
    Собирает приложение. Если клиент не передан, он создаётся в lifespan
    из настроек окружения и закрывается при остановке.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = data_client is None
        if owned:
            client_logging.configure()
            app.state.data_client = create_data_client()
        app.state.data_client.health.mark_started()
        try:
            yield
        finally:
            if owned:
                await app.state.data_client.aclose()

    app = FastAPI(title="AI Mentor Data API", version="1.0.0", lifespan=lifespan)
    if data_client is not None:
        app.state.data_client = data_client
    app.include_router(health_router)
    app.include_router(router)
    return app


app = create_app()
