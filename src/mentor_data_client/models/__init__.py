from .chat import ChatRole, FileUpload, UploadedFile, Attachment, ChatTurnCreate, ChatTurn
from .health import HealthStatus, DependencyStatus, HealthChecks, HealthSnapshot
from .result import Ok, Err, Result, UploadError, PersistError, FetchError

__all__ = [
    "ChatRole", "FileUpload", "UploadedFile", "Attachment", "ChatTurnCreate", "ChatTurn",
    "HealthStatus", "DependencyStatus", "HealthChecks", "HealthSnapshot",
    "Ok", "Err", "Result", "UploadError", "PersistError", "FetchError",
]
