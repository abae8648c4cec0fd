class DataClientError(Exception):
    """Base class."""


class DatabaseError(DataClientError):
    pass


class DatabaseUnavailableError(DatabaseError):
    """Журнал переписки недоступен (нет соединения, таймаут)."""


class WriteRejectedError(DatabaseError):
    """Запись отклонена ограничением целостности."""


class MinioError(DataClientError):
    pass


class StorageUnavailableError(MinioError):
    """Хранилище объектов недоступно по сети."""


class ObjectExistsError(MinioError):
    """Объект с таким ключом уже существует, перезапись запрещена."""
