# mentor_data_client/db/__init__.py

from .base import Base
from .chat_orm import ChatTurnORM


__all__ = [
    "Base",
    "ChatTurnORM",
]
