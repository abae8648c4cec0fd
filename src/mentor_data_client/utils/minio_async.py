import asyncio
from functools import partial
from typing import Callable, TypeVar

T = TypeVar("T")


async def run_io_bound(func: Callable[..., T], *args, **kwargs) -> T:
    """
    Выполняет блокирующий вызов SDK MinIO в пуле потоков по умолчанию,
    чтобы загрузка вложения не останавливала event loop.
    Исключения вызова пробрасываются как есть.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))
