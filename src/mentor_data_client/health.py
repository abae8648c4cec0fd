import logging
import time
from datetime import datetime, timezone
from typing import Optional

from mentor_data_client.config import AppConfig
from mentor_data_client.models.health import DependencyStatus, HealthChecks, HealthSnapshot, HealthStatus
from mentor_data_client.repositories import ChatRepository

logger = logging.getLogger(__name__)

_PROCESS_STARTED = time.monotonic()


class HealthAggregator:
    """
    Собирает состояние зависимостей в один вердикт для /health.

    Журнал переписки проверяется коротким запросом. Отсутствие клиента
    (зависимость выключена конфигурацией) не ухудшает общий статус,
    а упавшая проба переводит сервис в degraded.
    """

    def __init__(self,
                 chat_repo: Optional[ChatRepository],
                 app_config: AppConfig | None = None,
                 probe_timeout: float = 5.0,
                 started_at: float | None = None):
        self._chat_repo = chat_repo
        self._app = app_config or AppConfig()
        self._probe_timeout = probe_timeout
        self._started_at = _PROCESS_STARTED if started_at is None else started_at

    def mark_started(self, at: float | None = None):
        """
        Отсчёт uptime от запуска сервиса (вызывается из lifespan сервера),
        а не от импорта модуля. `at` в шкале time.monotonic().
        """
        self._started_at = time.monotonic() if at is None else at

    async def _check_database(self) -> DependencyStatus:
        if self._chat_repo is None:
            return DependencyStatus.not_configured
        try:
            await self._chat_repo.probe(timeout=self._probe_timeout)
        except Exception as e:
            # Причину видят только операторы, наружу уходит лишь статус
            logger.error(f"Database health check failed: {e}", exc_info=True)
            return DependencyStatus.unhealthy
        return DependencyStatus.healthy

    async def check(self) -> HealthSnapshot:
        started = time.perf_counter()
        database = await self._check_database()
        status = HealthStatus.degraded if database is DependencyStatus.unhealthy else HealthStatus.healthy
        return HealthSnapshot(
            status=status,
            timestamp=datetime.now(timezone.utc),
            uptime=round(time.monotonic() - self._started_at, 3),
            environment=self._app.environment,
            version=self._app.version,
            checks=HealthChecks(database=database),
            response_time_ms=int((time.perf_counter() - started) * 1000),
        )
