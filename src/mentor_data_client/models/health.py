from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel


class HealthStatus(str, enum.Enum):
    healthy = "healthy"
    degraded = "degraded"


class DependencyStatus(str, enum.Enum):
    healthy = "healthy"
    unhealthy = "unhealthy"
    not_configured = "not_configured"
    unknown = "unknown"


class HealthChecks(BaseModel):
    database: DependencyStatus = DependencyStatus.unknown


class HealthSnapshot(BaseModel):
    status: HealthStatus
    timestamp: datetime
    uptime: float
    environment: str
    version: str
    checks: HealthChecks
    response_time_ms: int

    def to_response(self) -> Dict[str, Any]:
        """Тело ответа /health в формате, который ждут мониторинг и балансировщик."""
        return {
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "uptime": self.uptime,
            "environment": self.environment,
            "version": self.version,
            "checks": {"database": self.checks.database.value},
            "responseTime": f"{self.response_time_ms}ms",
        }
