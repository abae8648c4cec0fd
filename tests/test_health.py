"""Tests for the dependency health aggregator and the /health endpoint."""

import asyncio
import time
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from mentor_data_client import DataClient, HealthAggregator
from mentor_data_client.config import AppConfig
from mentor_data_client.exceptions import DatabaseUnavailableError
from mentor_data_client.models import DependencyStatus, HealthChecks, HealthSnapshot, HealthStatus
from mentor_data_client.server.main import create_app
from conftest import FakeChatRepository

NO_CACHE = "no-cache, no-store, must-revalidate"


class TestHealthAggregator:
    @pytest.mark.asyncio
    async def test_healthy_store(self, chat_repo):
        snapshot = await HealthAggregator(chat_repo, AppConfig(environment="test", version="9.9.9")).check()

        assert snapshot.status is HealthStatus.healthy
        assert snapshot.checks.database is DependencyStatus.healthy
        assert snapshot.environment == "test"
        assert snapshot.version == "9.9.9"
        assert snapshot.response_time_ms >= 0
        assert snapshot.uptime >= 0
        assert snapshot.timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_not_configured_does_not_degrade(self):
        snapshot = await HealthAggregator(None).check()
        assert snapshot.checks.database is DependencyStatus.not_configured
        assert snapshot.status is HealthStatus.healthy

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        DatabaseUnavailableError("connection refused"),
        asyncio.TimeoutError(),
        RuntimeError("driver exploded"),
    ])
    async def test_probe_failure_is_contained(self, error):
        snapshot = await HealthAggregator(FakeChatRepository(probe_error=error)).check()
        assert snapshot.checks.database is DependencyStatus.unhealthy
        assert snapshot.status is HealthStatus.degraded

    @pytest.mark.asyncio
    async def test_uptime_counts_from_start(self):
        aggregator = HealthAggregator(None, started_at=time.monotonic() - 100)
        assert (await aggregator.check()).uptime >= 100

        aggregator.mark_started()
        assert (await aggregator.check()).uptime < 100

    @pytest.mark.asyncio
    async def test_response_body_shape(self):
        snapshot = await HealthAggregator(None, AppConfig(environment="production", version="2.0.0")).check()
        body = snapshot.to_response()
        assert set(body) == {"status", "timestamp", "uptime", "environment", "version", "checks", "responseTime"}
        assert body["checks"] == {"database": "not_configured"}
        assert body["responseTime"].endswith("ms")


def _client(repo) -> TestClient:
    data_client = DataClient(chat_repo=repo, health=HealthAggregator(repo))
    return TestClient(create_app(data_client))


class TestHealthEndpoint:
    def test_healthy(self):
        resp = _client(FakeChatRepository()).get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"] == "healthy"
        assert resp.headers["cache-control"] == NO_CACHE
        assert "version" in data and "uptime" in data and "environment" in data

    def test_probe_throws(self):
        resp = _client(FakeChatRepository(probe_error=ConnectionError("DB down"))).get("/health")
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"] == "unhealthy"
        assert "DB down" not in resp.text
        assert resp.headers["cache-control"] == NO_CACHE

    def test_no_store_client(self):
        resp = _client(None).get("/health")
        assert resp.status_code == 200
        assert resp.json()["checks"]["database"] == "not_configured"

    @pytest.mark.parametrize("status, database", [
        (HealthStatus.healthy, DependencyStatus.healthy),
        (HealthStatus.degraded, DependencyStatus.unhealthy),
        (HealthStatus.healthy, DependencyStatus.not_configured),
    ])
    def test_head_matches_get(self, status, database):
        snapshot = HealthSnapshot(
            status=status,
            timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
            uptime=12.5,
            environment="test",
            version="1.0.0",
            checks=HealthChecks(database=database),
            response_time_ms=3,
        )
        data_client = DataClient()

        async def _fixed():
            return snapshot

        data_client.check_health = _fixed
        client = TestClient(create_app(data_client))
        get = client.get("/health")
        head = client.head("/health")

        assert head.status_code == get.status_code
        assert head.content == b""
        assert int(get.headers["content-length"]) == len(get.content) > 0
        drop = {"date"}
        assert {k: v for k, v in head.headers.items() if k not in drop} == \
               {k: v for k, v in get.headers.items() if k not in drop}

    @pytest.mark.parametrize("repo", [FakeChatRepository(), FakeChatRepository(probe_error=ConnectionError("down")), None])
    def test_head_status_follows_store(self, repo):
        client = _client(repo)
        get = client.get("/health")
        head = client.head("/health")

        assert head.status_code == get.status_code
        assert head.content == b""
        assert int(head.headers["content-length"]) > 0
        for header in ("cache-control", "content-type"):
            assert head.headers[header] == get.headers[header]

    def test_internal_failure_still_responds(self):
        data_client = DataClient(chat_repo=FakeChatRepository())

        async def _broken():
            raise RuntimeError("aggregator bug")

        data_client.check_health = _broken
        resp = TestClient(create_app(data_client)).get("/health")

        assert resp.status_code == 503
        assert resp.json()["status"] == "unhealthy"
        assert resp.headers["cache-control"] == NO_CACHE

    def test_uptime_restarts_with_server(self):
        repo = FakeChatRepository()
        data_client = DataClient(chat_repo=repo, health=HealthAggregator(repo, started_at=time.monotonic() - 1000))

        with TestClient(create_app(data_client)) as client:
            uptime = client.get("/health").json()["uptime"]

        assert uptime < 1000
