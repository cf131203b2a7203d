"""
Integration tests for the HTTP status surface.
"""

import asyncio
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from flywheel_queue.api.main import create_app
from flywheel_queue.config import Settings
from flywheel_queue.worker.handlers import DIAGNOSTICS_QUEUE_NAME, register_builtin_handlers
from flywheel_queue.worker.registry import QueueRegistry


@pytest_asyncio.fixture
async def registry(test_settings: Settings) -> AsyncGenerator[QueueRegistry]:
    registry = QueueRegistry(test_settings)
    register_builtin_handlers(registry.create(DIAGNOSTICS_QUEUE_NAME))
    tiny = registry.create("tiny", concurrency=1, max_pending=1)

    async def block(payload, job):
        await asyncio.Event().wait()

    tiny.register_handler("block", block)
    yield registry
    await registry.shutdown()


@pytest_asyncio.fixture
async def app(registry: QueueRegistry, test_settings: Settings) -> FastAPI:
    return create_app(registry=registry, settings=test_settings)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestHealth:
    """Tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["queues"] == 2

    @pytest.mark.asyncio
    async def test_health_degraded_after_shutdown(self, client: AsyncClient, registry: QueueRegistry):
        await registry.get("tiny").shutdown()

        response = await client.get("/health")

        assert response.json()["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_live(self, client: AsyncClient):
        response = await client.get("/live")

        assert response.status_code == 200
        assert response.json() == {"alive": True}

    @pytest.mark.asyncio
    async def test_metrics(self, client: AsyncClient):
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")


class TestQueueRoutes:
    """Tests for queue stats, submission and status polling."""

    async def _wait_for_status(self, client: AsyncClient, job_id: str, status: str) -> dict:
        for _ in range(200):
            response = await client.get(f"/v1/queues/diagnostics/jobs/{job_id}")
            data = response.json()
            if data["status"] == status:
                return data
            await asyncio.sleep(0.01)
        pytest.fail(f"job {job_id} never reached {status}")

    @pytest.mark.asyncio
    async def test_list_queues(self, client: AsyncClient):
        response = await client.get("/v1/queues")

        assert response.status_code == 200
        names = [q["name"] for q in response.json()["queues"]]
        assert names == ["diagnostics", "tiny"]

    @pytest.mark.asyncio
    async def test_submit_and_poll(self, client: AsyncClient):
        response = await client.post(
            "/v1/queues/diagnostics/jobs",
            json={"type": "echo", "payload": {"message": "hi"}, "priority": 2},
        )

        assert response.status_code == 202
        job = response.json()
        assert job["status"] == "queued"
        assert job["priority"] == 2
        assert job["id"].startswith("diagnostics_")

        data = await self._wait_for_status(client, job["id"], "completed")
        assert data["result"] == {"echo": {"message": "hi"}}
        assert data["attempts"] == 1

    @pytest.mark.asyncio
    async def test_flaky_job_retried(self, client: AsyncClient):
        response = await client.post(
            "/v1/queues/diagnostics/jobs",
            json={"type": "flaky", "payload": {"succeed_on": 2}},
        )
        job_id = response.json()["id"]

        data = await self._wait_for_status(client, job_id, "completed")
        assert data["attempts"] == 2
        assert data["error"] == "Flaky failure on attempt 1"

    @pytest.mark.asyncio
    async def test_failed_job_reports_error(self, client: AsyncClient):
        response = await client.post("/v1/queues/diagnostics/jobs", json={"type": "fail"})
        job_id = response.json()["id"]

        data = await self._wait_for_status(client, job_id, "failed")
        assert data["attempts"] == 3
        assert data["error"] == "Intentional failure on attempt 3"

        stats = (await client.get("/v1/queues/diagnostics/stats")).json()
        assert stats["failed"] == 1

    @pytest.mark.asyncio
    async def test_unregistered_type_accepted(self, client: AsyncClient):
        response = await client.post("/v1/queues/diagnostics/jobs", json={"type": "nope"})

        assert response.status_code == 202
        data = await self._wait_for_status(client, response.json()["id"], "failed")
        assert "No handler registered" in data["error"]

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient):
        response = await client.get("/v1/queues/diagnostics/stats")

        assert response.status_code == 200
        assert response.json() == {
            "name": "diagnostics",
            "queued": 0,
            "active": 0,
            "processed": 0,
            "failed": 0,
        }

    @pytest.mark.asyncio
    async def test_unknown_queue(self, client: AsyncClient):
        response = await client.get("/v1/queues/nope/stats")

        assert response.status_code == 404
        assert response.json()["detail"] == "Unknown queue: nope"

    @pytest.mark.asyncio
    async def test_unknown_job(self, client: AsyncClient):
        response = await client.get("/v1/queues/diagnostics/jobs/diagnostics_0_missing")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_request(self, client: AsyncClient):
        response = await client.post("/v1/queues/diagnostics/jobs", json={"payload": {}})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_queue_full(self, client: AsyncClient, registry: QueueRegistry):
        """With the only slot busy, a second waiting job exceeds max_pending=1."""
        first = await client.post("/v1/queues/tiny/jobs", json={"type": "block"})
        await asyncio.sleep(0.01)
        second = await client.post("/v1/queues/tiny/jobs", json={"type": "block"})
        third = await client.post("/v1/queues/tiny/jobs", json={"type": "block"})

        assert first.status_code == 202
        assert second.status_code == 202
        assert third.status_code == 429
        assert "is full" in third.json()["detail"]

        stats = registry.get("tiny").get_stats()
        assert stats.active == 1
        assert stats.queued == 1

    @pytest.mark.asyncio
    async def test_queue_closed(self, client: AsyncClient, registry: QueueRegistry):
        await registry.get("tiny").shutdown()

        response = await client.post("/v1/queues/tiny/jobs", json={"type": "noop"})

        assert response.status_code == 503
