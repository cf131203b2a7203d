"""
Integration tests for queue processing: registry, boost queue and
diagnostic handlers working together.
"""

import asyncio
from typing import Any

import pytest
import pytest_asyncio

from flywheel_queue.boost import Blog, BoostPipeline, BoostRequest, Product, Tweet, create_boost_queue, queue_boost
from flywheel_queue.config import Settings
from flywheel_queue.constants import BOOST_JOB_TYPE, BOOST_QUEUE_NAME, JobStatus
from flywheel_queue.errors import UnknownQueueError
from flywheel_queue.worker.handlers import register_builtin_handlers
from flywheel_queue.worker.registry import QueueRegistry


class StaticSearch:
    async def search(self, keywords: str, limit: int) -> list[Blog]:
        return [Blog(title="Mugs", url="https://blog.example/mugs")]


class StaticGenerator:
    async def generate(self, product: Product, blog: Blog) -> str:
        return f"{product.name}: [BLOG_LINK]"


class FlakyPoster:
    """Fails the first `failures` posts, then succeeds."""

    def __init__(self, failures: int):
        self.failures = failures
        self.attempts = 0

    async def post(self, text: str) -> Tweet:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionError(f"twitter unavailable ({self.attempts})")
        return Tweet(tweet_id=str(self.attempts), tweet_url=f"https://twitter.com/x/status/{self.attempts}")


class MemoryOrders:
    def __init__(self) -> None:
        self.orders: dict[str, dict[str, Any]] = {}

    async def get(self, session_id: str) -> dict[str, Any] | None:
        return self.orders.get(session_id)

    async def set(self, session_id: str, order: dict[str, Any]) -> None:
        self.orders[session_id] = order


class TestQueueRegistry:
    """Integration tests for the queue registry."""

    @pytest_asyncio.fixture
    async def registry(self, test_settings: Settings):
        registry = QueueRegistry(test_settings)
        yield registry
        await registry.shutdown()

    @pytest.mark.asyncio
    async def test_create_uses_settings(self, registry: QueueRegistry):
        queue = registry.create("diagnostics")

        assert queue.concurrency == 2
        assert queue.max_retries == 2
        assert queue.retry_delay_ms == 10
        assert "diagnostics" in registry
        assert registry.get("diagnostics") is queue

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected(self, registry: QueueRegistry):
        registry.create("diagnostics")

        with pytest.raises(ValueError):
            registry.create("diagnostics")

    @pytest.mark.asyncio
    async def test_unknown_queue(self, registry: QueueRegistry):
        with pytest.raises(UnknownQueueError) as exc_info:
            registry.get("nope")

        assert exc_info.value.to_dict()["context"] == {"queue": "nope"}

    @pytest.mark.asyncio
    async def test_queues_are_independent(self, registry: QueueRegistry):
        """Each queue has its own handlers and counters."""
        first = register_builtin_handlers(registry.create("first"))
        second = registry.create("second")

        first.submit("echo", 1)
        second.submit("echo", 2)
        await asyncio.wait_for(asyncio.gather(first.join(), second.join()), 5)

        stats = {s.name: s for s in registry.stats()}
        assert stats["first"].processed == 1
        assert stats["first"].failed == 0
        assert stats["second"].processed == 0
        assert stats["second"].failed == 1

    @pytest.mark.asyncio
    async def test_shutdown_closes_every_queue(self, registry: QueueRegistry):
        registry.create("a")
        registry.create("b")

        await registry.shutdown()

        assert all(queue.closed for queue in registry)


class TestBoostQueue:
    """Integration tests for boosts published through the queue."""

    @pytest_asyncio.fixture
    async def orders(self) -> MemoryOrders:
        orders = MemoryOrders()
        orders.orders["cs_1"] = {"status": "paid"}
        return orders

    @pytest.mark.asyncio
    async def test_boost_retried_until_published(self, test_settings: Settings, orders: MemoryOrders, metrics):
        """A transient Twitter failure is retried and the order ends published."""
        poster = FlakyPoster(failures=1)
        pipeline = BoostPipeline(StaticSearch(), StaticGenerator(), poster, orders)
        queue = create_boost_queue(pipeline, test_settings, metrics=metrics)

        try:
            assert queue.name == BOOST_QUEUE_NAME
            assert queue.list_handlers() == [BOOST_JOB_TYPE]

            job = queue_boost(
                queue,
                BoostRequest(session_id="cs_1", product=Product(name="Mug", keywords="mugs"), priority=3),
            )
            assert job.priority == 3
            assert "priority" not in job.payload
            assert job.payload["source"] == "paid"

            await asyncio.wait_for(queue.join(), 5)

            snapshot = queue.get_status(job.id)
            assert snapshot.status == JobStatus.COMPLETED
            assert snapshot.attempts == 2
            assert snapshot.result["tweet_id"] == "2"

            order = orders.orders["cs_1"]
            assert order["status"] == "published"
            assert order["content"] == "Mug: https://blog.example/mugs"
        finally:
            await queue.shutdown()

    @pytest.mark.asyncio
    async def test_boost_permanently_failed(self, test_settings: Settings, orders: MemoryOrders, metrics):
        """After the retry budget the job fails and the order records the last error."""
        poster = FlakyPoster(failures=10)
        pipeline = BoostPipeline(StaticSearch(), StaticGenerator(), poster, orders)
        queue = create_boost_queue(pipeline, test_settings, metrics=metrics)

        try:
            job = queue_boost(queue, BoostRequest(session_id="cs_1", content="Prewritten", source=""))
            assert job.payload["source"] == "paid"
            await asyncio.wait_for(queue.join(), 5)

            snapshot = queue.get_status(job.id)
            assert snapshot.status == JobStatus.FAILED
            assert snapshot.attempts == test_settings.queue_retries + 1
            assert snapshot.error == "twitter unavailable (3)"
            assert poster.attempts == 3

            assert orders.orders["cs_1"]["status"] == "failed"
            assert queue.get_stats().failed == 1
        finally:
            await queue.shutdown()
