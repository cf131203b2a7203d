"""
Boost publication pipeline.

A boost searches for a relevant blog post, generates promotional copy
linking to it, posts the copy as a tweet and records the outcome on the
order. It runs as the ``publish`` handler of the ``boosts`` queue, so a
failing step is retried by the queue with linear backoff.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from flywheel_queue.boost.ports import (
    Blog,
    BlogSearch,
    BoostRequest,
    ContentGenerator,
    OrderStore,
    TweetPoster,
)
from flywheel_queue.config import Settings
from flywheel_queue.constants import (
    BLOG_LINK_PLACEHOLDER,
    BOOST_DEFAULT_SOURCE,
    BOOST_JOB_TYPE,
    BOOST_QUEUE_NAME,
    BOOST_SEARCH_LIMIT,
    PRODUCT_LINK_PLACEHOLDER,
)
from flywheel_queue.types.job import Job
from flywheel_queue.worker.queue import JobQueue

logger = logging.getLogger(__name__)


def _session_id(payload: Any) -> str | None:
    if isinstance(payload, BoostRequest):
        return payload.session_id
    if isinstance(payload, dict):
        session_id = payload.get("session_id")
        return session_id if isinstance(session_id, str) else None
    return None


class BoostPipeline:
    """
    Search, generate, tweet, record.

    Any step may raise; the order is then marked failed with the error
    and the exception propagates to the queue.
    """

    def __init__(
        self,
        search: BlogSearch,
        generator: ContentGenerator,
        poster: TweetPoster,
        orders: OrderStore | None = None,
    ):
        self.search = search
        self.generator = generator
        self.poster = poster
        self.orders = orders

    async def publish(self, payload: Any, job: Job) -> dict[str, Any]:
        """
        Queue handler for ``publish`` jobs.

        Args:
            payload: A BoostRequest, or a dict in its shape.
            job: The executing job.

        Returns:
            The posted tweet as a dict.
        """
        session_id = _session_id(payload)

        try:
            request = BoostRequest.model_validate(payload)
            product_name = request.product.name if request.product else None

            logger.info(
                "Starting boost publish",
                extra={"session_id": session_id, "product": product_name, "job_id": job.id},
            )

            blog = await self._resolve_blog(request)
            content = await self._resolve_content(request, blog)

            # Save before posting so the content survives a failed tweet
            await self._update_order(
                session_id,
                content=content,
                blog=blog.model_dump() if blog else None,
            )

            logger.info("Posting tweet", extra={"session_id": session_id})
            tweet = await self.poster.post(content)

            await self._update_order(
                session_id,
                status="published",
                tweet_url=tweet.tweet_url,
                tweet_id=tweet.tweet_id,
                published_at=datetime.now(timezone.utc).isoformat(),
            )

            logger.info(
                "Boost published",
                extra={"session_id": session_id, "tweet_url": tweet.tweet_url},
            )
            return tweet.model_dump()

        except Exception as e:
            await self._update_order(session_id, status="failed", error=str(e))
            raise

    async def _resolve_blog(self, request: BoostRequest) -> Blog | None:
        if request.blog and request.blog.url:
            return request.blog

        keywords = request.product.keywords if request.product else None
        if not keywords:
            return request.blog

        logger.info(
            "Searching blogs",
            extra={"session_id": request.session_id, "keywords": keywords},
        )
        blogs = await self.search.search(keywords, BOOST_SEARCH_LIMIT)
        if not blogs:
            raise LookupError(f"No blogs found for keywords: {keywords}")

        top = blogs[0]
        return Blog(title=top.title, url=top.url, snippet=top.snippet)

    async def _resolve_content(self, request: BoostRequest, blog: Blog | None) -> str:
        if request.content:
            return request.content
        if request.product is None or blog is None:
            raise ValueError("Boost needs either content or a product and a blog")

        logger.info("Generating content", extra={"session_id": request.session_id})
        content = await self.generator.generate(request.product, blog)

        # Only the first occurrence of each placeholder is replaced
        content = content.replace(BLOG_LINK_PLACEHOLDER, blog.url, 1)
        return content.replace(
            PRODUCT_LINK_PLACEHOLDER, request.product.product_url or "", 1
        )

    async def _update_order(self, session_id: str | None, **fields: Any) -> None:
        if self.orders is None or not session_id:
            return
        order = await self.orders.get(session_id)
        if order is None:
            return
        order.update(fields)
        await self.orders.set(session_id, order)


def create_boost_queue(
    pipeline: BoostPipeline,
    settings: Settings | None = None,
    **overrides: Any,
) -> JobQueue:
    """
    Build the ``boosts`` queue with the pipeline registered as ``publish``.

    Keep concurrency low (default 2) to avoid hammering the Twitter API.
    """
    queue = JobQueue.from_settings(BOOST_QUEUE_NAME, settings, **overrides)
    queue.register_handler(BOOST_JOB_TYPE, pipeline.publish)
    return queue


def queue_boost(queue: JobQueue, request: BoostRequest) -> Job:
    """Submit a boost for publication at the request's priority."""
    payload = request.model_dump(exclude={"priority"})
    payload["source"] = request.source or BOOST_DEFAULT_SOURCE
    return queue.submit(BOOST_JOB_TYPE, payload, priority=request.priority)
