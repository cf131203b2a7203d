"""
Collaborator interfaces used by the boost pipeline.

Concrete clients (blog search, LLM, Twitter, order database) live in the
host application and are injected when the pipeline is built.
"""

from typing import Any, Protocol

from pydantic import BaseModel, Field

from flywheel_queue.constants import BOOST_DEFAULT_SOURCE


class Blog(BaseModel):
    """A blog post the boost links to."""

    title: str = ""
    url: str = ""
    snippet: str = ""


class Product(BaseModel):
    """The product being promoted."""

    name: str = ""
    keywords: str | None = None
    product_url: str | None = None


class Tweet(BaseModel):
    """A posted tweet."""

    tweet_id: str
    tweet_url: str
    account: str | None = None


class BoostRequest(BaseModel):
    """Input for one boost publication."""

    session_id: str | None = None
    email: str | None = None
    product: Product | None = None
    blog: Blog | None = None
    content: str | None = None
    source: str = BOOST_DEFAULT_SOURCE
    priority: int = Field(default=0, description="Higher runs first")


class BlogSearch(Protocol):
    async def search(self, keywords: str, limit: int) -> list[Blog]: ...


class ContentGenerator(Protocol):
    async def generate(self, product: Product, blog: Blog) -> str: ...


class TweetPoster(Protocol):
    async def post(self, text: str) -> Tweet: ...


class OrderStore(Protocol):
    """Key-value access to boost orders, keyed by checkout session id."""

    async def get(self, session_id: str) -> dict[str, Any] | None: ...

    async def set(self, session_id: str, order: dict[str, Any]) -> None: ...
