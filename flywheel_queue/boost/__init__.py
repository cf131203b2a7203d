"""
Boost module.
Publishes promotional tweets through the ``boosts`` job queue.
"""

from flywheel_queue.boost.pipeline import BoostPipeline, create_boost_queue, queue_boost
from flywheel_queue.boost.ports import Blog, BoostRequest, Product, Tweet

__all__ = [
    "BoostPipeline",
    "create_boost_queue",
    "queue_boost",
    "Blog",
    "BoostRequest",
    "Product",
    "Tweet",
]
