"""
FlyWheel Job Queue

An in-process, priority-ordered job queue with bounded concurrency,
linear retry backoff and a bounded job history for status polling.
Used to sequence boost publication (search, generate, tweet, record).
"""

__version__ = "1.0.0"
