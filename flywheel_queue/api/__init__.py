"""
API module.
Contains the FastAPI application exposing queue stats and job status.
"""

from flywheel_queue.api.main import create_app, run

__all__ = ["create_app", "run"]
