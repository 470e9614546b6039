"""
REST API layer for the scheduler.

Quick start::

    from assoc_scheduler.api import create_app

    app = create_app()  # ready for uvicorn

Routers only handle serialisation and error mapping; all behaviour
lives in ``assoc_scheduler.scheduling``.
"""

from assoc_scheduler.api.app import create_app

__all__ = ["create_app"]
