"""
CLI layer for the scheduler.

Entry point::

    assoc-scheduler --help
"""

from assoc_scheduler.cli.app import app

__all__ = ["app"]
