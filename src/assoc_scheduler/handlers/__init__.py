"""Job-type handlers and the registry that dispatches to them."""

from assoc_scheduler.handlers.command import CommandJobFailedError, CommandJobHandler
from assoc_scheduler.handlers.http import HttpJobFailedError, HttpJobHandler
from assoc_scheduler.handlers.internal import InternalJobTask, InternalServiceJobHandler
from assoc_scheduler.handlers.registry import (
    HandlerRegistry,
    JobHandler,
    create_default_registry,
)

__all__ = [
    "HandlerRegistry",
    "JobHandler",
    "create_default_registry",
    "HttpJobHandler",
    "HttpJobFailedError",
    "CommandJobHandler",
    "CommandJobFailedError",
    "InternalServiceJobHandler",
    "InternalJobTask",
]
