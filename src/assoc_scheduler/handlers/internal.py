"""In-process job handler.

``INTERNAL_SERVICE`` jobs name a registered ``InternalJobTask`` by key::

    {"handler_key": "kb_reindex", "parameters": {"batch_size": 100}}
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

from pydantic import Field

from assoc_scheduler.errors import ConfigurationError, StateError
from assoc_scheduler.logging import get_logger
from assoc_scheduler.models import FiringContext, JobType, SchedulerJob

from .base import JobConfig, parse_job_config

logger = get_logger(__name__)


@runtime_checkable
class InternalJobTask(Protocol):
    """Extension point for in-process work."""

    key: str

    def execute(self, params: dict[str, Any]) -> None:
        ...


class InternalJobConfig(JobConfig):
    handler_key: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class InternalServiceJobHandler:
    job_type = JobType.INTERNAL_SERVICE.value

    def __init__(self, tasks: Iterable[InternalJobTask] | None = None) -> None:
        self._tasks: dict[str, InternalJobTask] = {task.key: task for task in tasks or ()}

    def add_task(self, task: InternalJobTask) -> None:
        self._tasks[task.key] = task

    @property
    def task_keys(self) -> list[str]:
        return sorted(self._tasks)

    def handle(self, job: SchedulerJob, context: FiringContext) -> None:
        config = parse_job_config(job, InternalJobConfig)
        if not config.handler_key or not config.handler_key.strip():
            raise ConfigurationError("INTERNAL_SERVICE job config is missing a handler_key").with_context(
                job_id=job.id
            )
        task = self._tasks.get(config.handler_key)
        if task is None:
            raise StateError(
                f"No internal task registered for key {config.handler_key!r}"
            ).with_context(job_id=job.id, available=self.task_keys)
        logger.debug("internal_task_started", job_id=job.id, handler_key=config.handler_key)
        task.execute(config.parameters)
