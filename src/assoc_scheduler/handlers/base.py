"""Shared job-config parsing for the built-in handlers."""

from __future__ import annotations

from typing import TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from assoc_scheduler.errors import ConfigurationError
from assoc_scheduler.models import SchedulerJob


class JobConfig(BaseModel):
    """Base for handler configs.  Accepts snake_case and camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


ConfigT = TypeVar("ConfigT", bound=JobConfig)


def parse_job_config(job: SchedulerJob, model: type[ConfigT]) -> ConfigT:
    """Validate ``job.job_config`` against *model*.

    Raises:
        ConfigurationError: the config is not valid JSON or fails validation
    """
    raw = job.job_config if job.job_config and job.job_config.strip() else "{}"
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid {job.job_type} job config for job {job.id}: {exc.errors(include_url=False)}",
            cause=exc,
        ).with_context(job_id=job.id) from exc
