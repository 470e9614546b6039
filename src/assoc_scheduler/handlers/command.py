"""Shell command job handler.

Runs ``job_config.command`` through ``bash -lc``.  Commands run with the
scheduler's privileges; restrict who can create COMMAND jobs.
"""

from __future__ import annotations

import os
import subprocess

from assoc_scheduler.errors import ConfigurationError
from assoc_scheduler.logging import get_logger
from assoc_scheduler.models import FiringContext, JobType, SchedulerJob

from .base import JobConfig, parse_job_config

logger = get_logger(__name__)


class CommandJobConfig(JobConfig):
    command: str | None = None
    working_directory: str | None = None
    environment: dict[str, str] | None = None
    timeout_seconds: int = 60


class CommandJobFailedError(RuntimeError):
    """The command exited non-zero or timed out."""


class CommandJobHandler:
    job_type = JobType.COMMAND.value

    def __init__(self, shell: str = "bash") -> None:
        self.shell = shell

    def handle(self, job: SchedulerJob, context: FiringContext) -> None:
        config = parse_job_config(job, CommandJobConfig)
        if not config.command or not config.command.strip():
            raise ConfigurationError("COMMAND job config is missing a command").with_context(job_id=job.id)

        env = None
        if config.environment:
            env = {**os.environ, **config.environment}
        timeout = max(1, config.timeout_seconds)

        try:
            result = subprocess.run(
                [self.shell, "-lc", config.command],
                cwd=config.working_directory or None,
                env=env,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandJobFailedError(f"Command timed out after {timeout}s") from exc

        logger.info(
            "command_job_finished",
            job_id=job.id,
            exit_code=result.returncode,
            stdout=result.stdout.strip(),
            stderr=result.stderr.strip(),
        )
        if result.returncode != 0:
            raise CommandJobFailedError(
                f"Command failed with exit code {result.returncode}: {result.stderr.strip()}"
            )
