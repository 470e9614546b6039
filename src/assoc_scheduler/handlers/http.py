"""HTTP job handler.

``job_config``::

    {"url": "https://example.org/hooks/nightly",
     "method": "POST",
     "headers": {"Authorization": "Bearer ..."},
     "body": "{\\"full\\": true}",
     "timeout_seconds": 30}

Any non-2xx response fails the firing.
"""

from __future__ import annotations

import httpx
from pydantic import Field

from assoc_scheduler.errors import ConfigurationError
from assoc_scheduler.logging import get_logger
from assoc_scheduler.models import FiringContext, JobType, SchedulerJob

from .base import JobConfig, parse_job_config

logger = get_logger(__name__)

SUPPORTED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})


class HttpJobConfig(JobConfig):
    url: str | None = None
    method: str | None = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""
    timeout_seconds: int = 30


class HttpJobFailedError(RuntimeError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        super().__init__(f"HTTP job call to {url} failed with status {status_code}")


class HttpJobHandler:
    """Calls an HTTP endpoint with ``httpx``.

    Args:
        transport: Optional ``httpx`` transport (``httpx.MockTransport`` in tests)
    """

    job_type = JobType.HTTP.value

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport

    def handle(self, job: SchedulerJob, context: FiringContext) -> None:
        config = parse_job_config(job, HttpJobConfig)
        if not config.url or not config.url.strip():
            raise ConfigurationError("HTTP job config is missing a url").with_context(job_id=job.id)
        method = _resolve_method(config.method)
        timeout = max(1, config.timeout_seconds)

        with httpx.Client(timeout=timeout, transport=self._transport) as client:
            response = client.request(
                method,
                config.url,
                headers=config.headers,
                content=config.body or None,
            )

        if not response.is_success:
            raise HttpJobFailedError(response.status_code, config.url)
        logger.info(
            "http_job_succeeded",
            job_id=job.id,
            method=method,
            status_code=response.status_code,
            retry_count=context.retry_count,
        )


def _resolve_method(method: str | None) -> str:
    if not method or not method.strip():
        return "POST"
    normalized = method.strip().upper()
    if normalized not in SUPPORTED_METHODS:
        raise ConfigurationError(f"Unsupported HTTP method: {method!r}")
    return normalized
