"""
Execution log router.

GET /logs?job_id=&status=&start_time=&end_time=&limit=
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query

from assoc_scheduler.api.deps import Runtime
from assoc_scheduler.api.schemas.common import PagedResponse, PageMeta
from assoc_scheduler.api.schemas.domains import ExecutionLogSchema
from assoc_scheduler.models import ExecutionStatus

router = APIRouter(prefix="/logs")


@router.get("", response_model=PagedResponse[ExecutionLogSchema])
def list_logs(
    runtime: Runtime,
    job_id: int | None = Query(None, description="Only logs of this job"),
    status: ExecutionStatus | None = Query(None, description="SUCCESS, FAILED, RETRIED or SKIPPED"),
    start_time: datetime | None = Query(None, description="Scheduled at or after (inclusive)"),
    end_time: datetime | None = Query(None, description="Scheduled at or before (inclusive)"),
    limit: int | None = Query(None, ge=1, le=10000),
):
    """List execution logs, newest scheduled fire time first.

    Raises:
        404: ``job_id`` does not match any job.
    """
    logs = runtime.logs.list_logs(
        job_id=job_id,
        status=status,
        start_time=start_time,
        end_time=end_time,
        limit=limit,
    )
    items = [ExecutionLogSchema.model_validate(entry) for entry in logs]
    return PagedResponse(data=items, page=PageMeta(total=len(items), limit=limit))
