"""
Job router - CRUD plus enable/disable for scheduler jobs.

GET    /jobs
GET    /jobs/{job_id}
POST   /jobs
PUT    /jobs/{job_id}
DELETE /jobs/{job_id}
POST   /jobs/{job_id}/enable
POST   /jobs/{job_id}/disable
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Response

from assoc_scheduler.api.deps import Runtime
from assoc_scheduler.api.schemas.common import PagedResponse, PageMeta, SuccessResponse
from assoc_scheduler.api.schemas.domains import JobBody, JobSchema
from assoc_scheduler.models import SchedulerJob
from assoc_scheduler.scheduling import SchedulerRuntime

router = APIRouter(prefix="/jobs")


def _schema(runtime: SchedulerRuntime, job: SchedulerJob) -> JobSchema:
    schema = JobSchema.model_validate(job)
    schema.registered = runtime.jobs.is_registered(job.id)  # type: ignore[arg-type]
    return schema


@router.get("", response_model=PagedResponse[JobSchema])
def list_jobs(runtime: Runtime):
    """List all jobs with their engine registration state."""
    items = [_schema(runtime, job) for job in runtime.jobs.list_jobs()]
    return PagedResponse(data=items, page=PageMeta(total=len(items)))


@router.get("/{job_id}", response_model=SuccessResponse[JobSchema])
def get_job(runtime: Runtime, job_id: int = Path(..., description="Job ID")):
    return SuccessResponse(data=_schema(runtime, runtime.jobs.get_job(job_id)))


@router.post("", response_model=SuccessResponse[JobSchema], status_code=201)
def create_job(runtime: Runtime, body: JobBody):
    """Create a job; enabled jobs are registered with the engine at once.

    Raises:
        404: The referenced strategy does not exist.
        409: The engine registration failed (the job row is kept).
    """
    job = runtime.jobs.create_job(body.to_job())
    return SuccessResponse(data=_schema(runtime, job))


@router.put("/{job_id}", response_model=SuccessResponse[JobSchema])
def update_job(runtime: Runtime, body: JobBody, job_id: int = Path(..., description="Job ID")):
    """Overwrite every field and re-sync the engine registration."""
    job = runtime.jobs.update_job(job_id, body.to_job())
    return SuccessResponse(data=_schema(runtime, job))


@router.delete("/{job_id}", status_code=204)
def delete_job(runtime: Runtime, job_id: int = Path(..., description="Job ID")):
    runtime.jobs.delete_job(job_id)
    return Response(status_code=204)


@router.post("/{job_id}/enable", response_model=SuccessResponse[JobSchema])
def enable_job(runtime: Runtime, job_id: int = Path(..., description="Job ID")):
    job = runtime.jobs.enable_job(job_id)
    return SuccessResponse(data=_schema(runtime, job))


@router.post("/{job_id}/disable", response_model=SuccessResponse[JobSchema])
def disable_job(runtime: Runtime, job_id: int = Path(..., description="Job ID")):
    job = runtime.jobs.disable_job(job_id)
    return SuccessResponse(data=_schema(runtime, job))
