"""API schemas package.

Pydantic schemas define the API contract; routers convert between them
and the domain dataclasses.
"""

from assoc_scheduler.api.schemas.common import (
    PagedResponse,
    PageMeta,
    ProblemDetail,
    SuccessResponse,
)
from assoc_scheduler.api.schemas.domains import (
    ExcludedDateSchema,
    ExcludedDatesBody,
    ExecutionLogSchema,
    JobBody,
    JobSchema,
    StrategyBody,
    StrategySchema,
)

__all__ = [
    "PageMeta",
    "PagedResponse",
    "ProblemDetail",
    "SuccessResponse",
    "StrategyBody",
    "StrategySchema",
    "ExcludedDatesBody",
    "ExcludedDateSchema",
    "JobBody",
    "JobSchema",
    "ExecutionLogSchema",
]
