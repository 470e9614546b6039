"""
Common API schemas - shared envelopes and RFC 7807 errors.

Every endpoint returns either :class:`SuccessResponse` (200/201) or
:class:`ProblemDetail` (4xx/5xx).  List endpoints return
:class:`PagedResponse` with a :class:`PageMeta`.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    Error types:
        - ``ConfigurationError`` (400): incomplete or malformed schedule
        - ``UnknownReferenceError`` (404): strategy or job does not exist
        - ``StateError`` (409): illegal in the current state, or engine sync failed
        - anything else (500)
    """

    type: str = Field(default="about:blank", description="Error type URI")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    context: dict[str, Any] = Field(default_factory=dict, description="Ids involved in the error")


class PageMeta(BaseModel):
    total: int = Field(description="Total items")
    limit: int | None = Field(default=None, description="Requested limit, if any")


class SuccessResponse(BaseModel, Generic[T]):
    """Standard success envelope for single-item responses."""

    data: T = Field(description="Response payload")


class PagedResponse(BaseModel, Generic[T]):
    """Success envelope for list responses."""

    data: list[T] = Field(description="Items")
    page: PageMeta = Field(description="Result metadata")
