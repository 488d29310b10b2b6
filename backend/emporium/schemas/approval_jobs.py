"""Pydantic models for approval jobs."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from emporium.config import settings
from emporium.db.models import ApprovalJob, ApprovalStatus, EntityType, Operation


def _check_reason(value: str | None) -> str | None:
    if value is None:
        return value
    if not value.strip():
        raise ValueError("The field Reason cannot be only whitespace.")
    if value != value.strip():
        raise ValueError("The field Reason cannot contain leading or trailing spaces.")
    return value


class SubmitApprovalJobRequest(BaseModel):
    """A governed mutation to be held until an administrator decides on it.

    ``payload`` is either an instance of the registered request shape (when
    built in-process) or a plain dict from a JSON body; the payload codec
    resolves both against the (type, operation) pair.
    """

    type: EntityType
    operation: Operation
    target_id: int | None = Field(default=None, gt=0)
    payload: Any = None
    reason: str | None = Field(default=None, max_length=settings.APPROVAL_REASON_MAX_LENGTH)

    @field_validator("reason")
    @classmethod
    def _reason(cls, v: str | None) -> str | None:
        return _check_reason(v)


class DecideApprovalJobRequest(BaseModel):
    approve: bool
    reason: str | None = Field(default=None, max_length=settings.APPROVAL_REASON_MAX_LENGTH)

    @field_validator("reason")
    @classmethod
    def _reason(cls, v: str | None) -> str | None:
        # Blank passes here; the service refuses a rejection without a reason.
        if v is not None and v.strip() and v != v.strip():
            raise ValueError("The field Reason cannot contain leading or trailing spaces.")
        return v


class ApprovalJobResponse(BaseModel):
    id: int
    type: EntityType
    operation: Operation
    state: bool  # True once decided, whichever way
    status: ApprovalStatus
    requested_by: int
    decided_by: int | None = None
    requested_at: datetime
    decided_at: datetime | None = None
    target_id: int | None = None
    reason: str | None = None

    @classmethod
    def from_entity(cls, job: ApprovalJob) -> "ApprovalJobResponse":
        return cls(
            id=job.id,
            type=EntityType(job.entity_type),
            operation=Operation(job.operation),
            state=job.is_decided,
            status=ApprovalStatus(job.status),
            requested_by=job.requested_by,
            decided_by=job.decided_by,
            requested_at=job.requested_at,
            decided_at=job.decided_at,
            target_id=job.target_id,
            reason=job.reason,
        )


class ApprovalRequestedOut(BaseModel):
    """202 body returned when a governed catalog call was queued for approval."""

    message: str
    approval_job: ApprovalJobResponse
