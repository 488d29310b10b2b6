"""Approval jobs API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from emporium.auth import require_role
from emporium.auth.deps import Principal
from emporium.config import settings
from emporium.db.engine import get_db
from emporium.db.models import Role
from emporium.db.unit_of_work import UnitOfWork
from emporium.errors import NotFoundError
from emporium.schemas.approval_jobs import (
    ApprovalJobResponse,
    DecideApprovalJobRequest,
    SubmitApprovalJobRequest,
)
from emporium.services.approval_job_service import ApprovalJobService
from emporium.services.approval_store import ApprovalJobStore

router = APIRouter()


def get_approval_job_service(db: AsyncSession = Depends(get_db)) -> ApprovalJobService:
    return ApprovalJobService(ApprovalJobStore(db), UnitOfWork(db))


@router.post("", response_model=ApprovalJobResponse, status_code=status.HTTP_201_CREATED)
async def submit_approval_job(
    body: SubmitApprovalJobRequest,
    service: ApprovalJobService = Depends(get_approval_job_service),
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    return await service.submit(principal.user_id, body)


@router.get("/pending", response_model=list[ApprovalJobResponse])
async def list_pending_approval_jobs(
    response: Response,
    skip: int = 0,
    take: int = settings.APPROVAL_LIST_DEFAULT_TAKE,
    service: ApprovalJobService = Depends(get_approval_job_service),
    _: Principal = Depends(require_role(Role.ADMIN)),
):
    jobs = await service.list_pending(skip, take)
    response.headers["X-Total-Count"] = str(await service.count_pending())
    return jobs


@router.get("/{job_id}", response_model=ApprovalJobResponse)
async def get_approval_job(
    job_id: int,
    service: ApprovalJobService = Depends(get_approval_job_service),
    _: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    job = await service.get_by_id(job_id)
    if job is None:
        raise NotFoundError(f"The approval job with id '{job_id}' not found.")
    return job


@router.post("/{job_id}/decision", response_model=ApprovalJobResponse)
async def decide_approval_job(
    job_id: int,
    body: DecideApprovalJobRequest,
    service: ApprovalJobService = Depends(get_approval_job_service),
    principal: Principal = Depends(require_role(Role.ADMIN)),
):
    return await service.decide(job_id, principal.user_id, body)
