"""Categories API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from emporium.api.approval_jobs import get_approval_job_service
from emporium.api.governance import (
    CATEGORY_CREATION_SUBMITTED,
    CATEGORY_DELETION_SUBMITTED,
    creation_reason,
    deletion_reason,
    execute_or_request_approval,
)
from emporium.auth import require_role
from emporium.auth.deps import Principal
from emporium.db.engine import get_db
from emporium.db.models import EntityType, Operation, Role
from emporium.errors import BadRequestError
from emporium.schemas.approval_jobs import ApprovalRequestedOut, SubmitApprovalJobRequest
from emporium.schemas.catalog import (
    CategoryPage,
    CategoryResponse,
    CreateCategoryRequest,
    UpdateCategoryRequest,
)
from emporium.services import category_service
from emporium.services.approval_job_service import ApprovalJobService

router = APIRouter()


@router.get("", response_model=CategoryPage)
async def list_categories(skip: int = 0, take: int = 50, db: AsyncSession = Depends(get_db)):
    if skip < 0 or take <= 0:
        raise BadRequestError("Skip must be >= 0 and Take must be > 0.")
    items, total = await category_service.list_categories(db, skip, take)
    return CategoryPage(total=total, items=[CategoryResponse.model_validate(c) for c in items])


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    category = await category_service.get_category(db, category_id)
    if category is None:
        raise category_service.category_not_found(category_id)
    return category


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={202: {"model": ApprovalRequestedOut}},
)
async def create_category(
    body: CreateCategoryRequest,
    db: AsyncSession = Depends(get_db),
    approvals: ApprovalJobService = Depends(get_approval_job_service),
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    executed, result = await execute_or_request_approval(
        principal,
        approvals,
        direct=lambda: category_service.create_category(db, body),
        build_request=lambda: SubmitApprovalJobRequest(
            type=EntityType.CATEGORY,
            operation=Operation.CREATE,
            payload=body,
            reason=creation_reason("Category", principal.user_id),
        ),
        message=CATEGORY_CREATION_SUBMITTED,
    )
    return CategoryResponse.model_validate(result) if executed else result


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    body: UpdateCategoryRequest,
    db: AsyncSession = Depends(get_db),
    _: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    return await category_service.update_category(db, category_id, body)


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={202: {"model": ApprovalRequestedOut}},
)
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    approvals: ApprovalJobService = Depends(get_approval_job_service),
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    executed, result = await execute_or_request_approval(
        principal,
        approvals,
        direct=lambda: category_service.delete_category(db, category_id),
        build_request=lambda: SubmitApprovalJobRequest(
            type=EntityType.CATEGORY,
            operation=Operation.DELETE,
            target_id=category_id,
            reason=deletion_reason("Category", principal.user_id, category_id),
        ),
        message=CATEGORY_DELETION_SUBMITTED,
    )
    if not executed:
        return result
    if not result:
        raise category_service.category_not_found(category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
