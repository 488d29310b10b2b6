"""Products API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from emporium.api.approval_jobs import get_approval_job_service
from emporium.api.governance import (
    PRODUCT_CREATION_SUBMITTED,
    PRODUCT_DELETION_SUBMITTED,
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
    CreateProductRequest,
    ProductPage,
    ProductResponse,
    UpdateProductRequest,
)
from emporium.services import product_service
from emporium.services.approval_job_service import ApprovalJobService

router = APIRouter()


def _out(product) -> ProductResponse:
    return ProductResponse.from_entity(product, product.category.name)


@router.get("", response_model=ProductPage)
async def list_products(
    skip: int = 0,
    take: int = 50,
    category: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    if skip < 0 or take <= 0:
        raise BadRequestError("Skip must be >= 0 and Take must be > 0.")
    items, total = await product_service.list_products(db, skip, take, category)
    return ProductPage(total=total, items=[_out(p) for p in items])


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    product = await product_service.get_product(db, product_id)
    if product is None:
        raise product_service.product_not_found(product_id)
    return _out(product)


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={202: {"model": ApprovalRequestedOut}},
)
async def create_product(
    body: CreateProductRequest,
    db: AsyncSession = Depends(get_db),
    approvals: ApprovalJobService = Depends(get_approval_job_service),
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    executed, result = await execute_or_request_approval(
        principal,
        approvals,
        direct=lambda: product_service.create_product(db, body),
        build_request=lambda: SubmitApprovalJobRequest(
            type=EntityType.PRODUCT,
            operation=Operation.CREATE,
            payload=body,
            reason=creation_reason("Product", principal.user_id),
        ),
        message=PRODUCT_CREATION_SUBMITTED,
    )
    return _out(result) if executed else result


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    body: UpdateProductRequest,
    db: AsyncSession = Depends(get_db),
    _: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    return _out(await product_service.update_product(db, product_id, body))


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={202: {"model": ApprovalRequestedOut}},
)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    approvals: ApprovalJobService = Depends(get_approval_job_service),
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    executed, result = await execute_or_request_approval(
        principal,
        approvals,
        direct=lambda: product_service.delete_product(db, product_id),
        build_request=lambda: SubmitApprovalJobRequest(
            type=EntityType.PRODUCT,
            operation=Operation.DELETE,
            target_id=product_id,
            reason=deletion_reason("Product", principal.user_id, product_id),
        ),
        message=PRODUCT_DELETION_SUBMITTED,
    )
    if not executed:
        return result
    if not result:
        raise product_service.product_not_found(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
