"""Execute-or-request-approval for governed catalog routes.

ADMIN callers run the catalog call directly.  Anyone else holding EMPLOYEE
gets an approval job submitted on their behalf and a 202 back.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from fastapi import status
from fastapi.responses import JSONResponse

from emporium.auth.deps import Principal
from emporium.schemas.approval_jobs import ApprovalRequestedOut, SubmitApprovalJobRequest
from emporium.services.approval_job_service import ApprovalJobService

logger = logging.getLogger("emporium.api")

CATEGORY_CREATION_SUBMITTED = "Category creation request has been submitted for approval."
CATEGORY_DELETION_SUBMITTED = "Category deletion request has been submitted for approval."
PRODUCT_CREATION_SUBMITTED = "Product creation request has been submitted for approval."
PRODUCT_DELETION_SUBMITTED = "Product deletion request has been submitted for approval."


def creation_reason(entity: str, employee_id: int) -> str:
    return f"{entity} creation requested by employee with ID #{employee_id}"


def deletion_reason(entity: str, employee_id: int, target_id: int) -> str:
    return (
        f"{entity} deletion requested by employee with ID #{employee_id} "
        f"for {entity.lower()} with ID #{target_id}"
    )


async def execute_or_request_approval(
    principal: Principal,
    approvals: ApprovalJobService,
    *,
    direct: Callable[[], Awaitable[Any]],
    build_request: Callable[[], SubmitApprovalJobRequest],
    message: str,
) -> tuple[bool, Any]:
    """Return ``(True, result)`` after a direct run, or ``(False, 202 response)``."""
    if principal.is_admin:
        return True, await direct()

    request = build_request()
    job = await approvals.submit(principal.user_id, request)
    logger.info(
        "User %d requested %s/%s, queued as approval job %d",
        principal.user_id, request.type.value, request.operation.value, job.id,
    )
    body = ApprovalRequestedOut(message=message, approval_job=job)
    return False, JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=body.model_dump(mode="json"))
