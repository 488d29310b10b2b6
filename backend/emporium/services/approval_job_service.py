"""Approval Job engine — submission and decision of governed mutations.

State machine::

    PENDING --approve--> APPROVED
    PENDING --reject---> REJECTED

Nothing leaves a decided state.  Submission validates the request shape and
stores the payload envelope; a decision re-validates the stored payload,
dispatches the real catalog call when approving, and records the outcome, all
in one transaction.  A failed dispatch rolls the whole decision back and the
job stays pending.

Collaborators (store, unit of work, codec, dispatch table) are injected so the
engine can be exercised against doubles.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from emporium.config import settings
from emporium.db.models import ApprovalJob, ApprovalStatus, EntityType, Operation
from emporium.db.unit_of_work import UnitOfWork
from emporium.errors import (
    ArgumentNullError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    PayloadError,
    RequestValidationFailed,
)
from emporium.schemas.approval_jobs import (
    ApprovalJobResponse,
    DecideApprovalJobRequest,
    SubmitApprovalJobRequest,
)
from emporium.services.approval_codec import PayloadCodec, default_codec
from emporium.services.approval_dispatch import DispatchCommand, DispatchTable, default_dispatch_table
from emporium.services.approval_store import ALREADY_DECIDED, ApprovalJobStore
from emporium.utils import metrics as metrics_mod
from emporium.utils.logger import ctx_approval_job_id
from emporium.utils.tracing import get_tracer

logger = logging.getLogger("emporium.approvals")
tracer = get_tracer("emporium.approvals")

SELF_DECISION = "An approval job cannot be decided by the user who requested it."
REJECTION_REASON_REQUIRED = "The field Reason is required when rejecting an approval job."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands DateTime(timezone=True) columns back naive
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _job_not_found(job_id: int) -> NotFoundError:
    return NotFoundError(f"The approval job with id '{job_id}' not found.")


def _require_positive(name: str, value: int) -> None:
    if value is None or value <= 0:
        raise BadRequestError(f"The field {name} must be a positive identifier.")


class ApprovalJobService:
    def __init__(
        self,
        store: ApprovalJobStore,
        uow: UnitOfWork,
        *,
        codec: PayloadCodec = default_codec,
        dispatch: DispatchTable = default_dispatch_table,
        metrics: metrics_mod.MetricsCollector | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._uow = uow
        self._codec = codec
        self._dispatch = dispatch
        self._metrics = metrics or metrics_mod.metrics
        self._clock = clock

    # ── Submit ──────────────────────────────────────────────────

    async def submit(self, requester_id: int, request: SubmitApprovalJobRequest | None) -> ApprovalJobResponse:
        """Validate and persist a PENDING job for *request*.

        Raises :class:`ArgumentNullError` for a missing request and
        :class:`BadRequestError` for a structurally invalid one.
        """
        if request is None:
            raise ArgumentNullError("request")
        _require_positive("RequesterId", requester_id)

        entity_type, operation = request.type, request.operation
        label = f"{entity_type.value}/{operation.value}"
        if not self._codec.is_registered(entity_type, operation):
            raise BadRequestError(f"{label} is not a governed operation.")

        self._check_shape(request, label)

        payload_json = None
        if request.payload is not None:
            try:
                payload_json = self._codec.encode(entity_type, operation, request.payload)
                self._codec.decode(entity_type, operation, payload_json)
            except PayloadError as exc:
                raise BadRequestError(f"Payload type mismatch for {label}: {exc.message}") from exc

        with tracer.start_as_current_span("approval_job.submit") as span:
            span.set_attribute("approval_job.type", entity_type.value)
            span.set_attribute("approval_job.operation", operation.value)
            job = ApprovalJob(
                entity_type=entity_type.value,
                operation=operation.value,
                status=ApprovalStatus.PENDING.value,
                target_id=request.target_id,
                payload_json=payload_json,
                reason=request.reason,
                requested_by=requester_id,
                requested_at=self._clock(),
            )
            self._store.add(job)
            await self._uow.save_changes()
            span.set_attribute("approval_job.id", job.id)

        logger.info(
            "Approval job %d submitted: %s target=%s by user %d",
            job.id, label, request.target_id, requester_id,
        )
        metrics_mod.record_job_submitted(entity_type.value, operation.value, self._metrics)
        return ApprovalJobResponse.from_entity(job)

    def _check_shape(self, request: SubmitApprovalJobRequest, label: str) -> None:
        operation = request.operation
        if operation in (Operation.DELETE, Operation.UPDATE) and request.target_id is None:
            raise BadRequestError(f"The field TargetId is required for {operation.value}.")
        if operation == Operation.CREATE and request.target_id is not None:
            raise BadRequestError(f"The field TargetId must be empty for {operation.value}.")

        takes_payload = self._codec.takes_payload(request.type, operation)
        if takes_payload and request.payload is None:
            raise BadRequestError(f"The field Payload is required for {operation.value}.")
        if not takes_payload and request.payload is not None:
            raise BadRequestError(f"The field Payload must be empty for {label}.")

    # ── Decide ──────────────────────────────────────────────────

    async def decide(
        self,
        job_id: int,
        decider_id: int,
        decision: DecideApprovalJobRequest | None,
    ) -> ApprovalJobResponse:
        """Approve or reject a pending job.

        Checks run in this order: missing decision, unknown job, already
        decided, self-decision, rejection without a reason.  Approval
        dispatches the governed call; its errors propagate unchanged after
        the transaction has been rolled back.
        """
        if decision is None:
            raise ArgumentNullError("decision")
        _require_positive("DeciderId", decider_id)

        token = ctx_approval_job_id.set(job_id)
        try:
            with tracer.start_as_current_span("approval_job.decide") as span:
                span.set_attribute("approval_job.id", job_id)
                span.set_attribute("approval_job.approve", decision.approve)
                job = await self._uow.execute_in_transaction(
                    lambda: self._decide_in_transaction(job_id, decider_id, decision)
                )
        finally:
            ctx_approval_job_id.reset(token)

        outcome = job.status
        logger.info("Approval job %d %s by user %d", job.id, outcome.lower(), decider_id)
        metrics_mod.record_job_decided(job.entity_type, job.operation, outcome, self._metrics)
        return ApprovalJobResponse.from_entity(job)

    async def _decide_in_transaction(
        self,
        job_id: int,
        decider_id: int,
        decision: DecideApprovalJobRequest,
    ) -> ApprovalJob:
        job = await self._store.get_for_decision(job_id)
        if job is None:
            raise _job_not_found(job_id)
        if job.is_decided:
            raise ConflictError(ALREADY_DECIDED)
        if decider_id == job.requested_by:
            raise BadRequestError(SELF_DECISION)

        reason = decision.reason if decision.reason and decision.reason.strip() else None
        if not decision.approve and reason is None:
            raise RequestValidationFailed({"reason": [REJECTION_REASON_REQUIRED]})

        # Claim the row before any side effect; a failed dispatch rolls the
        # claim back with everything else.
        status = ApprovalStatus.APPROVED if decision.approve else ApprovalStatus.REJECTED
        decided_at = max(_as_utc(self._clock()), _as_utc(job.requested_at))
        await self._store.mark_decided(
            job,
            status=status,
            decided_by=decider_id,
            decided_at=decided_at,
            reason=reason,
        )

        if decision.approve:
            await self._dispatch_job(job)
        return job

    async def _dispatch_job(self, job: ApprovalJob) -> None:
        entity_type = EntityType(job.entity_type)
        operation = Operation(job.operation)
        started = time.perf_counter()
        with tracer.start_as_current_span("approval_job.dispatch") as span:
            span.set_attribute("approval_job.type", entity_type.value)
            span.set_attribute("approval_job.operation", operation.value)
            try:
                payload = None
                if self._codec.takes_payload(entity_type, operation):
                    payload = self._codec.decode(entity_type, operation, job.payload_json)
                await self._dispatch.dispatch(
                    self._uow.session,
                    DispatchCommand(entity_type, operation, target_id=job.target_id, payload=payload),
                )
            except Exception as exc:
                metrics_mod.record_dispatch(
                    entity_type.value, operation.value, time.perf_counter() - started, True, self._metrics
                )
                logger.warning(
                    "Dispatch for approval job %d (%s/%s) failed, decision rolled back: %s",
                    job.id, entity_type.value, operation.value, exc,
                )
                raise
        metrics_mod.record_dispatch(
            entity_type.value, operation.value, time.perf_counter() - started, False, self._metrics
        )

    # ── Reads ───────────────────────────────────────────────────

    async def list_pending(self, skip: int = 0, take: int = settings.APPROVAL_LIST_DEFAULT_TAKE) -> list[ApprovalJobResponse]:
        """Pending jobs, oldest first.  *take* is capped at ``APPROVAL_LIST_MAX_TAKE``."""
        if skip < 0:
            raise BadRequestError("The field Skip cannot be negative.")
        if take <= 0:
            raise BadRequestError("The field Take must be greater than zero.")
        take = min(take, settings.APPROVAL_LIST_MAX_TAKE)
        jobs = await self._store.list_pending(skip, take)
        return [ApprovalJobResponse.from_entity(job) for job in jobs]

    async def count_pending(self) -> int:
        return await self._store.count_pending()

    async def get_by_id(self, job_id: int) -> ApprovalJobResponse | None:
        job = await self._store.get_by_id(job_id)
        if job is None:
            return None
        return ApprovalJobResponse.from_entity(job)
