"""Approval job store — reads and persists ``approval_jobs`` rows.

No business rules live here beyond the compare-and-set in :meth:`mark_decided`,
which is what turns two concurrent decisions on one job into exactly one
winner and one :class:`~emporium.errors.ConflictError`.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from emporium.db.models import ApprovalJob, ApprovalStatus
from emporium.errors import ConflictError

ALREADY_DECIDED = "This approval job has already been decided."


class ApprovalJobStore:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    def add(self, job: ApprovalJob) -> None:
        self._db.add(job)

    async def get_by_id(self, job_id: int) -> ApprovalJob | None:
        return await self._db.get(ApprovalJob, job_id)

    async def get_for_decision(self, job_id: int) -> ApprovalJob | None:
        """Fetch a job for deciding, taking a row lock where the dialect has one.

        ``populate_existing`` makes sure a copy already in the identity map is
        refreshed rather than trusted.
        """
        result = await self._db.execute(
            select(ApprovalJob)
            .where(ApprovalJob.id == job_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_pending(self, skip: int, take: int) -> list[ApprovalJob]:
        result = await self._db.execute(
            select(ApprovalJob)
            .where(ApprovalJob.status == ApprovalStatus.PENDING.value)
            .order_by(ApprovalJob.requested_at.asc(), ApprovalJob.id.asc())
            .offset(skip)
            .limit(take)
        )
        return list(result.scalars().all())

    async def count_pending(self) -> int:
        total = await self._db.scalar(
            select(func.count())
            .select_from(ApprovalJob)
            .where(ApprovalJob.status == ApprovalStatus.PENDING.value)
        )
        return int(total or 0)

    async def mark_decided(
        self,
        job: ApprovalJob,
        *,
        status: ApprovalStatus,
        decided_by: int,
        decided_at: datetime,
        reason: str | None,
    ) -> None:
        """Record the decision only if the row is still pending.

        Raises :class:`ConflictError` when another decision got there first.
        """
        result = await self._db.execute(
            update(ApprovalJob)
            .where(
                ApprovalJob.id == job.id,
                ApprovalJob.status == ApprovalStatus.PENDING.value,
            )
            .values(
                status=status.value,
                decided_by=decided_by,
                decided_at=decided_at,
                reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(ALREADY_DECIDED)
        # mirror the row onto the instance without marking it dirty
        set_committed_value(job, "status", status.value)
        set_committed_value(job, "decided_by", decided_by)
        set_committed_value(job, "decided_at", decided_at)
        set_committed_value(job, "reason", reason)
