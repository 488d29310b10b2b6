"""Dispatch table — what actually happens when an approval job is approved.

Each entry turns a job's target id / decoded payload into a call on the
catalog services.  Service errors (not found, conflict, bad request) are left
to propagate untouched so the caller's transaction rolls back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from emporium.db.models import EntityType, Operation
from emporium.errors import BadRequestError, DispatchConfigurationError
from emporium.services import category_service, product_service
from emporium.services.approval_codec import PayloadCodec, PayloadKind

logger = logging.getLogger("emporium.approvals")


@dataclass(frozen=True)
class DispatchCommand:
    entity_type: EntityType
    operation: Operation
    target_id: int | None = None
    payload: BaseModel | None = None

    @property
    def label(self) -> str:
        return f"{self.entity_type.value}/{self.operation.value}"

    def require_target(self) -> int:
        if self.target_id is None:
            raise BadRequestError(f"The field TargetId is required for {self.label}.")
        return self.target_id

    def require_payload(self) -> BaseModel:
        if self.payload is None:
            raise BadRequestError(f"The field Payload is required for {self.label}.")
        return self.payload


Handler = Callable[[AsyncSession, DispatchCommand], Awaitable[Any]]


class DispatchTable:
    def __init__(self, entries: Mapping[PayloadKind, Handler]) -> None:
        self._entries = dict(entries)

    @property
    def kinds(self) -> frozenset[PayloadKind]:
        return frozenset(self._entries)

    async def dispatch(self, db: AsyncSession, command: DispatchCommand) -> Any:
        handler = self._entries.get((command.entity_type, command.operation))
        if handler is None:
            raise BadRequestError(f"{command.label} is not a governed operation.")
        logger.debug("Dispatching %s (target_id=%s)", command.label, command.target_id)
        return await handler(db, command)


def verify_registry(codec: PayloadCodec, table: DispatchTable) -> None:
    """Fail fast if a governed pair has a payload shape but no dispatch entry, or the reverse."""
    no_entry = codec.kinds - table.kinds
    no_shape = table.kinds - codec.kinds
    if not no_entry and not no_shape:
        return
    problems = []
    if no_entry:
        problems.append("no dispatch entry for " + ", ".join(sorted(f"{t.value}/{o.value}" for t, o in no_entry)))
    if no_shape:
        problems.append("no payload shape for " + ", ".join(sorted(f"{t.value}/{o.value}" for t, o in no_shape)))
    raise DispatchConfigurationError("Governed operation registry is incomplete: " + "; ".join(problems))


# ── Catalog entries ─────────────────────────────────────────────


async def _create_category(db: AsyncSession, command: DispatchCommand):
    return await category_service.create_category(db, command.require_payload())


async def _update_category(db: AsyncSession, command: DispatchCommand):
    return await category_service.update_category(db, command.require_target(), command.require_payload())


async def _delete_category(db: AsyncSession, command: DispatchCommand):
    target_id = command.require_target()
    if not await category_service.delete_category(db, target_id):
        raise category_service.category_not_found(target_id)
    return True


async def _create_product(db: AsyncSession, command: DispatchCommand):
    return await product_service.create_product(db, command.require_payload())


async def _update_product(db: AsyncSession, command: DispatchCommand):
    return await product_service.update_product(db, command.require_target(), command.require_payload())


async def _delete_product(db: AsyncSession, command: DispatchCommand):
    target_id = command.require_target()
    if not await product_service.delete_product(db, target_id):
        raise product_service.product_not_found(target_id)
    return True


GOVERNED_DISPATCH: dict[PayloadKind, Handler] = {
    (EntityType.CATEGORY, Operation.CREATE): _create_category,
    (EntityType.CATEGORY, Operation.UPDATE): _update_category,
    (EntityType.CATEGORY, Operation.DELETE): _delete_category,
    (EntityType.PRODUCT, Operation.CREATE): _create_product,
    (EntityType.PRODUCT, Operation.UPDATE): _update_product,
    (EntityType.PRODUCT, Operation.DELETE): _delete_product,
}

default_dispatch_table = DispatchTable(GOVERNED_DISPATCH)
