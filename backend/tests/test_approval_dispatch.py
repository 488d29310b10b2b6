"""Tests for the dispatch table and the startup registry check."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from emporium.db.models import EntityType, Operation
from emporium.errors import BadRequestError, DispatchConfigurationError
from emporium.schemas.catalog import CreateCategoryRequest
from emporium.services.approval_codec import GOVERNED_PAYLOAD_SHAPES, PayloadCodec, default_codec
from emporium.services.approval_dispatch import (
    GOVERNED_DISPATCH,
    DispatchCommand,
    DispatchTable,
    default_dispatch_table,
    verify_registry,
)

CAT, PROD = EntityType.CATEGORY, EntityType.PRODUCT


class TestVerifyRegistry:
    def test_default_registry_is_complete(self):
        verify_registry(default_codec, default_dispatch_table)

    def test_shape_without_dispatch_entry(self):
        entries = dict(GOVERNED_DISPATCH)
        del entries[(PROD, Operation.DELETE)]
        with pytest.raises(DispatchConfigurationError, match="no dispatch entry for PRODUCT/DELETE"):
            verify_registry(default_codec, DispatchTable(entries))

    def test_dispatch_entry_without_shape(self):
        shapes = dict(GOVERNED_PAYLOAD_SHAPES)
        del shapes[(CAT, Operation.UPDATE)]
        with pytest.raises(DispatchConfigurationError, match="no payload shape for CATEGORY/UPDATE"):
            verify_registry(PayloadCodec(shapes), default_dispatch_table)


class TestDispatchTable:
    @pytest.mark.asyncio
    async def test_routes_to_registered_handler(self):
        handler = AsyncMock(return_value="done")
        table = DispatchTable({(CAT, Operation.CREATE): handler})
        db = AsyncMock()
        command = DispatchCommand(CAT, Operation.CREATE, payload=CreateCategoryRequest(name="Electronics"))

        assert await table.dispatch(db, command) == "done"
        handler.assert_awaited_once_with(db, command)

    @pytest.mark.asyncio
    async def test_unregistered_pair_is_bad_request(self):
        table = DispatchTable({})
        with pytest.raises(BadRequestError):
            await table.dispatch(AsyncMock(), DispatchCommand(CAT, Operation.CREATE))

    @pytest.mark.asyncio
    async def test_handler_errors_propagate_unchanged(self):
        boom = LookupError("gone")
        table = DispatchTable({(PROD, Operation.DELETE): AsyncMock(side_effect=boom)})
        with pytest.raises(LookupError) as info:
            await table.dispatch(AsyncMock(), DispatchCommand(PROD, Operation.DELETE, target_id=4))
        assert info.value is boom


class TestDispatchCommand:
    def test_require_target(self):
        with pytest.raises(BadRequestError, match="TargetId"):
            DispatchCommand(PROD, Operation.DELETE).require_target()
        assert DispatchCommand(PROD, Operation.DELETE, target_id=9).require_target() == 9

    def test_require_payload(self):
        with pytest.raises(BadRequestError, match="Payload"):
            DispatchCommand(CAT, Operation.CREATE).require_payload()

    def test_label(self):
        assert DispatchCommand(CAT, Operation.UPDATE).label == "CATEGORY/UPDATE"
