"""Tests for the unit of work: commit, rollback and cancellation."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select

from emporium.db.engine import async_session
from emporium.db.models import Category
from emporium.db.unit_of_work import UnitOfWork


async def _category_count() -> int:
    async with async_session() as db:
        return await db.scalar(select(func.count()).select_from(Category))


class TestSaveChanges:
    async def test_commits_and_counts(self, db):
        uow = UnitOfWork(db)
        db.add_all([Category(name="Electronics"), Category(name="Books")])
        assert await uow.save_changes() == 2
        assert await _category_count() == 2

    async def test_nothing_pending(self, db):
        assert await UnitOfWork(db).save_changes() == 0


class TestExecuteInTransaction:
    async def test_commits_action_result(self, db):
        uow = UnitOfWork(db)

        async def action():
            db.add(Category(name="Electronics"))
            return "ok"

        assert await uow.execute_in_transaction(action) == "ok"
        assert await _category_count() == 1

    async def test_error_rolls_back_everything(self, db):
        uow = UnitOfWork(db)

        async def action():
            db.add(Category(name="Electronics"))
            await db.flush()
            raise RuntimeError("dispatch failed")

        with pytest.raises(RuntimeError, match="dispatch failed"):
            await uow.execute_in_transaction(action)
        assert await _category_count() == 0

    async def test_cancellation_before_commit_rolls_back(self, db):
        uow = UnitOfWork(db)
        flushed = asyncio.Event()

        async def action():
            db.add(Category(name="Electronics"))
            await db.flush()
            flushed.set()
            await asyncio.sleep(3600)

        task = asyncio.create_task(uow.execute_in_transaction(action))
        await flushed.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert await _category_count() == 0

    async def test_commit_is_not_interrupted_by_cancellation(self):
        started = asyncio.Event()
        release = asyncio.Event()
        committed = []

        async def slow_commit():
            started.set()
            await release.wait()
            committed.append(True)

        session = MagicMock()
        session.flush = AsyncMock()
        session.rollback = AsyncMock()
        session.commit = AsyncMock(side_effect=slow_commit)
        uow = UnitOfWork(session)

        task = asyncio.create_task(uow.execute_in_transaction(AsyncMock(return_value=None)))
        await started.wait()
        task.cancel()
        await asyncio.sleep(0)
        release.set()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert committed == [True]
        session.rollback.assert_not_awaited()

    async def test_failed_commit_rolls_back(self):
        session = MagicMock()
        session.flush = AsyncMock()
        session.rollback = AsyncMock()
        session.commit = AsyncMock(side_effect=RuntimeError("disk full"))
        uow = UnitOfWork(session)

        with pytest.raises(RuntimeError, match="disk full"):
            await uow.execute_in_transaction(AsyncMock(return_value=None))
        session.rollback.assert_awaited_once()
