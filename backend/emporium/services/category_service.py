"""Category service — CRUD over the ``categories`` table.

Names are unique case-insensitively.  Functions flush but never commit; the
caller's unit of work (or ``get_db``) decides when the transaction ends.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from emporium.db.models import Category, Product
from emporium.errors import ConflictError, NotFoundError
from emporium.schemas.catalog import CreateCategoryRequest, UpdateCategoryRequest

logger = logging.getLogger("emporium.catalog")


def category_not_found(ref: int | str) -> NotFoundError:
    if isinstance(ref, int):
        return NotFoundError(f"The category with id '{ref}' not found.")
    return NotFoundError(f"The category with name '{ref}' not found.")


def _normalized(name: str) -> str:
    return name.strip().upper()


async def get_category(db: AsyncSession, category_id: int) -> Category | None:
    return await db.get(Category, category_id)


async def get_category_by_name(db: AsyncSession, name: str) -> Category | None:
    result = await db.execute(
        select(Category).where(func.upper(func.trim(Category.name)) == _normalized(name))
    )
    return result.scalar_one_or_none()


async def exists_by_name(db: AsyncSession, name: str, *, exclude_id: int | None = None) -> bool:
    stmt = select(Category.id).where(func.upper(func.trim(Category.name)) == _normalized(name))
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def list_categories(db: AsyncSession, skip: int = 0, take: int = 50) -> tuple[list[Category], int]:
    result = await db.execute(select(Category).order_by(Category.id).offset(skip).limit(take))
    total = await db.scalar(select(func.count()).select_from(Category))
    return list(result.scalars().all()), int(total or 0)


async def create_category(db: AsyncSession, dto: CreateCategoryRequest) -> Category:
    if await exists_by_name(db, dto.name):
        raise ConflictError(f"The category with name '{dto.name}' already exists.")
    category = Category(name=dto.name.strip())
    db.add(category)
    await db.flush()
    logger.info("Created category %d '%s'", category.id, category.name)
    return category


async def update_category(db: AsyncSession, category_id: int, dto: UpdateCategoryRequest) -> Category:
    category = await get_category(db, category_id)
    if category is None:
        raise category_not_found(category_id)
    if await exists_by_name(db, dto.name, exclude_id=category_id):
        raise ConflictError(f"The category with name '{dto.name}' already exists.")
    category.name = dto.name.strip()
    category.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return category


async def delete_category(db: AsyncSession, category_id: int) -> bool:
    """Delete a category.  Returns False when it does not exist.

    A category still referenced by products cannot be deleted.
    """
    in_use = await db.scalar(
        select(func.count()).select_from(Product).where(Product.category_id == category_id)
    )
    if in_use:
        raise ConflictError(
            f"The category with id '{category_id}' still has {in_use} product(s) and cannot be deleted."
        )
    result = await db.execute(delete(Category).where(Category.id == category_id))
    deleted = result.rowcount > 0
    if deleted:
        logger.info("Deleted category %d", category_id)
    return deleted
