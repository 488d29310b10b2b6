"""Product service — products with their owning category and inline inventory."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from emporium.db.models import Inventory, Product
from emporium.errors import BadRequestError, ConflictError, NotFoundError
from emporium.schemas.catalog import CreateProductRequest, UpdateProductRequest
from emporium.services import category_service

logger = logging.getLogger("emporium.catalog")

AVAILABLE_GREATER_THAN_TOTAL = "The field Available cannot be greater than Total."


def product_not_found(product_id: int) -> NotFoundError:
    return NotFoundError(f"The product with id '{product_id}' not found.")


async def get_product(db: AsyncSession, product_id: int) -> Product | None:
    return await db.get(Product, product_id)


async def get_product_by_title(db: AsyncSession, title: str) -> Product | None:
    result = await db.execute(
        select(Product).where(func.upper(func.trim(Product.title)) == title.strip().upper())
    )
    return result.unique().scalar_one_or_none()


async def list_products(
    db: AsyncSession,
    skip: int = 0,
    take: int = 50,
    category: str | None = None,
) -> tuple[list[Product], int]:
    stmt = select(Product)
    count_stmt = select(func.count()).select_from(Product)
    if category and category.strip():
        cat = await category_service.get_category_by_name(db, category)
        if cat is None:
            return [], 0
        stmt = stmt.where(Product.category_id == cat.id)
        count_stmt = count_stmt.where(Product.category_id == cat.id)
    result = await db.execute(stmt.order_by(Product.id).offset(skip).limit(take))
    total = await db.scalar(count_stmt)
    return list(result.unique().scalars().all()), int(total or 0)


async def create_product(db: AsyncSession, dto: CreateProductRequest) -> Product:
    if await get_product_by_title(db, dto.title) is not None:
        raise ConflictError(f"The product with title '{dto.title.strip().upper()}' already exists.")

    category = await category_service.get_category_by_name(db, dto.category)
    if category is None:
        raise category_service.category_not_found(dto.category.strip().upper())

    inventory = None
    if dto.inventory is not None:
        if dto.inventory.available > dto.inventory.total:
            raise BadRequestError(AVAILABLE_GREATER_THAN_TOTAL)
        inventory = Inventory(total=dto.inventory.total, available=dto.inventory.available)

    # inventory is always assigned (even None) so it never needs a lazy load later
    product = Product(
        title=dto.title,
        price=dto.price,
        description=dto.description,
        image_url=dto.image_url,
        rating_rate=dto.rating_rate,
        count=dto.count,
        category=category,
        inventory=inventory,
    )
    db.add(product)
    await db.flush()
    logger.info("Created product %d '%s' in category '%s'", product.id, product.title, category.name)
    return product


async def update_product(db: AsyncSession, product_id: int, dto: UpdateProductRequest) -> Product:
    product = await get_product(db, product_id)
    if product is None:
        raise product_not_found(product_id)

    if dto.category is not None and dto.category.strip():
        category = await category_service.get_category_by_name(db, dto.category)
        if category is None:
            raise category_service.category_not_found(dto.category)
        product.category = category

    if dto.title is not None:
        clash = await get_product_by_title(db, dto.title)
        if clash is not None and clash.id != product_id:
            raise ConflictError(f"The product with title '{dto.title.strip().upper()}' already exists.")
        product.title = dto.title
    if dto.price is not None:
        product.price = dto.price
    if dto.description is not None:
        product.description = dto.description
    if dto.image_url is not None:
        product.image_url = dto.image_url
    if dto.rating_rate is not None:
        product.rating_rate = dto.rating_rate
    if dto.count is not None:
        product.count = dto.count

    if dto.inventory is not None:
        inv = dto.inventory
        current = product.inventory
        new_total = inv.total if inv.total is not None else (current.total if current else 0)
        new_available = inv.available if inv.available is not None else (current.available if current else 0)
        if new_available > new_total:
            raise BadRequestError(AVAILABLE_GREATER_THAN_TOTAL)
        if current is None:
            product.inventory = Inventory(total=new_total, available=new_available)
        else:
            current.total = new_total
            current.available = new_available

    product.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return product


async def delete_product(db: AsyncSession, product_id: int) -> bool:
    """Delete a product and its inventory.  Returns False when it does not exist."""
    product = await get_product(db, product_id)
    if product is None:
        return False
    await db.delete(product)
    await db.flush()
    logger.info("Deleted product %d", product_id)
    return True
