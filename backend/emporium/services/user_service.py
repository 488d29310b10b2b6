"""User service — accounts with bcrypt password hashing.

Roles (ascending privilege):
    SHOPPER < EMPLOYEE < ADMIN

A default ``admin`` user is seeded at startup when none exists.
Default credentials:  username=admin  password=admin123  (change in production!)
"""

from __future__ import annotations

import logging

import bcrypt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from emporium.db.models import Role, User
from emporium.errors import BadRequestError, ConflictError

logger = logging.getLogger("emporium.users")

VALID_ROLES = tuple(r.value for r in Role)


def _hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def _verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def create_user(
    db: AsyncSession,
    *,
    username: str,
    email: str,
    password: str,
    role: str = Role.SHOPPER.value,
) -> User:
    if role not in VALID_ROLES:
        raise BadRequestError(f"Invalid role '{role}'. Must be one of: {VALID_ROLES}")
    if await get_user_by_username(db, username) is not None:
        raise ConflictError(f"The user with username '{username}' already exists.")

    user = User(
        username=username,
        email=email,
        hashed_password=_hash_password(password),
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    logger.info("Created user '%s' with role '%s'", username, role)
    return user


async def authenticate(db: AsyncSession, username: str, password: str) -> User | None:
    """Verify username + password. Returns User on success, None on failure."""
    user = await get_user_by_username(db, username)
    if not user or not user.is_active:
        return None
    if not _verify_password(password, user.hashed_password):
        return None
    return user


async def ensure_default_admin(db: AsyncSession) -> None:
    """Seed a default admin user if no 'admin' username exists yet."""
    if await get_user_by_username(db, "admin") is None:
        await create_user(
            db,
            username="admin",
            email="admin@local",
            password="admin123",
            role=Role.ADMIN.value,
        )
        await db.commit()
        logger.info(
            "Seeded default admin user (username=admin, password=admin123). "
            "Change this immediately in production!"
        )
