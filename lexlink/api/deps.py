import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lexlink.common.enums import ActorRole, UserRole
from lexlink.common.exceptions import NotFoundError, PermissionDeniedError
from lexlink.core.engagement.schemas import Actor
from lexlink.db.models.user import User
from lexlink.db.session import async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user(
    x_user_id: str = Header(..., description="Authenticated user id, set by the gateway"),
    db: AsyncSession = Depends(get_db),
) -> User:
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise PermissionDeniedError("Invalid X-User-Id header")

    result = await db.execute(
        select(User).where(User.id == user_id, User.is_deleted.is_(False))
    )
    user = result.scalar_one_or_none()

    if not user:
        raise NotFoundError("User")
    if not user.is_active:
        raise PermissionDeniedError("User account is inactive")

    return user


async def get_actor(current_user: User = Depends(get_current_user)) -> Actor:
    return Actor(user_id=current_user.id, role=ActorRole(current_user.role))


def require_role(*roles: UserRole):
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in [r.value for r in roles]:
            raise PermissionDeniedError(
                f"This action requires one of the following roles: {', '.join(r.value for r in roles)}"
            )
        return current_user

    return role_checker
