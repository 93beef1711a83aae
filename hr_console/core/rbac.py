from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_console.models.user import User
from hr_console.models.user_role import UserRole, ROLE_ADMIN


async def user_has_role(db: AsyncSession, user_id: int, role: str) -> bool:
    res = await db.execute(
        select(UserRole.id)
        .where(UserRole.user_id == user_id, UserRole.role == role)
        .limit(1)
    )
    return res.first() is not None


async def user_is_admin(db: AsyncSession, user_id: int | None) -> bool:
    if user_id is None:
        return False
    return await user_has_role(db, user_id, ROLE_ADMIN)



async def get_current_user(db: AsyncSession, session: Mapping[str, Any]) -> Optional[User]:
    """The signed-in user, or None when the session names no (or a deleted) user."""
    user_id = session.get("user_id")
    if user_id is None:
        return None
    return await db.get(User, user_id)
