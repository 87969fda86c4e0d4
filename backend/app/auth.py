"""Request identity.

Sign-in lives in a separate auth service, which forwards the signed-in
user's id in the ``X-User-Id`` header. The id is checked against the
``users`` table, which also supplies the user type for model entitlements.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import Unauthenticated
from app.models.user import User


@dataclass(frozen=True)
class CurrentUser:
    id: str
    user_type: str


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """FastAPI dependency: the authenticated user. Raises Unauthenticated."""
    if not x_user_id:
        raise Unauthenticated("Missing user id")
    result = await db.execute(select(User).where(User.id == x_user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise Unauthenticated(f"Unknown user {x_user_id}")
    return CurrentUser(id=user.id, user_type=user.user_type)
