from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_permission
from core.logging_config import get_logger
from db.database import get_async_session
from db.users import User
from schemas.users import UserRead, UserRoleUpdate

router = APIRouter()
log = get_logger(component="users")


@router.get("/directory", response_model=List[UserRead])
async def list_users(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "user")),
):
    res = await db.execute(select(User).order_by(func.lower(User.email).asc()))
    return [UserRead.model_validate(u, from_attributes=True) for u in res.scalars().all()]


@router.patch("/{user_id}/role", response_model=UserRead)
async def update_user_role(
    user_id: UUID,
    payload: UserRoleUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "user")),
):
    res = await db.execute(select(User).where(User.id == user_id))
    target = res.scalar_one_or_none()
    if not target:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    previous = target.role
    target.role = payload.role
    await db.commit()
    await db.refresh(target)
    log.info("Role of {} changed from {} to {} by {}", target.id, previous, target.role, user.id)
    return UserRead.model_validate(target, from_attributes=True)
