from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_admin, require_permission
from db.database import get_async_session
from db.sales_channel import SalesChannel as SalesChannelModel
from db.users import User
from schemas.inventory import SalesChannelCreate, SalesChannelRead

router = APIRouter()


@router.get("/", response_model=List[SalesChannelRead])
async def list_sales_channels(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "inventory")),
):
    stmt = select(SalesChannelModel).order_by(SalesChannelModel.name.asc())
    if not include_inactive:
        stmt = stmt.where(SalesChannelModel.is_active.is_(True))
    res = await db.execute(stmt)
    return [SalesChannelRead(**c.to_schema) for c in res.scalars().all()]


@router.post("/", response_model=SalesChannelRead, status_code=status.HTTP_201_CREATED)
async def create_sales_channel(
    payload: SalesChannelCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_admin),
):
    existing = await db.execute(select(SalesChannelModel).where(SalesChannelModel.code == payload.code))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Sales channel already exists")

    m = SalesChannelModel(code=payload.code, name=payload.name, uses_retail_price=payload.uses_retail_price)
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return SalesChannelRead(**m.to_schema)
