from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from core.auth import require_permission
from db.database import get_async_session
from db.vessel import Vessel as VesselModel
from db.users import User
from schemas.vessels import VesselRead, VesselCreate, VesselUpdate

router = APIRouter()


@router.get("/", response_model=List[VesselRead])
async def list_vessels(
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "vessel")),
):
    stmt = select(VesselModel).order_by(func.lower(VesselModel.name).asc())
    if status_filter:
        stmt = stmt.where(VesselModel.status == status_filter)
    res = await db.execute(stmt)
    return [VesselRead(**v.to_schema) for v in res.scalars().all()]


@router.get("/{vessel_id}", response_model=VesselRead)
async def get_vessel(
    vessel_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "vessel")),
):
    m = await db.get(VesselModel, vessel_id)
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vessel not found")
    return VesselRead(**m.to_schema)


@router.post("/", response_model=VesselRead, status_code=status.HTTP_201_CREATED)
async def create_vessel(
    payload: VesselCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("create", "vessel")),
):
    existing = await db.execute(select(VesselModel).where(func.lower(VesselModel.name) == payload.name.lower()))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vessel already exists")

    m = VesselModel(**payload.model_dump())
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return VesselRead(**m.to_schema)


@router.patch("/{vessel_id}", response_model=VesselRead)
async def update_vessel(
    vessel_id: UUID,
    payload: VesselUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "vessel")),
):
    m = await db.get(VesselModel, vessel_id)
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vessel not found")

    data = payload.model_dump(exclude_unset=True)
    name = data.pop("name", None)
    if name is not None:
        m.name = name.strip()
    for field, value in data.items():
        if value is None and field in ("capacity_l", "status"):
            continue
        setattr(m, field, value)

    await db.commit()
    await db.refresh(m)
    return VesselRead(**m.to_schema)
