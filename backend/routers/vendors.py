from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from core.auth import require_permission
from core.logging_config import get_logger
from db.database import get_async_session
from db.vendor import Vendor as VendorModel
from schemas.vendors import VendorRead, VendorCreate, VendorUpdate
from db.users import User

router = APIRouter()
log = get_logger(component="vendors")


async def _get_vendor_or_404(db: AsyncSession, vendor_id: UUID) -> VendorModel:
    res = await db.execute(select(VendorModel).where(VendorModel.id == vendor_id))
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found")
    return m


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: Optional[UUID] = None) -> None:
    stmt = select(VendorModel).where(func.lower(VendorModel.name) == name.lower())
    if exclude_id:
        stmt = stmt.where(VendorModel.id != exclude_id)
    existing = await db.execute(stmt)
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vendor already exists")


@router.get("/", response_model=List[VendorRead])
async def list_vendors(
    search: Optional[str] = None,
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "vendor")),
):
    stmt = select(VendorModel).order_by(func.lower(VendorModel.name).asc())
    if not include_inactive:
        stmt = stmt.where(VendorModel.is_active.is_(True))
    if search and search.strip():
        stmt = stmt.where(VendorModel.name.ilike(f"%{search.strip()}%"))
    res = await db.execute(stmt)
    return [VendorRead(**v.to_schema) for v in res.scalars().all()]


@router.get("/{vendor_id}", response_model=VendorRead)
async def get_vendor(
    vendor_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "vendor")),
):
    m = await _get_vendor_or_404(db, vendor_id)
    return VendorRead(**m.to_schema)


@router.post("/", response_model=VendorRead, status_code=status.HTTP_201_CREATED)
async def create_vendor(
    payload: VendorCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("create", "vendor")),
):
    await _ensure_unique_name(db, payload.name)

    m = VendorModel(
        name=payload.name,
        contact_email=payload.contact_email,
        contact_phone=payload.contact_phone,
        address=payload.address,
        notes=payload.notes,
        is_active=True,
    )
    db.add(m)
    await db.commit()
    await db.refresh(m)
    log.info("Vendor {} created by {}", m.id, user.id)
    return VendorRead(**m.to_schema)


@router.patch("/{vendor_id}", response_model=VendorRead)
async def update_vendor(
    vendor_id: UUID,
    payload: VendorUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "vendor")),
):
    m = await _get_vendor_or_404(db, vendor_id)

    data = payload.model_dump(exclude_unset=True)
    if "name" in data and data["name"] is not None:
        name = data["name"].strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name cannot be empty")
        await _ensure_unique_name(db, name, exclude_id=m.id)
        m.name = name
    for field in ("contact_email", "contact_phone", "address", "notes"):
        if field in data:
            setattr(m, field, data[field])
    if "is_active" in data and data["is_active"] is not None:
        m.is_active = data["is_active"]
        m.deleted_at = None if data["is_active"] else (m.deleted_at or datetime.now())

    await db.commit()
    await db.refresh(m)
    return VendorRead(**m.to_schema)


@router.delete("/{vendor_id}", response_model=VendorRead)
async def delete_vendor(
    vendor_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("delete", "vendor")),
):
    # Soft delete: purchase orders keep pointing at the vendor
    m = await _get_vendor_or_404(db, vendor_id)
    m.is_active = False
    m.deleted_at = datetime.now()
    await db.commit()
    await db.refresh(m)
    log.info("Vendor {} deactivated by {}", m.id, user.id)
    return VendorRead(**m.to_schema)


@router.post("/{vendor_id}/restore", response_model=VendorRead)
async def restore_vendor(
    vendor_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "vendor")),
):
    m = await _get_vendor_or_404(db, vendor_id)
    m.is_active = True
    m.deleted_at = None
    await db.commit()
    await db.refresh(m)
    return VendorRead(**m.to_schema)
