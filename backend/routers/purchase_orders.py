from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import require_permission
from core.logging_config import get_logger
from db.database import get_async_session
from db.purchase_order import PurchaseOrder as PurchaseOrderModel, PurchaseOrderItem as PurchaseOrderItemModel
from db.users import User
from db.vendor import Vendor as VendorModel
from routers.inventory import _minor_from_price, _price_from_minor
from schemas.purchase_orders import (
    PurchaseOrderCreate,
    PurchaseOrderItemCreate,
    PurchaseOrderItemRead,
    PurchaseOrderRead,
    PurchaseOrderReceive,
    PurchaseOrderUpdate,
)

router = APIRouter()
log = get_logger(component="purchase_orders")

# status -> statuses reachable through PATCH
ALLOWED_TRANSITIONS = {
    "DRAFT": {"ORDERED", "CANCELLED"},
    "ORDERED": {"CANCELLED"},
    "RECEIVED": set(),
    "CANCELLED": set(),
}


def _serialize_order(o: PurchaseOrderModel) -> PurchaseOrderRead:
    vendor = getattr(o, "vendor", None)
    items_out: List[PurchaseOrderItemRead] = []
    total_minor = 0
    for it in (o.items or []):
        line_minor = None
        if it.unit_cost_minor is not None:
            line_minor = int(round(float(it.quantity) * it.unit_cost_minor))
            total_minor += line_minor
        items_out.append(
            PurchaseOrderItemRead(
                id=it.id,
                material_type=it.material_type,
                name=it.name,
                fruit_type=it.fruit_type,
                quantity=float(it.quantity),
                unit=it.unit,
                unit_cost=_price_from_minor(it.unit_cost_minor),
                line_total=_price_from_minor(line_minor),
            )
        )
    return PurchaseOrderRead(
        id=o.id,
        vendor_id=o.vendor_id,
        vendor_name=getattr(vendor, "name", None) if vendor else None,
        status=o.status,
        order_date=o.order_date,
        received_date=o.received_date,
        notes=o.notes,
        items=items_out,
        total_cost=_price_from_minor(total_minor),
    )


def _build_item(payload: PurchaseOrderItemCreate) -> PurchaseOrderItemModel:
    return PurchaseOrderItemModel(
        material_type=payload.material_type,
        name=payload.name,
        fruit_type=payload.fruit_type,
        quantity=payload.quantity,
        unit=payload.unit,
        unit_cost_minor=_minor_from_price(payload.unit_cost),
    )


async def _get_order_or_404(db: AsyncSession, order_id: UUID) -> PurchaseOrderModel:
    res = await db.execute(
        select(PurchaseOrderModel)
        .options(selectinload(PurchaseOrderModel.vendor), selectinload(PurchaseOrderModel.items))
        .where(PurchaseOrderModel.id == order_id)
        .execution_options(populate_existing=True)
    )
    o = res.scalar_one_or_none()
    if not o:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase order not found")
    return o


@router.get("/", response_model=List[PurchaseOrderRead])
async def list_purchase_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    vendor_id: Optional[UUID] = None,
    material_type: Optional[str] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "purchase")),
):
    stmt = (
        select(PurchaseOrderModel)
        .options(selectinload(PurchaseOrderModel.vendor), selectinload(PurchaseOrderModel.items))
        .order_by(PurchaseOrderModel.order_date.desc(), PurchaseOrderModel.created_at.desc())
    )
    if status_filter:
        stmt = stmt.where(PurchaseOrderModel.status == status_filter.upper())
    if vendor_id:
        stmt = stmt.where(PurchaseOrderModel.vendor_id == vendor_id)
    if material_type:
        stmt = stmt.where(
            PurchaseOrderModel.items.any(PurchaseOrderItemModel.material_type == material_type)
        )
    if from_date:
        stmt = stmt.where(PurchaseOrderModel.order_date >= from_date)
    if to_date:
        stmt = stmt.where(PurchaseOrderModel.order_date <= to_date)

    res = await db.execute(stmt)
    return [_serialize_order(o) for o in res.scalars().all()]


@router.get("/{order_id}", response_model=PurchaseOrderRead)
async def get_purchase_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "purchase")),
):
    return _serialize_order(await _get_order_or_404(db, order_id))


@router.post("/", response_model=PurchaseOrderRead, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    payload: PurchaseOrderCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("create", "purchase")),
):
    vendor = await db.get(VendorModel, payload.vendor_id)
    if not vendor or vendor.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found")
    if not vendor.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Vendor {vendor.name} is inactive")

    o = PurchaseOrderModel(
        vendor_id=vendor.id,
        status="DRAFT",
        order_date=payload.order_date or date.today(),
        notes=payload.notes,
        created_by_user_id=user.id,
        items=[_build_item(it) for it in payload.items],
    )
    db.add(o)
    await db.commit()

    log.bind(order_id=str(o.id)).info("Purchase order created for {} with {} items", vendor.name, len(payload.items))
    return _serialize_order(await _get_order_or_404(db, o.id))


@router.patch("/{order_id}", response_model=PurchaseOrderRead)
async def update_purchase_order(
    order_id: UUID,
    payload: PurchaseOrderUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "purchase")),
):
    o = await _get_order_or_404(db, order_id)
    data = payload.model_dump(exclude_unset=True)

    new_status = data.get("status")
    if new_status is not None and new_status != o.status:
        if new_status not in ALLOWED_TRANSITIONS.get(o.status, set()):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Cannot change status from {o.status} to {new_status}",
            )

    if payload.items is not None:
        if o.status != "DRAFT":
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Only DRAFT orders can change items")
        o.items = [_build_item(it) for it in payload.items]

    if "order_date" in data and data["order_date"] is not None:
        o.order_date = data["order_date"]
    if "notes" in data:
        o.notes = data["notes"]
    if new_status is not None and new_status != o.status:
        log.bind(order_id=str(o.id)).info("Purchase order {} -> {}", o.status, new_status)
        o.status = new_status

    await db.commit()
    return _serialize_order(await _get_order_or_404(db, o.id))


@router.post("/{order_id}/receive", response_model=PurchaseOrderRead)
async def receive_purchase_order(
    order_id: UUID,
    payload: Optional[PurchaseOrderReceive] = None,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "purchase")),
):
    o = await _get_order_or_404(db, order_id)
    if o.status not in ("DRAFT", "ORDERED"):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot receive a {o.status} purchase order",
        )
    o.status = "RECEIVED"
    o.received_date = (payload.received_date if payload else None) or date.today()
    await db.commit()

    log.bind(order_id=str(o.id)).info("Purchase order received on {}", o.received_date)
    return _serialize_order(await _get_order_or_404(db, o.id))


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_purchase_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("delete", "purchase")),
):
    o = await _get_order_or_404(db, order_id)
    if o.status != "DRAFT":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Only DRAFT orders can be deleted")
    await db.delete(o)
    await db.commit()
    return None
