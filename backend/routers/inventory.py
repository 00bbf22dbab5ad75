from datetime import date, datetime, time, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from core.auth import require_permission
from core.logging_config import get_logger
from core.ttb import liters_to_wine_gallons, round_gallons
from db.batch import Batch as BatchModel
from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from db.inventory.movement import InventoryMovement as InventoryMovementModel
from db.sales_channel import SalesChannel as SalesChannelModel
from db.users import User
from schemas.inventory import (
    AdjustRequest,
    DistributeRequest,
    FinishedGoodDetails,
    FinishedGoodList,
    FinishedGoodRead,
    MovementRead,
    PricingUpdate,
)

router = APIRouter()
log = get_logger(component="inventory")


def _minor_from_price(price: Optional[float]) -> Optional[int]:
    if price is None:
        return None
    return int(round(float(price) * 100))


def _price_from_minor(minor: Optional[int]) -> Optional[float]:
    if minor is None:
        return None
    return float(minor) / 100.0


def _serialize_item(it: InventoryItemModel) -> FinishedGoodRead:
    batch = getattr(it, "batch", None)
    return FinishedGoodRead(
        id=it.id,
        batch_id=it.batch_id,
        batch_name=batch.name if batch else None,
        packaging_run_id=it.packaging_run_id,
        lot_code=it.lot_code,
        package_type=it.package_type,
        package_size_ml=it.package_size_ml,
        current_quantity=int(it.current_quantity or 0),
        retail_price=_price_from_minor(it.retail_price_minor),
        wholesale_price=_price_from_minor(it.wholesale_price_minor),
        expiration_date=it.expiration_date,
    )


def _serialize_movement(mv: InventoryMovementModel, lot_code: Optional[str] = None) -> MovementRead:
    # only use the channel when already loaded; no lazy IO here
    channel = mv.__dict__.get("sales_channel")
    return MovementRead(
        id=mv.id,
        inventory_item_id=mv.inventory_item_id,
        lot_code=lot_code,
        kind=mv.kind,
        change=int(mv.change),
        adjustment_type=mv.adjustment_type,
        reason=mv.reason,
        sales_channel_id=mv.sales_channel_id,
        sales_channel_code=channel.code if channel else None,
        unit_price=_price_from_minor(mv.unit_price_minor),
        occurred_at=mv.occurred_at,
        created_by_user_id=mv.created_by_user_id,
    )


async def _apply_movement(
    *,
    db: AsyncSession,
    user: User,
    item: InventoryItemModel,
    kind: str,
    delta: int,
    reason: Optional[str] = None,
    adjustment_type: Optional[str] = None,
    sales_channel_id: Optional[UUID] = None,
    unit_price_minor: Optional[int] = None,
    occurred_at: Optional[datetime] = None,
) -> InventoryMovementModel:
    """Append a movement and move the item's on-hand quantity by `delta`.

    The quantity moves inside one conditional UPDATE and never goes below
    zero. Callers commit.
    """
    # pending items (new runs) must exist before the UPDATE sees them
    await db.flush()
    tbl = InventoryItemModel.__table__
    res = await db.execute(
        update(tbl)
        .where(tbl.c.id == item.id)
        .where(tbl.c.current_quantity + delta >= 0)
        .values(current_quantity=tbl.c.current_quantity + delta)
        .returning(tbl.c.current_quantity)
    )
    new_quantity = res.scalar_one_or_none()
    if new_quantity is None:
        on_hand = (
            await db.execute(select(tbl.c.current_quantity).where(tbl.c.id == item.id))
        ).scalar_one_or_none()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Insufficient stock for lot {item.lot_code}. On hand: {int(on_hand or 0)}, requested: {-delta}",
        )
    set_committed_value(item, "current_quantity", int(new_quantity))

    mv = InventoryMovementModel(
        inventory_item_id=item.id,
        kind=kind,
        change=delta,
        adjustment_type=adjustment_type,
        reason=reason,
        sales_channel_id=sales_channel_id,
        unit_price_minor=unit_price_minor,
        occurred_at=occurred_at or datetime.now(),
        created_by_user_id=user.id,
    )
    db.add(mv)
    return mv


async def _get_item_or_404(db: AsyncSession, item_id: UUID) -> InventoryItemModel:
    res = await db.execute(
        select(InventoryItemModel)
        .options(selectinload(InventoryItemModel.batch), selectinload(InventoryItemModel.packaging_run))
        .where(InventoryItemModel.id == item_id)
        .execution_options(populate_existing=True)
    )
    it = res.scalar_one_or_none()
    if not it:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found")
    return it


@router.get("/finished-goods", response_model=FinishedGoodList)
async def list_finished_goods(
    search: Optional[str] = None,
    package_type: Optional[str] = Query(None, pattern="^(bottle|can|keg)$"),
    batch_id: Optional[UUID] = None,
    in_stock_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "inventory")),
):
    stmt = select(InventoryItemModel).join(BatchModel, InventoryItemModel.batch_id == BatchModel.id)
    if search and search.strip():
        term = f"%{search.strip()}%"
        stmt = stmt.where(or_(InventoryItemModel.lot_code.ilike(term), BatchModel.name.ilike(term)))
    if package_type:
        stmt = stmt.where(InventoryItemModel.package_type == package_type)
    if batch_id:
        stmt = stmt.where(InventoryItemModel.batch_id == batch_id)
    if in_stock_only:
        stmt = stmt.where(InventoryItemModel.current_quantity > 0)

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    stmt = (
        stmt.options(selectinload(InventoryItemModel.batch))
        .order_by(InventoryItemModel.created_at.desc(), InventoryItemModel.lot_code.asc())
        .limit(limit)
        .offset(offset)
    )
    res = await db.execute(stmt)
    items = [_serialize_item(it) for it in res.scalars().all()]
    return FinishedGoodList(items=items, total=int(total), has_more=offset + len(items) < total)


@router.get("/finished-goods/{item_id}", response_model=FinishedGoodDetails)
async def get_finished_good_details(
    item_id: UUID,
    movement_limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "inventory")),
):
    it = await _get_item_or_404(db, item_id)
    run = it.packaging_run
    batch = it.batch

    res = await db.execute(
        select(InventoryMovementModel)
        .options(selectinload(InventoryMovementModel.sales_channel))
        .where(InventoryMovementModel.inventory_item_id == it.id)
        .order_by(InventoryMovementModel.occurred_at.desc(), InventoryMovementModel.created_at.desc())
        .limit(movement_limit)
    )
    movements = [_serialize_movement(mv, it.lot_code) for mv in res.scalars().all()]

    volume_l = int(it.current_quantity or 0) * it.package_size_ml / 1000
    return FinishedGoodDetails(
        **_serialize_item(it).model_dump(),
        batch_status=batch.status if batch else None,
        packaged_at=run.packaged_at if run else None,
        units_produced=run.units_produced if run else None,
        abv_at_packaging=run.abv_at_packaging if run else None,
        carbonation_level=run.carbonation_level if run else None,
        fill_check=run.fill_check if run else None,
        run_status=run.status if run else None,
        volume_on_hand_l=round(volume_l, 3),
        volume_on_hand_gallons=round_gallons(liters_to_wine_gallons(volume_l)),
        movements=movements,
    )


@router.post("/finished-goods/{item_id}/distribute", response_model=MovementRead, status_code=status.HTTP_201_CREATED)
async def distribute_finished_good(
    item_id: UUID,
    payload: DistributeRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("create", "inventory")),
):
    try:
        it = await _get_item_or_404(db, item_id)
        if it.packaging_run is not None and it.packaging_run.status == "voided":
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Packaging run was voided")

        channel = await db.get(SalesChannelModel, payload.sales_channel_id)
        if not channel or not channel.is_active:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales channel not found")

        price_minor = _minor_from_price(payload.unit_price)
        if price_minor is None:
            price_minor = it.retail_price_minor if channel.uses_retail_price else it.wholesale_price_minor

        mv = await _apply_movement(
            db=db,
            user=user,
            item=it,
            kind="DISTRIBUTION",
            delta=-payload.quantity,
            reason=payload.notes or f"Distributed via {channel.name}",
            sales_channel_id=channel.id,
            unit_price_minor=price_minor,
            occurred_at=payload.distribution_date,
        )
        await db.commit()
        await db.refresh(mv)
    except HTTPException:
        raise
    except Exception:
        await db.rollback()
        log.exception("distribute failed for item {}", item_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to record distribution")

    log.info("Distributed {} x {} via {}", payload.quantity, it.lot_code, channel.code)
    out = _serialize_movement(mv, it.lot_code)
    out.sales_channel_code = channel.code
    return out


@router.post("/finished-goods/{item_id}/adjust", response_model=MovementRead, status_code=status.HTTP_201_CREATED)
async def adjust_finished_good(
    item_id: UUID,
    payload: AdjustRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "inventory")),
):
    try:
        it = await _get_item_or_404(db, item_id)
        mv = await _apply_movement(
            db=db,
            user=user,
            item=it,
            kind="ADJUSTMENT",
            delta=payload.change,
            reason=payload.reason,
            adjustment_type=payload.adjustment_type,
            occurred_at=payload.adjusted_at,
        )
        await db.commit()
        await db.refresh(mv)
    except HTTPException:
        raise
    except Exception:
        await db.rollback()
        log.exception("adjust failed for item {}", item_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to record adjustment")

    log.info("Adjusted {} by {} ({})", it.lot_code, payload.change, payload.adjustment_type)
    return _serialize_movement(mv, it.lot_code)


@router.patch("/finished-goods/{item_id}/pricing", response_model=FinishedGoodRead)
async def update_pricing(
    item_id: UUID,
    payload: PricingUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "inventory")),
):
    it = await _get_item_or_404(db, item_id)
    data = payload.model_dump(exclude_unset=True)
    if "retail_price" in data:
        it.retail_price_minor = _minor_from_price(data["retail_price"])
    if "wholesale_price" in data:
        it.wholesale_price_minor = _minor_from_price(data["wholesale_price"])
    await db.commit()
    it = await _get_item_or_404(db, item_id)
    return _serialize_item(it)


@router.get("/movements", response_model=List[MovementRead])
async def list_movements(
    inventory_item_id: Optional[UUID] = None,
    kind: Optional[str] = Query(None, pattern="^(PACKAGED|DISTRIBUTION|ADJUSTMENT|VOID)$"),
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    limit: int = Query(200, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "inventory")),
):
    stmt = (
        select(InventoryMovementModel, InventoryItemModel.lot_code)
        .join(InventoryItemModel, InventoryMovementModel.inventory_item_id == InventoryItemModel.id)
        .options(selectinload(InventoryMovementModel.sales_channel))
    )
    if inventory_item_id:
        stmt = stmt.where(InventoryMovementModel.inventory_item_id == inventory_item_id)
    if kind:
        stmt = stmt.where(InventoryMovementModel.kind == kind)
    if from_date:
        stmt = stmt.where(InventoryMovementModel.occurred_at >= datetime.combine(from_date, time.min))
    if to_date:
        end_excl = datetime.combine(to_date, time.min) + timedelta(days=1)
        stmt = stmt.where(InventoryMovementModel.occurred_at < end_excl)

    stmt = stmt.order_by(InventoryMovementModel.occurred_at.desc()).limit(limit)
    res = await db.execute(stmt)
    return [_serialize_movement(mv, lot_code) for (mv, lot_code) in res.all()]
