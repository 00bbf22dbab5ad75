import uuid
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import require_admin, require_permission
from core.errors import PackagingValidationError, ValidationError, extract_user_message
from core.logging_config import get_logger
from core.packaging import (
    BOTTLE_VOLUME_TOLERANCE_L,
    BatchPackagingData,
    calculate_packaging_loss,
    determine_package_type,
    generate_lot_code,
    validate_abv_at_packaging,
    validate_batch_ready_for_packaging,
    validate_package_date,
)
from db.batch import Batch as BatchModel
from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from db.inventory.movement import InventoryMovement as InventoryMovementModel
from db.packaging import PackageSize as PackageSizeModel, PackagingRun as PackagingRunModel
from db.users import User
from db.vessel import Vessel as VesselModel
from routers.batches import _change_batch_volume
from routers.inventory import _apply_movement, _minor_from_price, _serialize_item
from schemas.packaging import (
    PackageSizeCreate,
    PackageSizeRead,
    PackagingQAUpdate,
    PackagingRunCreate,
    PackagingRunCreated,
    PackagingRunDetail,
    PackagingRunList,
    PackagingRunRead,
    PackagingRunVoid,
)

router = APIRouter()
log = get_logger(component="packaging")

PACKAGEABLE_VESSEL_STATUSES = ("in_use", "fermenting")
QA_FIELDS = (
    "fill_check",
    "fill_variance_ml",
    "abv_at_packaging",
    "carbonation_level",
    "test_method",
    "test_date",
    "qa_technician_id",
    "qa_notes",
)


def _add_one_year(d: date) -> date:
    try:
        return d.replace(year=d.year + 1)
    except ValueError:
        # Feb 29
        return d + timedelta(days=365)


def _serialize_run(run: PackagingRunModel) -> PackagingRunRead:
    batch = getattr(run, "batch", None)
    vessel = getattr(run, "vessel", None)
    return PackagingRunRead(
        id=run.id,
        batch_id=run.batch_id,
        batch_name=batch.name if batch else None,
        vessel_id=run.vessel_id,
        vessel_name=vessel.name if vessel else None,
        run_sequence=run.run_sequence,
        packaged_at=run.packaged_at,
        package_type=run.package_type,
        package_size_ml=run.package_size_ml,
        units_produced=run.units_produced,
        volume_taken_l=run.volume_taken_l,
        loss_l=run.loss_l,
        loss_percentage=run.loss_percentage,
        abv_at_packaging=run.abv_at_packaging,
        carbonation_level=run.carbonation_level,
        fill_check=run.fill_check,
        fill_variance_ml=run.fill_variance_ml,
        test_method=run.test_method,
        test_date=run.test_date,
        qa_technician_id=run.qa_technician_id,
        qa_notes=run.qa_notes,
        status=run.status,
        void_reason=run.void_reason,
        voided_at=run.voided_at,
        notes=run.notes,
    )


async def _load_run(db: AsyncSession, run_id: UUID) -> PackagingRunModel:
    res = await db.execute(
        select(PackagingRunModel)
        .options(
            selectinload(PackagingRunModel.batch),
            selectinload(PackagingRunModel.vessel),
            selectinload(PackagingRunModel.inventory_items).selectinload(InventoryItemModel.batch),
        )
        .where(PackagingRunModel.id == run_id)
        .execution_options(populate_existing=True)
    )
    run = res.scalar_one_or_none()
    if not run:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Packaging run not found")
    return run


@router.post("/runs", response_model=PackagingRunCreated, status_code=status.HTTP_201_CREATED)
async def create_from_cellar(
    payload: PackagingRunCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("create", "package")),
):
    packaged_at = payload.packaged_at or datetime.now()
    if packaged_at.tzinfo is not None:
        packaged_at = packaged_at.astimezone().replace(tzinfo=None)
    try:
        validate_package_date(packaged_at)
        validate_abv_at_packaging(payload.abv_at_packaging)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=extract_user_message(e))

    try:
        vessel = await db.get(VesselModel, payload.vessel_id)
        if not vessel:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vessel not found")
        if vessel.status not in PACKAGEABLE_VESSEL_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Vessel {vessel.name} is not ready for packaging (status: {vessel.status})",
            )

        res = await db.execute(
            select(BatchModel)
            .where(BatchModel.id == payload.batch_id)
            .where(BatchModel.vessel_id == vessel.id)
            .where(BatchModel.deleted_at.is_(None))
        )
        batch = res.scalar_one_or_none()
        if not batch:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found in this vessel")
        try:
            validate_batch_ready_for_packaging(
                BatchPackagingData(
                    id=batch.id, name=batch.name, current_volume_l=float(batch.current_volume_l), status=batch.status
                ),
                require_aging=False,
            )
        except PackagingValidationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=extract_user_message(e))

        loss = calculate_packaging_loss(payload.volume_taken_l, payload.units_produced, payload.package_size_ml)
        if loss["loss_l"] < -BOTTLE_VOLUME_TOLERANCE_L:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"{payload.units_produced} units of {payload.package_size_ml}ml need "
                    f"{loss['packaged_volume_l']}L but only {payload.volume_taken_l}L was taken"
                ),
            )

        # voided runs still count so lot codes never repeat
        previous_runs = (
            await db.execute(select(func.count()).select_from(PackagingRunModel).where(PackagingRunModel.batch_id == batch.id))
        ).scalar_one()
        sequence = int(previous_runs) + 1
        lot_code = generate_lot_code(batch.name, packaged_at.date(), sequence)
        package_type = determine_package_type(payload.package_size_ml)

        remaining = await _change_batch_volume(db, batch, -payload.volume_taken_l)
        if remaining is None:
            await db.refresh(batch, ["current_volume_l"])
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Insufficient volume in vessel. Available: {float(batch.current_volume_l)}L, "
                    f"Requested: {payload.volume_taken_l}L"
                ),
            )
        if remaining <= 0:
            vessel.status = "cleaning"

        run_id = uuid.uuid4()
        db.add(
            PackagingRunModel(
                id=run_id,
                batch_id=batch.id,
                vessel_id=vessel.id,
                run_sequence=sequence,
                packaged_at=packaged_at,
                package_type=package_type,
                package_size_ml=payload.package_size_ml,
                units_produced=payload.units_produced,
                volume_taken_l=payload.volume_taken_l,
                loss_l=loss["loss_l"],
                loss_percentage=loss["loss_percentage"],
                abv_at_packaging=payload.abv_at_packaging,
                status="completed",
                notes=payload.notes,
                created_by_user_id=user.id,
            )
        )

        item = InventoryItemModel(
            id=uuid.uuid4(),
            batch_id=batch.id,
            packaging_run_id=run_id,
            lot_code=lot_code,
            package_type=package_type,
            package_size_ml=payload.package_size_ml,
            current_quantity=0,
            retail_price_minor=_minor_from_price(payload.retail_price),
            wholesale_price_minor=_minor_from_price(payload.wholesale_price),
            expiration_date=_add_one_year(packaged_at.date()),
        )
        db.add(item)
        if payload.units_produced > 0:
            await _apply_movement(
                db=db,
                user=user,
                item=item,
                kind="PACKAGED",
                delta=payload.units_produced,
                reason=f"Packaging run {lot_code}",
                occurred_at=packaged_at,
            )

        await db.commit()
    except HTTPException:
        raise
    except Exception:
        await db.rollback()
        log.exception("create_from_cellar failed for batch {}", payload.batch_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create packaging run")

    log.bind(batch_id=str(batch.id), run_id=str(run_id)).info(
        "Packaged {} x {}ml as {} ({}L loss)", payload.units_produced, payload.package_size_ml, lot_code, loss["loss_l"]
    )
    return PackagingRunCreated(
        run_id=run_id,
        loss_l=loss["loss_l"],
        loss_percentage=loss["loss_percentage"],
        vessel_status=vessel.status,
        inventory_item_id=item.id,
        lot_code=lot_code,
    )


@router.get("/runs/{run_id}", response_model=PackagingRunDetail)
async def get_run(
    run_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "package")),
):
    run = await _load_run(db, run_id)
    return PackagingRunDetail(
        **_serialize_run(run).model_dump(),
        inventory=[_serialize_item(it) for it in run.inventory_items],
    )


@router.get("/runs", response_model=PackagingRunList)
async def list_runs(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    batch_id: Optional[UUID] = None,
    package_type: Optional[str] = Query(None, pattern="^(bottle|can|keg)$"),
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(completed|voided)$"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "package")),
):
    stmt = select(PackagingRunModel)
    if date_from:
        stmt = stmt.where(PackagingRunModel.packaged_at >= datetime.combine(date_from, time.min))
    if date_to:
        stmt = stmt.where(PackagingRunModel.packaged_at < datetime.combine(date_to, time.min) + timedelta(days=1))
    if batch_id:
        stmt = stmt.where(PackagingRunModel.batch_id == batch_id)
    if package_type:
        stmt = stmt.where(PackagingRunModel.package_type == package_type)
    if status_filter:
        stmt = stmt.where(PackagingRunModel.status == status_filter)

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    stmt = (
        stmt.options(selectinload(PackagingRunModel.batch), selectinload(PackagingRunModel.vessel))
        .order_by(PackagingRunModel.packaged_at.desc())
        .limit(limit)
        .offset(offset)
    )
    res = await db.execute(stmt)
    runs = [_serialize_run(r) for r in res.scalars().all()]
    return PackagingRunList(runs=runs, total=int(total), has_more=offset + len(runs) < total)


@router.patch("/runs/{run_id}/qa", response_model=PackagingRunRead)
async def update_qa(
    run_id: UUID,
    payload: PackagingQAUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "package")),
):
    run = await _load_run(db, run_id)
    if run.status == "voided":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cannot update QA on a voided run")

    data = payload.model_dump(exclude_unset=True)
    if data.get("qa_technician_id") is not None:
        tech = await db.get(User, data["qa_technician_id"])
        if not tech:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="QA technician not found")

    changes = {}
    for field in QA_FIELDS:
        if field not in data:
            continue
        old = getattr(run, field)
        new = data[field]
        if old != new:
            changes[field] = {"old": old, "new": new}
            setattr(run, field, new)

    if changes:
        await db.commit()
        log.bind(run_id=str(run.id)).info("QA updated by {}: {}", user.id, changes)
        run = await _load_run(db, run.id)
    return _serialize_run(run)


@router.post("/runs/{run_id}/void", response_model=PackagingRunRead)
async def void_run(
    run_id: UUID,
    payload: PackagingRunVoid,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("delete", "package")),
):
    try:
        run = await _load_run(db, run_id)
        if run.status == "voided":
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Packaging run already voided")

        item_ids = [it.id for it in run.inventory_items]
        if item_ids:
            moved = await db.execute(
                select(func.count())
                .select_from(InventoryMovementModel)
                .where(InventoryMovementModel.inventory_item_id.in_(item_ids))
                .where(InventoryMovementModel.kind != "PACKAGED")
            )
            if moved.scalar_one() > 0:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Cannot void a run whose units have already left inventory",
                )

        for it in run.inventory_items:
            qty = int(it.current_quantity or 0)
            if qty > 0:
                await _apply_movement(
                    db=db, user=user, item=it, kind="VOID", delta=-qty, reason=f"Run voided: {payload.reason}"
                )

        batch = run.batch
        await _change_batch_volume(db, batch, float(run.volume_taken_l))
        vessel = run.vessel
        if vessel is not None and vessel.status == "cleaning" and batch.vessel_id == vessel.id:
            vessel.status = "fermenting" if batch.status == "fermentation" else "in_use"

        run.status = "voided"
        run.void_reason = payload.reason
        run.voided_at = datetime.now()
        run.voided_by_user_id = user.id
        await db.commit()
    except HTTPException:
        raise
    except Exception:
        await db.rollback()
        log.exception("void failed for run {}", run_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to void packaging run")

    log.bind(run_id=str(run_id)).warning("Run voided by {}: {}", user.id, payload.reason)
    run = await _load_run(db, run_id)
    return _serialize_run(run)


@router.get("/package-sizes", response_model=List[PackageSizeRead])
async def get_package_sizes(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "package")),
):
    res = await db.execute(
        select(PackageSizeModel)
        .where(PackageSizeModel.is_active.is_(True))
        .order_by(PackageSizeModel.sort_order.asc(), PackageSizeModel.size_ml.asc())
    )
    return [PackageSizeRead(**s.to_schema) for s in res.scalars().all()]


@router.post("/package-sizes", response_model=PackageSizeRead, status_code=status.HTTP_201_CREATED)
async def create_package_size(
    payload: PackageSizeCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_admin),
):
    package_type = payload.package_type or determine_package_type(payload.size_ml)
    existing = await db.execute(
        select(PackageSizeModel)
        .where(PackageSizeModel.size_ml == payload.size_ml)
        .where(PackageSizeModel.package_type == package_type)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Package size already exists")

    m = PackageSizeModel(
        size_ml=payload.size_ml,
        size_oz=payload.size_oz,
        display_name=payload.display_name,
        package_type=package_type,
        sort_order=payload.sort_order,
        is_active=True,
    )
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return PackageSizeRead(**m.to_schema)
