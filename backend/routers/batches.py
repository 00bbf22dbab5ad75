from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from core.abv import calculate_abv, calculate_potential_abv
from core.auth import require_permission
from core.logging_config import get_logger
from core.units import to_liters
from db.batch import (
    Batch as BatchModel,
    BatchAdditive as BatchAdditiveModel,
    BatchCellarOperation as BatchCellarOperationModel,
    BatchMeasurement as BatchMeasurementModel,
)
from db.database import get_async_session
from db.users import User
from db.vessel import Vessel as VesselModel
from schemas.batches import (
    AdditiveCreate,
    AdditiveRead,
    BatchCreate,
    BatchDetail,
    BatchList,
    BatchRead,
    BatchUpdate,
    CellarOperationCreate,
    CellarOperationRead,
    MeasurementCreate,
    MeasurementRead,
)

router = APIRouter()
log = get_logger(component="batches")

_SORT_COLUMNS = {
    "name": BatchModel.name,
    "start_date": BatchModel.start_date,
    "status": BatchModel.status,
}


def _serialize_batch(b: BatchModel) -> BatchRead:
    vessel = getattr(b, "vessel", None)
    return BatchRead(
        id=b.id,
        name=b.name,
        status=b.status,
        vessel_id=b.vessel_id,
        vessel_name=vessel.name if vessel else None,
        initial_volume_l=float(b.initial_volume_l),
        current_volume_l=float(b.current_volume_l),
        original_gravity=b.original_gravity,
        start_date=b.start_date,
        end_date=b.end_date,
        notes=b.notes,
    )


def _serialize_measurement(m: BatchMeasurementModel) -> MeasurementRead:
    return MeasurementRead(
        id=m.id,
        batch_id=m.batch_id,
        measured_at=m.measured_at,
        specific_gravity=m.specific_gravity,
        abv=m.abv,
        ph=m.ph,
        total_acidity=m.total_acidity,
        temperature_c=m.temperature_c,
        volume_l=m.volume_l,
        notes=m.notes,
    )


def _safe_abv(og: Optional[float], sg: Optional[float]) -> Optional[float]:
    if og is None or sg is None:
        return None
    try:
        return calculate_abv(og, sg)
    except ValueError:
        return None


async def _get_batch_or_404(db: AsyncSession, batch_id: UUID) -> BatchModel:
    res = await db.execute(
        select(BatchModel)
        .options(selectinload(BatchModel.vessel))
        .where(BatchModel.id == batch_id)
        .where(BatchModel.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    b = res.scalar_one_or_none()
    if not b:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    return b


async def _claim_vessel(db: AsyncSession, vessel_id: UUID, batch_status: str) -> VesselModel:
    vessel = await db.get(VesselModel, vessel_id)
    if not vessel:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vessel not found")
    if vessel.status != "available":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Vessel {vessel.name} is not available (status: {vessel.status})",
        )
    vessel.status = "fermenting" if batch_status == "fermentation" else "in_use"
    return vessel


async def _change_batch_volume(db: AsyncSession, batch: BatchModel, delta_l: float) -> Optional[float]:
    """Move the batch's current volume by `delta_l` in one conditional UPDATE.

    Returns the new volume, or None when the batch holds less than is being taken.
    """
    tbl = BatchModel.__table__
    res = await db.execute(
        update(tbl)
        .where(tbl.c.id == batch.id)
        .where(tbl.c.current_volume_l + delta_l >= 0)
        .values(current_volume_l=func.round(tbl.c.current_volume_l + delta_l, 3))
        .returning(tbl.c.current_volume_l)
    )
    remaining = res.scalar_one_or_none()
    if remaining is not None:
        set_committed_value(batch, "current_volume_l", float(remaining))
    return remaining


@router.get("/", response_model=BatchList)
async def list_batches(
    status_filter: Optional[str] = Query(None, alias="status"),
    vessel_id: Optional[UUID] = None,
    search: Optional[str] = None,
    sort: str = Query("start_date", pattern="^(name|start_date|status)$"),
    direction: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "batch")),
):
    stmt = select(BatchModel).where(BatchModel.deleted_at.is_(None))
    if status_filter:
        stmt = stmt.where(BatchModel.status == status_filter)
    if vessel_id:
        stmt = stmt.where(BatchModel.vessel_id == vessel_id)
    if search and search.strip():
        stmt = stmt.where(BatchModel.name.ilike(f"%{search.strip()}%"))

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    col = _SORT_COLUMNS[sort]
    stmt = (
        stmt.options(selectinload(BatchModel.vessel))
        .order_by(col.asc() if direction == "asc" else col.desc(), BatchModel.id)
        .limit(limit)
        .offset(offset)
    )
    res = await db.execute(stmt)
    batches = [_serialize_batch(b) for b in res.scalars().all()]
    return BatchList(batches=batches, total=int(total), has_more=offset + len(batches) < total)


@router.get("/{batch_id}", response_model=BatchDetail)
async def get_batch(
    batch_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "batch")),
):
    b = await _get_batch_or_404(db, batch_id)

    res = await db.execute(
        select(BatchMeasurementModel)
        .where(BatchMeasurementModel.batch_id == b.id)
        .order_by(BatchMeasurementModel.measured_at.desc())
        .limit(1)
    )
    latest = res.scalar_one_or_none()

    potential = None
    if b.original_gravity is not None:
        try:
            potential = calculate_potential_abv(b.original_gravity)
        except ValueError:
            potential = None

    estimated = None
    if latest is not None:
        estimated = latest.abv if latest.abv is not None else _safe_abv(b.original_gravity, latest.specific_gravity)

    return BatchDetail(
        **_serialize_batch(b).model_dump(),
        latest_measurement=_serialize_measurement(latest) if latest else None,
        estimated_abv=estimated,
        potential_abv=potential,
    )


@router.post("/", response_model=BatchRead, status_code=status.HTTP_201_CREATED)
async def create_batch(
    payload: BatchCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("create", "batch")),
):
    existing = await db.execute(select(BatchModel).where(func.lower(BatchModel.name) == payload.name.lower()))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Batch name already exists")

    volume_l = to_liters(payload.initial_volume, payload.volume_unit)

    if payload.vessel_id:
        vessel = await _claim_vessel(db, payload.vessel_id, payload.status)
        if volume_l > float(vessel.capacity_l):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Volume {volume_l:.1f}L exceeds vessel capacity {float(vessel.capacity_l):.1f}L",
            )

    b = BatchModel(
        name=payload.name,
        status=payload.status,
        vessel_id=payload.vessel_id,
        initial_volume_l=volume_l,
        current_volume_l=volume_l,
        original_gravity=payload.original_gravity,
        start_date=payload.start_date or date.today(),
        notes=payload.notes,
    )
    db.add(b)
    await db.commit()
    b = await _get_batch_or_404(db, b.id)
    log.bind(batch_id=str(b.id)).info("Batch {} created ({:.1f}L)", b.name, volume_l)
    return _serialize_batch(b)


@router.patch("/{batch_id}", response_model=BatchRead)
async def update_batch(
    batch_id: UUID,
    payload: BatchUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "batch")),
):
    b = await _get_batch_or_404(db, batch_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("name"):
        name = data["name"].strip()
        dup = await db.execute(
            select(BatchModel).where(func.lower(BatchModel.name) == name.lower()).where(BatchModel.id != b.id)
        )
        if dup.scalar_one_or_none():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Batch name already exists")
        b.name = name

    vessel = b.vessel
    if "vessel_id" in data and data["vessel_id"] != b.vessel_id:
        if vessel is not None:
            vessel.status = "cleaning"
        vessel = None
        if data["vessel_id"] is not None:
            vessel = await _claim_vessel(db, data["vessel_id"], data.get("status") or b.status)
        b.vessel_id = data["vessel_id"]

    new_status = data.get("status")
    if new_status and new_status != b.status:
        if new_status in ("completed", "discarded"):
            b.end_date = b.end_date or date.today()
            if vessel is not None:
                vessel.status = "cleaning"
        elif vessel is not None and vessel.status in ("fermenting", "in_use"):
            vessel.status = "fermenting" if new_status == "fermentation" else "in_use"
        log.bind(batch_id=str(b.id)).info("Batch status {} -> {}", b.status, new_status)
        b.status = new_status

    if "original_gravity" in data:
        b.original_gravity = data["original_gravity"]
    if "notes" in data:
        b.notes = data["notes"]

    await db.commit()
    b = await _get_batch_or_404(db, b.id)
    return _serialize_batch(b)


@router.delete("/{batch_id}", response_model=BatchRead)
async def delete_batch(
    batch_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("delete", "batch")),
):
    b = await _get_batch_or_404(db, batch_id)
    out = _serialize_batch(b)
    if b.vessel is not None and b.vessel.status in ("fermenting", "in_use"):
        b.vessel.status = "cleaning"
    b.deleted_at = datetime.now()
    await db.commit()
    log.bind(batch_id=str(b.id)).info("Batch {} deleted by {}", b.name, user.id)
    return out


@router.post("/{batch_id}/measurements", response_model=MeasurementRead, status_code=status.HTTP_201_CREATED)
async def add_measurement(
    batch_id: UUID,
    payload: MeasurementCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("create", "measurement")),
):
    b = await _get_batch_or_404(db, batch_id)

    abv = payload.abv
    if abv is None:
        abv = _safe_abv(b.original_gravity, payload.specific_gravity)

    m = BatchMeasurementModel(
        batch_id=b.id,
        measured_at=payload.measured_at or datetime.now(),
        specific_gravity=payload.specific_gravity,
        abv=abv,
        ph=payload.ph,
        total_acidity=payload.total_acidity,
        temperature_c=payload.temperature_c,
        volume_l=to_liters(payload.volume, payload.volume_unit) if payload.volume is not None else None,
        notes=payload.notes,
        taken_by_user_id=user.id,
    )
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return _serialize_measurement(m)


@router.get("/{batch_id}/measurements", response_model=List[MeasurementRead])
async def list_measurements(
    batch_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "measurement")),
):
    b = await _get_batch_or_404(db, batch_id)
    res = await db.execute(
        select(BatchMeasurementModel)
        .where(BatchMeasurementModel.batch_id == b.id)
        .order_by(BatchMeasurementModel.measured_at.asc())
    )
    return [_serialize_measurement(m) for m in res.scalars().all()]


@router.post("/{batch_id}/additives", response_model=AdditiveRead, status_code=status.HTTP_201_CREATED)
async def add_additive(
    batch_id: UUID,
    payload: AdditiveCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "batch")),
):
    b = await _get_batch_or_404(db, batch_id)
    a = BatchAdditiveModel(
        batch_id=b.id,
        additive_type=payload.additive_type,
        name=payload.name,
        amount=payload.amount,
        unit=payload.unit,
        added_at=payload.added_at or datetime.now(),
        notes=payload.notes,
        added_by_user_id=user.id,
    )
    db.add(a)
    await db.commit()
    await db.refresh(a)
    return AdditiveRead(
        id=a.id,
        batch_id=a.batch_id,
        additive_type=a.additive_type,
        name=a.name,
        amount=a.amount,
        unit=a.unit,
        added_at=a.added_at,
        notes=a.notes,
    )


@router.get("/{batch_id}/additives", response_model=List[AdditiveRead])
async def list_additives(
    batch_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "batch")),
):
    b = await _get_batch_or_404(db, batch_id)
    res = await db.execute(
        select(BatchAdditiveModel).where(BatchAdditiveModel.batch_id == b.id).order_by(BatchAdditiveModel.added_at.asc())
    )
    return [
        AdditiveRead(
            id=a.id,
            batch_id=a.batch_id,
            additive_type=a.additive_type,
            name=a.name,
            amount=a.amount,
            unit=a.unit,
            added_at=a.added_at,
            notes=a.notes,
        )
        for a in res.scalars().all()
    ]


def _serialize_cellar_operation(op: BatchCellarOperationModel) -> CellarOperationRead:
    return CellarOperationRead(
        id=op.id,
        batch_id=op.batch_id,
        operation_type=op.operation_type,
        performed_at=op.performed_at,
        volume_before_l=op.volume_before_l,
        volume_after_l=op.volume_after_l,
        volume_loss_l=op.volume_loss_l,
        notes=op.notes,
    )


@router.post("/{batch_id}/cellar-operations", response_model=CellarOperationRead, status_code=status.HTTP_201_CREATED)
async def record_cellar_operation(
    batch_id: UUID,
    payload: CellarOperationCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "batch")),
):
    b = await _get_batch_or_404(db, batch_id)
    before = float(b.current_volume_l)
    after = to_liters(payload.volume_after, payload.volume_unit)
    if after > before:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Volume after {payload.operation_type} ({after:.2f}L) cannot exceed current volume ({before:.2f}L)",
        )

    op = BatchCellarOperationModel(
        batch_id=b.id,
        operation_type=payload.operation_type,
        performed_at=payload.performed_at or datetime.now(),
        volume_before_l=before,
        volume_after_l=after,
        volume_loss_l=round(before - after, 3),
        notes=payload.notes,
        created_by_user_id=user.id,
    )
    tbl = BatchModel.__table__
    res = await db.execute(
        update(tbl)
        .where(tbl.c.id == b.id)
        .where(tbl.c.current_volume_l == before)
        .values(current_volume_l=after)
    )
    if res.rowcount == 0:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Batch volume changed while recording the operation; reload and try again",
        )
    set_committed_value(b, "current_volume_l", after)
    db.add(op)
    await db.commit()
    await db.refresh(op)
    log.bind(batch_id=str(b.id)).info("{} lost {:.2f}L", payload.operation_type, before - after)
    return _serialize_cellar_operation(op)


@router.get("/{batch_id}/cellar-operations", response_model=List[CellarOperationRead])
async def list_cellar_operations(
    batch_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "batch")),
):
    b = await _get_batch_or_404(db, batch_id)
    res = await db.execute(
        select(BatchCellarOperationModel)
        .where(BatchCellarOperationModel.batch_id == b.id)
        .order_by(BatchCellarOperationModel.performed_at.asc())
    )
    return [_serialize_cellar_operation(op) for op in res.scalars().all()]
