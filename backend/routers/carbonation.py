from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import require_permission
from core.carbonation import (
    calculate_co2_from_sugar,
    calculate_co2_volumes,
    calculate_priming_sugar,
    calculate_required_pressure,
    estimate_carbonation_duration,
    get_carbonation_level,
    is_pressure_safe,
    validate_temperature,
)
from core.config import settings
from core.logging_config import get_logger
from core.units import round_half_up, to_liters
from db.batch import Batch as BatchModel
from db.carbonation import CarbonationOperation as CarbonationModel
from db.database import get_async_session
from db.users import User
from db.vessel import Vessel as VesselModel
from schemas.carbonation import (
    ActiveCarbonation,
    CarbonationComplete,
    CarbonationRead,
    CarbonationStart,
    CarbonationStartResponse,
    PressureAlternative,
    PrimingSugarRequest,
    PrimingSugarResponse,
    SuggestionRequest,
    SuggestionResponse,
)

router = APIRouter()
log = get_logger(component="carbonation")

DEFAULT_ESTIMATED_HOURS = 48.0
TARGET_TOLERANCE_VOLUMES = 0.3
HIGH_CO2_THRESHOLD = 2.5


def _serialize(op: CarbonationModel) -> CarbonationRead:
    batch = getattr(op, "batch", None)
    vessel = getattr(op, "vessel", None)
    return CarbonationRead(
        id=op.id,
        batch_id=op.batch_id,
        batch_name=batch.name if batch else None,
        vessel_id=op.vessel_id,
        vessel_name=vessel.name if vessel else None,
        process=op.process,
        gas_type=op.gas_type,
        started_at=op.started_at,
        completed_at=op.completed_at,
        target_co2_volumes=op.target_co2_volumes,
        starting_co2_volumes=op.starting_co2_volumes,
        starting_temperature_c=op.starting_temperature_c,
        pressure_applied_psi=op.pressure_applied_psi,
        suggested_pressure_psi=op.suggested_pressure_psi,
        starting_volume_l=op.starting_volume_l,
        priming_sugar_g=op.priming_sugar_g,
        priming_sugar_type=op.priming_sugar_type,
        final_co2_volumes=op.final_co2_volumes,
        final_pressure_psi=op.final_pressure_psi,
        final_temperature_c=op.final_temperature_c,
        final_volume_l=op.final_volume_l,
        duration_hours=op.duration_hours,
        target_met=op.target_met,
        quality_check=op.quality_check,
        notes=op.notes,
    )


def _hours_between(start: datetime, end: datetime) -> float:
    return round(max(0.0, (end - start).total_seconds() / 3600), 1)


async def _load_operation(db: AsyncSession, operation_id: UUID) -> CarbonationModel:
    res = await db.execute(
        select(CarbonationModel)
        .options(selectinload(CarbonationModel.batch), selectinload(CarbonationModel.vessel))
        .where(CarbonationModel.id == operation_id)
        .execution_options(populate_existing=True)
    )
    op = res.scalar_one_or_none()
    if not op:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Carbonation operation not found")
    return op


@router.post("/start", response_model=CarbonationStartResponse, status_code=status.HTTP_201_CREATED)
async def start_carbonation(
    payload: CarbonationStart,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "batch")),
):
    temperature_warning = None
    if payload.starting_temperature_c is not None:
        check = validate_temperature(payload.starting_temperature_c)
        if not check["is_valid"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=check["message"])
        temperature_warning = check["message"]

    res = await db.execute(
        select(BatchModel).where(BatchModel.id == payload.batch_id).where(BatchModel.deleted_at.is_(None))
    )
    batch = res.scalar_one_or_none()
    if not batch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")

    if payload.vessel_id is not None:
        vessel = await db.get(VesselModel, payload.vessel_id)
        if not vessel:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vessel not found")
        if payload.process != "bottle_conditioning" and payload.pressure_applied_psi is not None:
            max_psi = (
                float(vessel.max_pressure_psi)
                if vessel.max_pressure_psi is not None
                else settings.default_vessel_max_pressure_psi
            )
            if not is_pressure_safe(payload.pressure_applied_psi, max_psi):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Pressure {payload.pressure_applied_psi} PSI exceeds safe limit for this vessel (max: {max_psi} PSI)",
                )

    active = await db.execute(
        select(CarbonationModel.id)
        .where(CarbonationModel.batch_id == batch.id)
        .where(CarbonationModel.completed_at.is_(None))
    )
    if active.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Batch already has an active carbonation operation",
        )

    volume_l = to_liters(payload.starting_volume, payload.starting_volume_unit)

    suggested = None
    if payload.starting_temperature_c is not None:
        suggested = calculate_required_pressure(payload.target_co2_volumes, payload.starting_temperature_c)

    sugar_g = payload.priming_sugar_amount_g
    if payload.process == "bottle_conditioning" and sugar_g is None and payload.priming_sugar_type:
        sugar_g = calculate_priming_sugar(
            payload.target_co2_volumes,
            volume_l,
            residual_co2=payload.starting_co2_volumes or 0.0,
            sugar_type=payload.priming_sugar_type,
        )

    op = CarbonationModel(
        batch_id=batch.id,
        vessel_id=payload.vessel_id,
        process=payload.process,
        gas_type=payload.gas_type,
        started_at=payload.started_at or datetime.now(),
        target_co2_volumes=payload.target_co2_volumes,
        starting_co2_volumes=payload.starting_co2_volumes,
        starting_temperature_c=payload.starting_temperature_c,
        pressure_applied_psi=payload.pressure_applied_psi,
        suggested_pressure_psi=suggested,
        starting_volume_l=volume_l,
        priming_sugar_g=sugar_g,
        priming_sugar_type=payload.priming_sugar_type,
        notes=payload.notes,
        created_by_user_id=user.id,
    )
    db.add(op)
    await db.commit()

    op = await _load_operation(db, op.id)
    log.bind(batch_id=str(batch.id)).info(
        "Carbonation started: {} to {} vol", payload.process, payload.target_co2_volumes
    )
    return CarbonationStartResponse(
        carbonation=_serialize(op),
        carbonation_level=get_carbonation_level(payload.target_co2_volumes),
        temperature_warning=temperature_warning,
    )


@router.post("/{operation_id}/complete", response_model=CarbonationRead)
async def complete_carbonation(
    operation_id: UUID,
    payload: CarbonationComplete,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "batch")),
):
    op = await _load_operation(db, operation_id)
    if op.completed_at is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Carbonation operation already completed")

    completed_at = payload.completed_at or datetime.now()
    if completed_at < op.started_at:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Completion time is before the start time")

    op.completed_at = completed_at
    op.final_co2_volumes = payload.final_co2_volumes
    op.final_pressure_psi = payload.final_pressure_psi
    op.final_temperature_c = payload.final_temperature_c
    if payload.final_volume is not None:
        op.final_volume_l = to_liters(payload.final_volume, payload.final_volume_unit)
    op.duration_hours = _hours_between(op.started_at, completed_at)
    op.target_met = abs(payload.final_co2_volumes - float(op.target_co2_volumes)) < TARGET_TOLERANCE_VOLUMES
    op.quality_check = payload.quality_check
    if payload.notes:
        op.notes = f"{op.notes}\n{payload.notes}" if op.notes else payload.notes
    op.completed_by_user_id = user.id

    await db.commit()
    op = await _load_operation(db, op.id)
    log.bind(batch_id=str(op.batch_id)).info(
        "Carbonation completed after {}h, target met: {}", op.duration_hours, op.target_met
    )
    return _serialize(op)


@router.get("/", response_model=List[CarbonationRead])
async def list_carbonations(
    batch_id: Optional[UUID] = None,
    vessel_id: Optional[UUID] = None,
    active_only: bool = False,
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "batch")),
):
    stmt = select(CarbonationModel).options(
        selectinload(CarbonationModel.batch), selectinload(CarbonationModel.vessel)
    )
    if batch_id:
        stmt = stmt.where(CarbonationModel.batch_id == batch_id)
    if vessel_id:
        stmt = stmt.where(CarbonationModel.vessel_id == vessel_id)
    if active_only:
        stmt = stmt.where(CarbonationModel.completed_at.is_(None))
    stmt = stmt.order_by(CarbonationModel.started_at.desc()).limit(limit)
    res = await db.execute(stmt)
    return [_serialize(op) for op in res.scalars().all()]


@router.get("/active", response_model=List[ActiveCarbonation])
async def list_active_carbonations(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "batch")),
):
    res = await db.execute(
        select(CarbonationModel)
        .options(selectinload(CarbonationModel.batch), selectinload(CarbonationModel.vessel))
        .where(CarbonationModel.completed_at.is_(None))
        .order_by(CarbonationModel.started_at.asc())
    )
    now = datetime.now()
    out: List[ActiveCarbonation] = []
    for op in res.scalars().all():
        elapsed = _hours_between(op.started_at, now)
        estimated = DEFAULT_ESTIMATED_HOURS
        if op.pressure_applied_psi and op.process != "bottle_conditioning":
            estimate = estimate_carbonation_duration(
                float(op.starting_co2_volumes or 0.0),
                float(op.target_co2_volumes),
                float(op.pressure_applied_psi),
            )
            if estimate > 0:
                estimated = estimate
        out.append(
            ActiveCarbonation(
                **_serialize(op).model_dump(),
                hours_elapsed=elapsed,
                estimated_hours=estimated,
                percent_complete=min(100, int(round_half_up(elapsed / estimated * 100))),
                is_overdue=elapsed > estimated * 1.2,
            )
        )
    return out


def _method_recommendation(target_co2: float) -> str:
    if target_co2 >= HIGH_CO2_THRESHOLD:
        return "Carbonation stone recommended for high CO2"
    return "Headspace pressure is sufficient"


@router.post("/suggestions", response_model=SuggestionResponse)
async def calculate_suggestions(
    payload: SuggestionRequest,
    user: User = Depends(require_permission("read", "batch")),
):
    check = validate_temperature(payload.temperature_c)
    if not check["is_valid"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=check["message"])

    required = calculate_required_pressure(payload.target_co2_volumes, payload.temperature_c)
    safe = is_pressure_safe(required, payload.max_pressure_psi)

    alternatives: List[PressureAlternative] = []
    for delta in (-2, 2):
        t = payload.temperature_c + delta
        if t < 0 or t > 20:
            continue
        p = calculate_required_pressure(payload.target_co2_volumes, t)
        alternatives.append(
            PressureAlternative(temperature_c=t, required_pressure_psi=p, is_safe=is_pressure_safe(p, payload.max_pressure_psi))
        )

    recommendations = [_method_recommendation(payload.target_co2_volumes)]
    if not safe:
        recommendations.append(
            f"Required pressure {required} PSI exceeds the {payload.max_pressure_psi} PSI limit; "
            "chill the cider or lower the target"
        )
    if not check["is_optimal"]:
        recommendations.append(check["message"])

    return SuggestionResponse(
        required_pressure_psi=required,
        is_safe=safe,
        estimated_duration_hours=estimate_carbonation_duration(
            payload.current_co2_volumes, payload.target_co2_volumes, required
        ),
        expected_co2_volumes=calculate_co2_volumes(required, payload.temperature_c),
        carbonation_level=get_carbonation_level(payload.target_co2_volumes),
        temperature_message=check["message"],
        alternatives=alternatives,
        recommendations=recommendations,
    )


@router.post("/priming-sugar", response_model=PrimingSugarResponse)
async def priming_sugar(
    payload: PrimingSugarRequest,
    user: User = Depends(require_permission("read", "batch")),
):
    volume_l = to_liters(payload.volume, payload.volume_unit)
    grams = calculate_priming_sugar(
        payload.target_co2_volumes,
        volume_l,
        residual_co2=payload.residual_co2_volumes,
        sugar_type=payload.sugar_type,
    )
    g_per_l = round(grams / volume_l, 2)
    expected = calculate_co2_from_sugar(g_per_l, payload.residual_co2_volumes, payload.sugar_type)
    return PrimingSugarResponse(
        sugar_type=payload.sugar_type,
        sugar_g=grams,
        sugar_g_per_l=g_per_l,
        volume_l=round(volume_l, 3),
        expected_co2_volumes=expected,
        carbonation_level=get_carbonation_level(expected),
    )
