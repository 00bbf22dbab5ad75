from datetime import date, datetime, time, timedelta
from typing import Literal, Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import and_, extract, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_admin, require_permission
from core.exports import EXPORT_FORMATS, export_form
from core.logging_config import get_logger
from core.ttb import (
    HARD_CIDER_TAX_RATE,
    SMALL_PRODUCER_CREDIT_LIMIT_GALLONS,
    calculate_hard_cider_tax,
    calculate_reconciliation,
    format_period_label,
    get_period_date_range,
    liters_to_wine_gallons,
    ml_to_wine_gallons,
    round_gallons,
)
from core.units import convert_weight, to_liters
from db.batch import Batch as BatchModel, BatchCellarOperation as CellarOperationModel
from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from db.inventory.movement import InventoryMovement as InventoryMovementModel
from db.packaging import PackagingRun as PackagingRunModel
from db.purchase_order import PurchaseOrder as PurchaseOrderModel, PurchaseOrderItem as PurchaseOrderItemModel
from db.sales_channel import TTB_CHANNEL_CODES, SalesChannel as SalesChannelModel
from db.ttb import TTBOpeningBalance as OpeningBalanceModel, TTBReport as TTBReportModel
from db.users import User
from schemas.ttb import (
    FormResponse,
    OpeningBalances,
    OpeningBalancesUpdate,
    PeriodRequest,
    ReconciliationSummary,
    ReportSnapshotCreate,
    TTBReportList,
    TTBReportRead,
)

router = APIRouter()
log = get_logger(component="ttb")


def _day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """[start 00:00, day after end 00:00) for filtering datetime columns."""
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


async def _scalar_float(db: AsyncSession, stmt) -> float:
    value = (await db.execute(stmt)).scalar_one()
    return float(value or 0)


async def _beginning_inventory(db: AsyncSession, start: date) -> Tuple[dict, str]:
    res = await db.execute(
        select(TTBReportModel)
        .where(TTBReportModel.status == "finalized")
        .where(TTBReportModel.period_end < start)
        .order_by(TTBReportModel.period_end.desc())
        .limit(1)
    )
    previous = res.scalar_one_or_none()
    if previous:
        bulk = float(previous.ending_inventory_bulk_gallons or 0)
        bottled = float(previous.ending_inventory_bottled_gallons or 0)
        return (
            {"bulk": round_gallons(bulk), "bottled": round_gallons(bottled), "total": round_gallons(bulk + bottled)},
            "snapshot",
        )

    opening = await db.get(OpeningBalanceModel, 1)
    if opening and opening.balance_date and start >= opening.balance_date:
        bulk = sum(float(v or 0) for v in (opening.bulk or {}).values())
        bottled = sum(float(v or 0) for v in (opening.bottled or {}).values())
        return (
            {"bulk": round_gallons(bulk), "bottled": round_gallons(bottled), "total": round_gallons(bulk + bottled)},
            "ttb_opening_balance",
        )

    day_before = start - timedelta(days=1)
    bulk_l = await _scalar_float(
        db,
        select(func.coalesce(func.sum(BatchModel.current_volume_l), 0)).where(
            BatchModel.deleted_at.is_(None),
            BatchModel.start_date <= day_before,
            or_(BatchModel.end_date.is_(None), BatchModel.end_date >= start),
        ),
    )
    bottled_ml = await _scalar_float(
        db,
        select(
            func.coalesce(func.sum(InventoryItemModel.current_quantity * InventoryItemModel.package_size_ml), 0)
        ).where(InventoryItemModel.created_at < datetime.combine(start, time.min)),
    )
    bulk = liters_to_wine_gallons(bulk_l)
    bottled = ml_to_wine_gallons(bottled_ml)
    return (
        {"bulk": round_gallons(bulk), "bottled": round_gallons(bottled), "total": round_gallons(bulk + bottled)},
        "calculated",
    )


async def _tax_paid_removals(db: AsyncSession, start_dt: datetime, end_dt: datetime) -> dict:
    res = await db.execute(
        select(
            SalesChannelModel.code,
            func.coalesce(func.sum(-InventoryMovementModel.change * InventoryItemModel.package_size_ml), 0),
        )
        .select_from(InventoryMovementModel)
        .join(InventoryItemModel, InventoryMovementModel.inventory_item_id == InventoryItemModel.id)
        .outerjoin(SalesChannelModel, InventoryMovementModel.sales_channel_id == SalesChannelModel.id)
        .where(InventoryMovementModel.kind == "DISTRIBUTION")
        .where(InventoryMovementModel.occurred_at >= start_dt)
        .where(InventoryMovementModel.occurred_at < end_dt)
        .group_by(SalesChannelModel.code)
    )
    totals = {code: 0.0 for code in TTB_CHANNEL_CODES}
    totals["uncategorized"] = 0.0
    for code, total_ml in res.all():
        key = code if code in TTB_CHANNEL_CODES else "uncategorized"
        totals[key] += ml_to_wine_gallons(float(total_ml or 0))

    out = {k: round_gallons(v) for k, v in totals.items()}
    out["total"] = round_gallons(sum(totals.values()))
    return out


async def _other_removals(db: AsyncSession, start_dt: datetime, end_dt: datetime) -> dict:
    res = await db.execute(
        select(
            InventoryMovementModel.adjustment_type,
            func.coalesce(func.sum(-InventoryMovementModel.change * InventoryItemModel.package_size_ml), 0),
        )
        .select_from(InventoryMovementModel)
        .join(InventoryItemModel, InventoryMovementModel.inventory_item_id == InventoryItemModel.id)
        .where(InventoryMovementModel.kind == "ADJUSTMENT")
        .where(InventoryMovementModel.change < 0)
        .where(InventoryMovementModel.occurred_at >= start_dt)
        .where(InventoryMovementModel.occurred_at < end_dt)
        .group_by(InventoryMovementModel.adjustment_type)
    )
    samples = 0.0
    breakage = 0.0
    for adjustment_type, total_ml in res.all():
        if adjustment_type == "sample":
            samples += ml_to_wine_gallons(float(total_ml or 0))
        elif adjustment_type == "breakage":
            breakage += ml_to_wine_gallons(float(total_ml or 0))

    losses_l = await _scalar_float(
        db,
        select(func.coalesce(func.sum(CellarOperationModel.volume_loss_l), 0)).where(
            CellarOperationModel.performed_at >= start_dt,
            CellarOperationModel.performed_at < end_dt,
        ),
    )
    losses = liters_to_wine_gallons(losses_l)
    return {
        "samples": round_gallons(samples),
        "breakage": round_gallons(breakage),
        "process_losses": round_gallons(losses),
        "spoilage": 0,
        "total": round_gallons(samples + breakage + losses),
    }


async def _ending_inventory(db: AsyncSession, end: date, end_dt: datetime) -> dict:
    bulk_l = await _scalar_float(
        db,
        select(func.coalesce(func.sum(BatchModel.current_volume_l), 0)).where(
            BatchModel.deleted_at.is_(None),
            BatchModel.start_date <= end,
            or_(BatchModel.end_date.is_(None), BatchModel.end_date >= end),
        ),
    )
    bottled_ml = await _scalar_float(
        db,
        select(
            func.coalesce(func.sum(InventoryItemModel.current_quantity * InventoryItemModel.package_size_ml), 0)
        ).where(InventoryItemModel.created_at < end_dt),
    )
    bulk = liters_to_wine_gallons(bulk_l)
    bottled = ml_to_wine_gallons(bottled_ml)
    return {"bulk": round_gallons(bulk), "bottled": round_gallons(bottled), "total": round_gallons(bulk + bottled)}


async def _materials(db: AsyncSession, start: date, end: date) -> dict:
    res = await db.execute(
        select(
            PurchaseOrderItemModel.material_type,
            PurchaseOrderItemModel.name,
            PurchaseOrderItemModel.fruit_type,
            PurchaseOrderItemModel.quantity,
            PurchaseOrderItemModel.unit,
        )
        .join(PurchaseOrderModel, PurchaseOrderItemModel.order_id == PurchaseOrderModel.id)
        .where(PurchaseOrderModel.status == "RECEIVED")
        .where(and_(PurchaseOrderModel.received_date >= start, PurchaseOrderModel.received_date <= end))
    )

    apples_lbs = other_fruit_lbs = juice_l = sugar_lbs = honey_lbs = 0.0
    for material_type, name, fruit_type, quantity, unit in res.all():
        qty = float(quantity or 0)
        try:
            if material_type == "basefruit":
                lbs = convert_weight(qty, unit, "lb")
                if fruit_type == "other":
                    other_fruit_lbs += lbs
                else:
                    apples_lbs += lbs
            elif material_type == "juice":
                juice_l += to_liters(qty, unit)
            elif material_type == "additive":
                lowered = (name or "").lower()
                if "sugar" in lowered:
                    sugar_lbs += convert_weight(qty, unit, "lb")
                elif "honey" in lowered:
                    honey_lbs += convert_weight(qty, unit, "lb")
        except ValueError:
            log.warning("Skipping {} line {!r}: unit {} does not fit", material_type, name, unit)

    return {
        "apples_received_lbs": round(apples_lbs),
        "apples_used_lbs": round(apples_lbs),
        "apple_juice_gallons": round_gallons(liters_to_wine_gallons(juice_l)),
        "other_fruit_received_lbs": round(other_fruit_lbs),
        "other_fruit_used_lbs": round(other_fruit_lbs),
        "sugar_received_lbs": round(sugar_lbs),
        "sugar_used_lbs": round(sugar_lbs),
        "honey_received_lbs": round(honey_lbs),
        "honey_used_lbs": round(honey_lbs),
    }


async def build_form_512017(
    db: AsyncSession, period_type: str, year: int, period_number: Optional[int] = None
) -> Tuple[dict, str, str]:
    """Aggregate batches, packaging, inventory and purchases into 5120.17 form data.

    Returns ``(form_data, period_label, beginning_inventory_source)``.
    """
    start, end = get_period_date_range(period_type, year, period_number)
    period_label = format_period_label(period_type, year, period_number)
    start_dt, end_dt = _day_bounds(start, end)

    beginning, source = await _beginning_inventory(db, start)

    produced_l = await _scalar_float(
        db,
        select(func.coalesce(func.sum(BatchModel.initial_volume_l), 0)).where(
            BatchModel.deleted_at.is_(None),
            BatchModel.start_date >= start,
            BatchModel.start_date <= end,
        ),
    )
    wine_produced = round_gallons(liters_to_wine_gallons(produced_l))

    tax_paid = await _tax_paid_removals(db, start_dt, end_dt)
    other = await _other_removals(db, start_dt, end_dt)
    ending = await _ending_inventory(db, end, end_dt)
    tax_summary = calculate_hard_cider_tax(tax_paid["total"])
    reconciliation = calculate_reconciliation(
        beginning_inventory=beginning["total"],
        wine_produced=wine_produced,
        receipts=0,
        tax_paid_removals=tax_paid["total"],
        other_removals=other["total"],
        ending_inventory=ending["total"],
    )
    materials = await _materials(db, start, end)

    fermenting_l = await _scalar_float(
        db,
        select(func.coalesce(func.sum(BatchModel.current_volume_l), 0)).where(
            BatchModel.deleted_at.is_(None),
            BatchModel.status == "fermentation",
            BatchModel.start_date <= end,
        ),
    )
    fermenters = {"gallons_in_fermenters": round_gallons(liters_to_wine_gallons(fermenting_l))}

    bottled_l = await _scalar_float(
        db,
        select(func.coalesce(func.sum(PackagingRunModel.volume_taken_l), 0)).where(
            PackagingRunModel.status != "voided",
            PackagingRunModel.packaged_at >= start_dt,
            PackagingRunModel.packaged_at < end_dt,
        ),
    )
    bottled = round_gallons(liters_to_wine_gallons(bottled_l))

    bulk_wines = {
        "line1_on_hand_first": beginning["bulk"],
        "line2_produced": wine_produced,
        "line3_other_production": 0,
        "line4_received_bonded": 0,
        "line5_received_customs": 0,
        "line6_received_returned": 0,
        "line7_received_transfer": 0,
        "line8_dumped_to_bulk": 0,
        "line9_transferred_in": 0,
        "line10_withdrawn_fermenters": 0,
        "line11_total": round_gallons(beginning["bulk"] + wine_produced),
        "line12_bottled": bottled,
        "line13_export_transfer": 0,
        "line14_bonded_transfer": 0,
        "line15_customs_transfer": 0,
        "line16_ftz_transfer": 0,
        "line17_taxpaid": tax_paid["total"],
        "line18_tax_free_us": 0,
        "line19_tax_free_export": 0,
        "line20_transferred_out": 0,
        "line21_distilling_material": 0,
        "line22_spirits_added": 0,
        "line23_inventory_losses": other["total"],
        "line24_destroyed": 0,
        "line25_returned_to_bond": 0,
        "line26_other": 0,
        "line27_total": round_gallons(bottled + tax_paid["total"] + other["total"]),
        "line28_on_hand_fermenters": fermenters["gallons_in_fermenters"],
        "line29_on_hand_finished": round_gallons(ending["bulk"] - fermenters["gallons_in_fermenters"]),
        "line30_on_hand_unfinished": 0,
        "line31_in_transit": 0,
        "line32_total_on_hand": ending["bulk"],
    }

    bottled_wines = {
        "line1_on_hand_first": beginning["bottled"],
        "line2_bottled": bottled,
        "line3_received_bonded": 0,
        "line4_received_customs": 0,
        "line5_received_returned": 0,
        "line6_received_transfer": 0,
        "line7_total": round_gallons(beginning["bottled"] + bottled),
        "line8_dumped_to_bulk": 0,
        "line9_export_transfer": 0,
        "line10_bonded_transfer": 0,
        "line11_customs_transfer": 0,
        "line12_ftz_transfer": 0,
        "line13_taxpaid": tax_paid["total"],
        "line14_tax_free_us": 0,
        "line15_tax_free_export": 0,
        "line16_inventory_losses": other["breakage"],
        "line17_destroyed": 0,
        "line18_returned_to_bond": 0,
        "line19_total": round_gallons(tax_paid["total"] + other["breakage"]),
        "line20_on_hand_end": ending["bottled"],
        "line21_in_transit": 0,
    }

    form_data = {
        "reporting_period": {
            "type": period_type,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "year": year,
            "month": period_number if period_type == "monthly" else None,
            "quarter": period_number if period_type == "quarterly" else None,
        },
        "beginning_inventory_source": source,
        "bulk_wines": bulk_wines,
        "bottled_wines": bottled_wines,
        "materials": materials,
        "fermenters": fermenters,
        "beginning_inventory": beginning,
        "wine_produced": {"total": wine_produced},
        "receipts": {"total": 0},
        "tax_paid_removals": tax_paid,
        "other_removals": other,
        "ending_inventory": ending,
        "tax_summary": tax_summary,
        "reconciliation": reconciliation,
    }
    return form_data, period_label, source


def _serialize_report(r: TTBReportModel) -> TTBReportRead:
    return TTBReportRead(
        id=r.id,
        period_type=r.period_type,
        year=r.year,
        period_number=r.period_number,
        period_start=r.period_start,
        period_end=r.period_end,
        status=r.status,
        beginning_inventory_bulk_gallons=r.beginning_inventory_bulk_gallons,
        beginning_inventory_bottled_gallons=r.beginning_inventory_bottled_gallons,
        beginning_inventory_total_gallons=r.beginning_inventory_total_gallons,
        wine_produced_gallons=r.wine_produced_gallons,
        tax_paid_by_channel=r.tax_paid_by_channel or {},
        tax_paid_total_gallons=r.tax_paid_total_gallons,
        other_removals_samples_gallons=r.other_removals_samples_gallons,
        other_removals_breakage_gallons=r.other_removals_breakage_gallons,
        other_removals_losses_gallons=r.other_removals_losses_gallons,
        other_removals_total_gallons=r.other_removals_total_gallons,
        ending_inventory_bulk_gallons=r.ending_inventory_bulk_gallons,
        ending_inventory_bottled_gallons=r.ending_inventory_bottled_gallons,
        ending_inventory_total_gallons=r.ending_inventory_total_gallons,
        taxable_gallons=r.taxable_gallons,
        tax_rate=r.tax_rate,
        small_producer_credit_gallons=r.small_producer_credit_gallons,
        small_producer_credit_amount=r.small_producer_credit_amount,
        tax_owed=r.tax_owed,
        notes=r.notes,
        generated_at=r.generated_at,
        generated_by_user_id=r.generated_by_user_id,
        submitted_at=r.submitted_at,
        finalized_at=r.finalized_at,
    )


async def _get_report_or_404(db: AsyncSession, report_id: UUID) -> TTBReportModel:
    report = await db.get(TTBReportModel, report_id)
    if not report:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    return report


async def _generate(db: AsyncSession, period_type: str, year: int, period_number: Optional[int]):
    try:
        return await build_form_512017(db, period_type, year, period_number)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        log.exception("Form 5120.17 generation failed for {} {} {}", period_type, year, period_number)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to generate TTB form data"
        )


@router.post("/form-5120-17", response_model=FormResponse)
async def generate_form_512017(
    payload: PeriodRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "report")),
):
    form_data, period_label, _ = await _generate(db, payload.period_type, payload.year, payload.period_number)
    return FormResponse(form_data=form_data, period_label=period_label)


@router.post("/form-5120-17/export")
async def export_form_512017(
    payload: PeriodRequest,
    fmt: Literal["xlsx", "pdf", "csv"] = Query("xlsx", alias="format"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "report")),
):
    form_data, period_label, _ = await _generate(db, payload.period_type, payload.year, payload.period_number)
    media_type, ext = EXPORT_FORMATS[fmt]
    content = export_form(form_data, period_label, fmt)
    filename = f"ttb-5120-17-{period_label.lower().replace(' ', '-')}.{ext}"
    log.info("Exported 5120.17 for {} as {}", period_label, fmt)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/reconciliation", response_model=ReconciliationSummary)
async def get_reconciliation(
    period_type: Literal["monthly", "quarterly", "annual"],
    year: int = Query(..., ge=2020, le=2100),
    period_number: Optional[int] = None,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "report")),
):
    form_data, period_label, source = await _generate(db, period_type, year, period_number)
    recon = form_data["reconciliation"]
    return ReconciliationSummary(
        period_label=period_label,
        beginning_inventory_source=source,
        beginning_inventory=form_data["beginning_inventory"]["total"],
        wine_produced=form_data["wine_produced"]["total"],
        receipts=form_data["receipts"]["total"],
        tax_paid_removals=form_data["tax_paid_removals"]["total"],
        other_removals=form_data["other_removals"]["total"],
        ending_inventory=form_data["ending_inventory"]["total"],
        **recon,
    )


@router.post("/reports", response_model=TTBReportRead, status_code=status.HTTP_201_CREATED)
async def save_report_snapshot(
    payload: ReportSnapshotCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("create", "report")),
):
    form_data, period_label, _ = await _generate(db, payload.period_type, payload.year, payload.period_number)
    start, end = get_period_date_range(payload.period_type, payload.year, payload.period_number)

    beginning = form_data["beginning_inventory"]
    tax_paid = form_data["tax_paid_removals"]
    other = form_data["other_removals"]
    ending = form_data["ending_inventory"]
    tax = form_data["tax_summary"]

    report = TTBReportModel(
        period_type=payload.period_type,
        year=payload.year,
        period_number=payload.period_number,
        period_start=start,
        period_end=end,
        status="draft",
        beginning_inventory_bulk_gallons=beginning["bulk"],
        beginning_inventory_bottled_gallons=beginning["bottled"],
        beginning_inventory_total_gallons=beginning["total"],
        wine_produced_gallons=form_data["wine_produced"]["total"],
        tax_paid_by_channel={k: v for k, v in tax_paid.items() if k != "total"},
        tax_paid_total_gallons=tax_paid["total"],
        other_removals_samples_gallons=other["samples"],
        other_removals_breakage_gallons=other["breakage"],
        other_removals_losses_gallons=other["process_losses"],
        other_removals_total_gallons=other["total"],
        ending_inventory_bulk_gallons=ending["bulk"],
        ending_inventory_bottled_gallons=ending["bottled"],
        ending_inventory_total_gallons=ending["total"],
        taxable_gallons=tax_paid["total"],
        tax_rate=HARD_CIDER_TAX_RATE,
        small_producer_credit_gallons=round_gallons(min(tax_paid["total"], SMALL_PRODUCER_CREDIT_LIMIT_GALLONS)),
        small_producer_credit_amount=tax["small_producer_credit"],
        tax_owed=tax["net_tax_owed"],
        notes=payload.notes,
        generated_at=datetime.now(),
        generated_by_user_id=user.id,
    )
    db.add(report)
    await db.commit()
    await db.refresh(report)

    log.bind(report_id=str(report.id)).info("Saved 5120.17 draft for {}", period_label)
    return _serialize_report(report)


@router.get("/reports", response_model=TTBReportList)
async def list_reports(
    year: Optional[int] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("list", "report")),
):
    stmt = select(TTBReportModel)
    if year:
        stmt = stmt.where(extract("year", TTBReportModel.period_start) == year)
    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    res = await db.execute(stmt.order_by(TTBReportModel.period_start.desc()).limit(limit).offset(offset))
    reports = [_serialize_report(r) for r in res.scalars().all()]
    return TTBReportList(reports=reports, total=int(total), has_more=offset + limit < total)


@router.get("/reports/{report_id}", response_model=TTBReportRead)
async def get_report(
    report_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "report")),
):
    return _serialize_report(await _get_report_or_404(db, report_id))


@router.post("/reports/{report_id}/submit", response_model=TTBReportRead)
async def submit_report(
    report_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "report")),
):
    report = await _get_report_or_404(db, report_id)
    if report.status != "draft":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Only draft reports can be submitted (status: {report.status})")
    report.status = "submitted"
    report.submitted_at = datetime.now()
    report.submitted_by_user_id = user.id
    await db.commit()
    await db.refresh(report)

    log.bind(report_id=str(report.id)).info("Report submitted by {}", user.id)
    return _serialize_report(report)


@router.post("/reports/{report_id}/finalize", response_model=TTBReportRead)
async def finalize_report(
    report_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("update", "report")),
):
    report = await _get_report_or_404(db, report_id)
    if report.status != "submitted":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Only submitted reports can be finalized (status: {report.status})")
    report.status = "finalized"
    report.finalized_at = datetime.now()
    report.finalized_by_user_id = user.id
    await db.commit()
    await db.refresh(report)

    log.bind(report_id=str(report.id)).info("Report finalized by {}", user.id)
    return _serialize_report(report)


@router.get("/opening-balances", response_model=OpeningBalances)
async def get_opening_balances(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_permission("read", "report")),
):
    row = await db.get(OpeningBalanceModel, 1)
    if not row:
        return OpeningBalances()
    return OpeningBalances(
        balance_date=row.balance_date,
        bulk=row.bulk or {},
        bottled=row.bottled or {},
        updated_at=row.updated_at,
    )


@router.put("/opening-balances", response_model=OpeningBalances)
async def update_opening_balances(
    payload: OpeningBalancesUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_admin),
):
    row = await db.get(OpeningBalanceModel, 1)
    if not row:
        row = OpeningBalanceModel(id=1)
        db.add(row)
    row.balance_date = payload.balance_date
    row.bulk = dict(payload.bulk)
    row.bottled = dict(payload.bottled)
    row.updated_at = datetime.now()
    row.updated_by_user_id = user.id
    await db.commit()

    log.info(
        "Opening balances set for {}: bulk {:.3f} gal, bottled {:.3f} gal",
        payload.balance_date,
        sum(payload.bulk.values()),
        sum(payload.bottled.values()),
    )
    return OpeningBalances(
        balance_date=row.balance_date, bulk=row.bulk, bottled=row.bottled, updated_at=row.updated_at
    )
