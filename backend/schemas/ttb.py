from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

PeriodType = Literal["monthly", "quarterly", "annual"]
ReportStatus = Literal["draft", "submitted", "finalized"]

TAX_CLASSES = (
    "hard_cider",
    "wine_under_16",
    "wine_16_to_21",
    "wine_21_to_24",
    "sparkling_wine",
    "carbonated_wine",
)


class PeriodRequest(BaseModel):
    period_type: PeriodType
    year: int = Field(ge=2020, le=2100)
    period_number: Optional[int] = None

    @model_validator(mode="after")
    def _check_period_number(self):
        if self.period_type == "monthly" and not (self.period_number and 1 <= self.period_number <= 12):
            raise ValueError("period_number must be a month between 1 and 12")
        if self.period_type == "quarterly" and not (self.period_number and 1 <= self.period_number <= 4):
            raise ValueError("period_number must be a quarter between 1 and 4")
        if self.period_type == "annual":
            self.period_number = None
        return self


class FormResponse(BaseModel):
    form_data: Dict[str, Any]
    period_label: str


class ReportSnapshotCreate(PeriodRequest):
    notes: Optional[str] = None


class TTBReportRead(BaseModel):
    id: UUID
    period_type: PeriodType
    year: int
    period_number: Optional[int] = None
    period_start: date
    period_end: date
    status: ReportStatus

    beginning_inventory_bulk_gallons: float
    beginning_inventory_bottled_gallons: float
    beginning_inventory_total_gallons: float
    wine_produced_gallons: float
    tax_paid_by_channel: Dict[str, float] = {}
    tax_paid_total_gallons: float
    other_removals_samples_gallons: float
    other_removals_breakage_gallons: float
    other_removals_losses_gallons: float
    other_removals_total_gallons: float
    ending_inventory_bulk_gallons: float
    ending_inventory_bottled_gallons: float
    ending_inventory_total_gallons: float

    taxable_gallons: float
    tax_rate: float
    small_producer_credit_gallons: float
    small_producer_credit_amount: float
    tax_owed: float

    notes: Optional[str] = None
    generated_at: Optional[datetime] = None
    generated_by_user_id: Optional[UUID] = None
    submitted_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None


class TTBReportList(BaseModel):
    reports: List[TTBReportRead]
    total: int
    has_more: bool


class OpeningBalances(BaseModel):
    balance_date: Optional[date] = None
    bulk: Dict[str, float] = {}
    bottled: Dict[str, float] = {}
    updated_at: Optional[datetime] = None


class OpeningBalancesUpdate(BaseModel):
    balance_date: date
    bulk: Dict[str, float] = {}
    bottled: Dict[str, float] = {}

    @field_validator("bulk", "bottled")
    @classmethod
    def _check_classes(cls, v: Dict[str, float]) -> Dict[str, float]:
        for key, gallons in v.items():
            if key not in TAX_CLASSES:
                raise ValueError(f"Unknown tax class: {key}")
            if gallons is None or gallons < 0:
                raise ValueError(f"{key} gallons cannot be negative")
        return v


class ReconciliationSummary(BaseModel):
    period_label: str
    beginning_inventory_source: str
    beginning_inventory: float
    wine_produced: float
    receipts: float
    tax_paid_removals: float
    other_removals: float
    ending_inventory: float
    total_available: float
    total_accounted_for: float
    variance: float
    balanced: bool
