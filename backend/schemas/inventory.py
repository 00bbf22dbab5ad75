from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


MovementKind = Literal["PACKAGED", "DISTRIBUTION", "ADJUSTMENT", "VOID"]
AdjustmentType = Literal["sample", "breakage", "correction", "return"]
PackageType = Literal["bottle", "can", "keg"]


class MovementRead(BaseModel):
    id: UUID
    inventory_item_id: UUID
    lot_code: Optional[str] = None
    kind: MovementKind
    change: int
    adjustment_type: Optional[AdjustmentType] = None
    reason: Optional[str] = None
    sales_channel_id: Optional[UUID] = None
    sales_channel_code: Optional[str] = None
    unit_price: Optional[float] = None
    occurred_at: datetime
    created_by_user_id: Optional[UUID] = None


class FinishedGoodRead(BaseModel):
    id: UUID
    batch_id: UUID
    batch_name: Optional[str] = None
    packaging_run_id: Optional[UUID] = None
    lot_code: str
    package_type: PackageType
    package_size_ml: int
    current_quantity: int
    retail_price: Optional[float] = None
    wholesale_price: Optional[float] = None
    expiration_date: Optional[date] = None


class FinishedGoodList(BaseModel):
    items: List[FinishedGoodRead]
    total: int
    has_more: bool


class FinishedGoodDetails(FinishedGoodRead):
    batch_status: Optional[str] = None
    packaged_at: Optional[datetime] = None
    units_produced: Optional[int] = None
    abv_at_packaging: Optional[float] = None
    carbonation_level: Optional[str] = None
    fill_check: Optional[str] = None
    run_status: Optional[str] = None
    volume_on_hand_l: float
    volume_on_hand_gallons: float
    movements: List[MovementRead]


class DistributeRequest(BaseModel):
    quantity: int = Field(gt=0)
    sales_channel_id: UUID
    unit_price: Optional[float] = Field(None, ge=0)
    distribution_date: Optional[datetime] = None
    notes: Optional[str] = None


class AdjustRequest(BaseModel):
    change: int
    adjustment_type: AdjustmentType
    reason: str
    adjusted_at: Optional[datetime] = None

    @field_validator("reason")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("reason is required")
        return v

    @model_validator(mode="after")
    def _check_sign(self):
        if self.change == 0:
            raise ValueError("change cannot be 0")
        # samples and breakage only ever leave stock
        if self.adjustment_type in ("sample", "breakage") and self.change > 0:
            raise ValueError(f"{self.adjustment_type} adjustments must have a negative change")
        if self.adjustment_type == "return" and self.change < 0:
            raise ValueError("return adjustments must have a positive change")
        return self


class PricingUpdate(BaseModel):
    retail_price: Optional[float] = Field(None, ge=0)
    wholesale_price: Optional[float] = Field(None, ge=0)


class SalesChannelRead(BaseModel):
    id: UUID
    code: str
    name: str
    uses_retail_price: bool = True
    is_active: bool = True


class SalesChannelCreate(BaseModel):
    code: str
    name: str
    uses_retail_price: bool = True

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        v = (v or "").strip().lower().replace(" ", "_")
        if not v:
            raise ValueError("code is required")
        return v

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v
