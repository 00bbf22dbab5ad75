from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from schemas.inventory import FinishedGoodRead

PackageType = Literal["bottle", "can", "keg"]
RunStatus = Literal["completed", "voided"]
FillCheck = Literal["pass", "fail", "not_tested"]
CarbonationLevel = Literal["still", "petillant", "sparkling"]


class PackagingRunCreate(BaseModel):
    batch_id: UUID
    vessel_id: UUID
    packaged_at: Optional[datetime] = None
    package_size_ml: int = Field(gt=0)
    units_produced: int = Field(ge=0)
    volume_taken_l: float = Field(gt=0)
    abv_at_packaging: Optional[float] = None
    retail_price: Optional[float] = Field(None, ge=0)
    wholesale_price: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class PackagingRunCreated(BaseModel):
    run_id: UUID
    loss_l: float
    loss_percentage: float
    vessel_status: str
    inventory_item_id: UUID
    lot_code: str


class PackagingRunRead(BaseModel):
    id: UUID
    batch_id: UUID
    batch_name: Optional[str] = None
    vessel_id: Optional[UUID] = None
    vessel_name: Optional[str] = None
    run_sequence: int
    packaged_at: datetime
    package_type: PackageType
    package_size_ml: int
    units_produced: int
    volume_taken_l: float
    loss_l: float
    loss_percentage: float
    abv_at_packaging: Optional[float] = None
    carbonation_level: Optional[CarbonationLevel] = None
    fill_check: Optional[FillCheck] = None
    fill_variance_ml: Optional[float] = None
    test_method: Optional[str] = None
    test_date: Optional[date] = None
    qa_technician_id: Optional[UUID] = None
    qa_notes: Optional[str] = None
    status: RunStatus
    void_reason: Optional[str] = None
    voided_at: Optional[datetime] = None
    notes: Optional[str] = None


class PackagingRunDetail(PackagingRunRead):
    inventory: List[FinishedGoodRead] = []


class PackagingRunList(BaseModel):
    runs: List[PackagingRunRead]
    total: int
    has_more: bool


class PackagingQAUpdate(BaseModel):
    fill_check: Optional[FillCheck] = None
    fill_variance_ml: Optional[float] = None
    abv_at_packaging: Optional[float] = Field(None, ge=0, le=100)
    carbonation_level: Optional[CarbonationLevel] = None
    test_method: Optional[str] = None
    test_date: Optional[date] = None
    qa_technician_id: Optional[UUID] = None
    qa_notes: Optional[str] = None


class PackagingRunVoid(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("reason is required")
        return v


class PackageSizeRead(BaseModel):
    id: UUID
    size_ml: int
    size_oz: Optional[float] = None
    display_name: str
    package_type: PackageType
    sort_order: int = 0
    is_active: bool = True


class PackageSizeCreate(BaseModel):
    size_ml: int = Field(gt=0)
    size_oz: Optional[float] = Field(None, gt=0)
    display_name: str
    package_type: Optional[PackageType] = None
    sort_order: int = 0

    @field_validator("display_name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("display_name is required")
        return v
