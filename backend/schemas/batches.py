from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

BatchStatus = Literal["fermentation", "aging", "conditioning", "completed", "discarded"]
VolumeUnit = Literal["L", "gal"]
CellarOperationType = Literal["racking", "filtering"]


class BatchCreate(BaseModel):
    name: str
    vessel_id: Optional[UUID] = None
    status: BatchStatus = "fermentation"
    initial_volume: float = Field(gt=0)
    volume_unit: VolumeUnit = "L"
    original_gravity: Optional[float] = Field(None, ge=0.98, le=1.2)
    start_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class BatchUpdate(BaseModel):
    name: Optional[str] = None
    status: Optional[BatchStatus] = None
    vessel_id: Optional[UUID] = None
    original_gravity: Optional[float] = Field(None, ge=0.98, le=1.2)
    notes: Optional[str] = None


class MeasurementCreate(BaseModel):
    measured_at: Optional[datetime] = None
    specific_gravity: Optional[float] = Field(None, ge=0.99, le=1.2)
    abv: Optional[float] = Field(None, ge=0, le=20)
    ph: Optional[float] = Field(None, ge=2, le=5)
    total_acidity: Optional[float] = Field(None, ge=0, le=20)
    temperature_c: Optional[float] = Field(None, ge=0, le=40)
    volume: Optional[float] = Field(None, gt=0)
    volume_unit: VolumeUnit = "L"
    notes: Optional[str] = None


class MeasurementRead(BaseModel):
    id: UUID
    batch_id: UUID
    measured_at: datetime
    specific_gravity: Optional[float] = None
    abv: Optional[float] = None
    ph: Optional[float] = None
    total_acidity: Optional[float] = None
    temperature_c: Optional[float] = None
    volume_l: Optional[float] = None
    notes: Optional[str] = None


class AdditiveCreate(BaseModel):
    additive_type: str
    name: str
    amount: float = Field(gt=0)
    unit: str
    added_at: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("additive_type", "name", "unit")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class AdditiveRead(BaseModel):
    id: UUID
    batch_id: UUID
    additive_type: str
    name: str
    amount: float
    unit: str
    added_at: datetime
    notes: Optional[str] = None


class CellarOperationCreate(BaseModel):
    operation_type: CellarOperationType
    volume_after: float = Field(ge=0)
    volume_unit: VolumeUnit = "L"
    performed_at: Optional[datetime] = None
    notes: Optional[str] = None


class CellarOperationRead(BaseModel):
    id: UUID
    batch_id: UUID
    operation_type: CellarOperationType
    performed_at: datetime
    volume_before_l: float
    volume_after_l: float
    volume_loss_l: float
    notes: Optional[str] = None


class BatchRead(BaseModel):
    id: UUID
    name: str
    status: BatchStatus
    vessel_id: Optional[UUID] = None
    vessel_name: Optional[str] = None
    initial_volume_l: float
    current_volume_l: float
    original_gravity: Optional[float] = None
    start_date: date
    end_date: Optional[date] = None
    notes: Optional[str] = None


class BatchDetail(BatchRead):
    latest_measurement: Optional[MeasurementRead] = None
    estimated_abv: Optional[float] = None
    potential_abv: Optional[float] = None


class BatchList(BaseModel):
    batches: List[BatchRead]
    total: int
    has_more: bool
