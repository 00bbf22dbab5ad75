from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

VesselStatus = Literal["available", "in_use", "fermenting", "cleaning", "maintenance"]


class VesselRead(BaseModel):
    id: UUID
    name: str
    capacity_l: float
    material: Optional[str] = None
    status: VesselStatus
    max_pressure_psi: Optional[float] = None
    notes: Optional[str] = None


class VesselCreate(BaseModel):
    name: str
    capacity_l: float = Field(gt=0)
    material: Optional[str] = None
    status: VesselStatus = "available"
    max_pressure_psi: Optional[float] = Field(None, ge=0, le=50)
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class VesselUpdate(BaseModel):
    name: Optional[str] = None
    capacity_l: Optional[float] = Field(None, gt=0)
    material: Optional[str] = None
    status: Optional[VesselStatus] = None
    max_pressure_psi: Optional[float] = Field(None, ge=0, le=50)
    notes: Optional[str] = None
