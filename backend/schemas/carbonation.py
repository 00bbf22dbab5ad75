from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

CarbonationProcess = Literal["headspace", "inline", "stone", "bottle_conditioning"]
QualityCheck = Literal["pass", "fail", "needs_adjustment"]
SugarType = Literal["sucrose", "dextrose", "honey"]
VolumeUnit = Literal["L", "gal"]


class CarbonationStart(BaseModel):
    batch_id: UUID
    vessel_id: Optional[UUID] = None
    started_at: Optional[datetime] = None
    process: CarbonationProcess
    target_co2_volumes: float = Field(ge=0, le=5)
    # safe range enforced by validate_temperature
    starting_temperature_c: Optional[float] = Field(None, ge=-20, le=40)
    starting_co2_volumes: Optional[float] = Field(None, ge=0, le=5)
    pressure_applied_psi: Optional[float] = Field(None, ge=0, le=50)
    starting_volume: float = Field(gt=0)
    starting_volume_unit: VolumeUnit = "L"
    gas_type: Optional[str] = "CO2"
    priming_sugar_amount_g: Optional[float] = Field(None, ge=0)
    priming_sugar_type: Optional[SugarType] = None
    notes: Optional[str] = None


class CarbonationComplete(BaseModel):
    completed_at: Optional[datetime] = None
    final_co2_volumes: float = Field(ge=0, le=5)
    final_pressure_psi: Optional[float] = Field(None, ge=0, le=50)
    final_temperature_c: Optional[float] = Field(None, ge=-5, le=25)
    final_volume: Optional[float] = Field(None, gt=0)
    final_volume_unit: VolumeUnit = "L"
    quality_check: QualityCheck = "pass"
    notes: Optional[str] = None


class CarbonationRead(BaseModel):
    id: UUID
    batch_id: UUID
    batch_name: Optional[str] = None
    vessel_id: Optional[UUID] = None
    vessel_name: Optional[str] = None
    process: CarbonationProcess
    gas_type: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    target_co2_volumes: float
    starting_co2_volumes: Optional[float] = None
    starting_temperature_c: Optional[float] = None
    pressure_applied_psi: Optional[float] = None
    suggested_pressure_psi: Optional[float] = None
    starting_volume_l: float
    priming_sugar_g: Optional[float] = None
    priming_sugar_type: Optional[str] = None
    final_co2_volumes: Optional[float] = None
    final_pressure_psi: Optional[float] = None
    final_temperature_c: Optional[float] = None
    final_volume_l: Optional[float] = None
    duration_hours: Optional[float] = None
    target_met: Optional[bool] = None
    quality_check: Optional[QualityCheck] = None
    notes: Optional[str] = None


class CarbonationStartResponse(BaseModel):
    carbonation: CarbonationRead
    carbonation_level: str
    temperature_warning: Optional[str] = None


class ActiveCarbonation(CarbonationRead):
    hours_elapsed: float
    estimated_hours: float
    percent_complete: int
    is_overdue: bool


class SuggestionRequest(BaseModel):
    target_co2_volumes: float = Field(ge=0, le=5)
    temperature_c: float = Field(ge=-20, le=40)
    current_co2_volumes: float = Field(0.0, ge=0, le=5)
    max_pressure_psi: float = Field(30.0, gt=0, le=50)


class PressureAlternative(BaseModel):
    temperature_c: float
    required_pressure_psi: float
    is_safe: bool


class SuggestionResponse(BaseModel):
    required_pressure_psi: float
    is_safe: bool
    estimated_duration_hours: float
    expected_co2_volumes: float
    carbonation_level: str
    temperature_message: Optional[str] = None
    alternatives: List[PressureAlternative]
    recommendations: List[str]


class PrimingSugarRequest(BaseModel):
    target_co2_volumes: float = Field(ge=0, le=5)
    volume: float = Field(gt=0)
    volume_unit: VolumeUnit = "L"
    residual_co2_volumes: float = Field(0.0, ge=0, le=5)
    sugar_type: SugarType = "sucrose"


class PrimingSugarResponse(BaseModel):
    sugar_type: SugarType
    sugar_g: float
    sugar_g_per_l: float
    volume_l: float
    expected_co2_volumes: float
    carbonation_level: str
