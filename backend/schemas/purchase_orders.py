from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

PurchaseOrderStatus = Literal["DRAFT", "ORDERED", "RECEIVED", "CANCELLED"]
MaterialType = Literal["basefruit", "juice", "additive", "packaging"]
FruitType = Literal["apple", "other"]
PurchaseUnit = Literal["kg", "lb", "g", "L", "gal", "units"]


class PurchaseOrderItemCreate(BaseModel):
    material_type: MaterialType
    name: str
    fruit_type: Optional[FruitType] = None
    quantity: float = Field(gt=0)
    unit: PurchaseUnit
    unit_cost: Optional[float] = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @model_validator(mode="after")
    def _fruit_type_only_for_basefruit(self):
        if self.material_type != "basefruit" and self.fruit_type is not None:
            raise ValueError("fruit_type is only valid for basefruit items")
        if self.material_type == "basefruit" and self.fruit_type is None:
            self.fruit_type = "apple"
        return self


class PurchaseOrderItemRead(BaseModel):
    id: UUID
    material_type: MaterialType
    name: str
    fruit_type: Optional[FruitType] = None
    quantity: float
    unit: str
    unit_cost: Optional[float] = None
    line_total: Optional[float] = None


class PurchaseOrderCreate(BaseModel):
    vendor_id: UUID
    order_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[PurchaseOrderItemCreate] = Field(min_length=1)


class PurchaseOrderUpdate(BaseModel):
    status: Optional[PurchaseOrderStatus] = None
    order_date: Optional[date] = None
    notes: Optional[str] = None
    # replaces all lines; DRAFT orders only
    items: Optional[List[PurchaseOrderItemCreate]] = Field(None, min_length=1)


class PurchaseOrderReceive(BaseModel):
    received_date: Optional[date] = None


class PurchaseOrderRead(BaseModel):
    id: UUID
    vendor_id: UUID
    vendor_name: Optional[str] = None
    status: PurchaseOrderStatus
    order_date: date
    received_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[PurchaseOrderItemRead]
    total_cost: float
