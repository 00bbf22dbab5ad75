import uuid
from sqlalchemy import Column, DateTime, Numeric, String, Text, Uuid
from sqlalchemy.sql import func
from .database import Base


class Vessel(Base):
    __tablename__ = "vessels"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    capacity_l = Column(Numeric(12, 3, asdecimal=False), nullable=False)
    material = Column(Text, nullable=True)  # 'stainless' | 'oak' | 'plastic' | ...
    # 'available' | 'in_use' | 'fermenting' | 'cleaning' | 'maintenance'
    status = Column(Text, nullable=False, default="available", index=True)
    max_pressure_psi = Column(Numeric(6, 2, asdecimal=False), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "capacity_l": self.capacity_l,
            "material": self.material,
            "status": self.status,
            "max_pressure_psi": self.max_pressure_psi,
            "notes": self.notes,
        }
