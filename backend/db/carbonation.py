import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


class CarbonationOperation(Base):
    __tablename__ = "carbonation_operations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    batch_id = Column(Uuid, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    vessel_id = Column(Uuid, ForeignKey("vessels.id", ondelete="SET NULL"), nullable=True, index=True)

    # 'headspace' | 'inline' | 'stone' | 'bottle_conditioning'
    process = Column(Text, nullable=False)
    gas_type = Column(String, nullable=True)

    started_at = Column(DateTime, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)

    target_co2_volumes = Column(Numeric(4, 2, asdecimal=False), nullable=False)
    starting_co2_volumes = Column(Numeric(4, 2, asdecimal=False), nullable=True)
    starting_temperature_c = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    pressure_applied_psi = Column(Numeric(6, 2, asdecimal=False), nullable=True)
    suggested_pressure_psi = Column(Numeric(6, 2, asdecimal=False), nullable=True)
    starting_volume_l = Column(Numeric(12, 3, asdecimal=False), nullable=False)

    priming_sugar_g = Column(Numeric(10, 1, asdecimal=False), nullable=True)
    priming_sugar_type = Column(Text, nullable=True)  # 'sucrose' | 'dextrose' | 'honey'

    final_co2_volumes = Column(Numeric(4, 2, asdecimal=False), nullable=True)
    final_pressure_psi = Column(Numeric(6, 2, asdecimal=False), nullable=True)
    final_temperature_c = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    final_volume_l = Column(Numeric(12, 3, asdecimal=False), nullable=True)
    duration_hours = Column(Numeric(8, 1, asdecimal=False), nullable=True)
    target_met = Column(Boolean, nullable=True)
    quality_check = Column(Text, nullable=True)  # 'pass' | 'fail' | 'needs_adjustment'

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    completed_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    batch = relationship("Batch")
    vessel = relationship("Vessel")
