import uuid
from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base

BATCH_STATUSES = ("fermentation", "aging", "conditioning", "completed", "discarded")
# Batches that still hold bulk wine
ACTIVE_BATCH_STATUSES = ("fermentation", "aging", "conditioning")


class Batch(Base):
    __tablename__ = "batches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    status = Column(Text, nullable=False, default="fermentation", index=True)
    vessel_id = Column(Uuid, ForeignKey("vessels.id", ondelete="SET NULL"), nullable=True, index=True)

    initial_volume_l = Column(Numeric(12, 3, asdecimal=False), nullable=False)
    current_volume_l = Column(Numeric(12, 3, asdecimal=False), nullable=False)
    original_gravity = Column(Numeric(5, 3, asdecimal=False), nullable=True)

    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    deleted_at = Column(DateTime, nullable=True)

    vessel = relationship("Vessel")
    measurements = relationship(
        "BatchMeasurement",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="BatchMeasurement.measured_at",
    )
    additives = relationship("BatchAdditive", back_populates="batch", cascade="all, delete-orphan")
    cellar_operations = relationship("BatchCellarOperation", back_populates="batch", cascade="all, delete-orphan")


class BatchMeasurement(Base):
    __tablename__ = "batch_measurements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    batch_id = Column(Uuid, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    measured_at = Column(DateTime, nullable=False, index=True)

    specific_gravity = Column(Numeric(5, 3, asdecimal=False), nullable=True)
    abv = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    ph = Column(Numeric(4, 2, asdecimal=False), nullable=True)
    total_acidity = Column(Numeric(5, 2, asdecimal=False), nullable=True)  # g/L
    temperature_c = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    volume_l = Column(Numeric(12, 3, asdecimal=False), nullable=True)
    notes = Column(Text, nullable=True)

    taken_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    batch = relationship("Batch", back_populates="measurements")


class BatchAdditive(Base):
    __tablename__ = "batch_additives"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    batch_id = Column(Uuid, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    additive_type = Column(Text, nullable=False)  # 'yeast' | 'nutrient' | 'sulfite' | 'sugar' | ...
    name = Column(String, nullable=False)
    amount = Column(Numeric(12, 3, asdecimal=False), nullable=False)
    unit = Column(Text, nullable=False)
    added_at = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    added_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    batch = relationship("Batch", back_populates="additives")


class BatchCellarOperation(Base):
    """Racking / filtering. Volume lost here counts as a TTB process loss."""

    __tablename__ = "batch_cellar_operations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    batch_id = Column(Uuid, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    operation_type = Column(Text, nullable=False, index=True)  # 'racking' | 'filtering'
    performed_at = Column(DateTime, nullable=False, index=True)

    volume_before_l = Column(Numeric(12, 3, asdecimal=False), nullable=False)
    volume_after_l = Column(Numeric(12, 3, asdecimal=False), nullable=False)
    volume_loss_l = Column(Numeric(12, 3, asdecimal=False), nullable=False)
    notes = Column(Text, nullable=True)

    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    batch = relationship("Batch", back_populates="cellar_operations")
