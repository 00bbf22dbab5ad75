import uuid

from sqlalchemy import BigInteger, Column, Date, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    batch_id = Column(Uuid, ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False, index=True)
    packaging_run_id = Column(Uuid, ForeignKey("packaging_runs.id", ondelete="SET NULL"), nullable=True, index=True)

    lot_code = Column(Text, nullable=False, unique=True, index=True)
    # 'bottle' | 'can' | 'keg'
    package_type = Column(Text, nullable=False, index=True)
    package_size_ml = Column(Integer, nullable=False)

    current_quantity = Column(Integer, nullable=False, default=0)

    # Prices in minor units (cents)
    retail_price_minor = Column(BigInteger, nullable=True)
    wholesale_price_minor = Column(BigInteger, nullable=True)

    expiration_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    batch = relationship("Batch")
    packaging_run = relationship("PackagingRun", back_populates="inventory_items")
    movements = relationship(
        "InventoryMovement",
        back_populates="inventory_item",
        cascade="all, delete-orphan",
        order_by="InventoryMovement.created_at",
    )
