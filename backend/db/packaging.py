import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


class PackageSize(Base):
    __tablename__ = "package_sizes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    size_ml = Column(Integer, nullable=False)
    size_oz = Column(Numeric(6, 2, asdecimal=False), nullable=True)
    display_name = Column(String, nullable=False)
    package_type = Column(Text, nullable=False)  # 'bottle' | 'can' | 'keg'
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "size_ml": self.size_ml,
            "size_oz": self.size_oz,
            "display_name": self.display_name,
            "package_type": self.package_type,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
        }


class PackagingRun(Base):
    __tablename__ = "packaging_runs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    batch_id = Column(Uuid, ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False, index=True)
    vessel_id = Column(Uuid, ForeignKey("vessels.id", ondelete="SET NULL"), nullable=True, index=True)
    run_sequence = Column(Integer, nullable=False)

    packaged_at = Column(DateTime, nullable=False, index=True)
    package_type = Column(Text, nullable=False, index=True)  # 'bottle' | 'can' | 'keg'
    package_size_ml = Column(Integer, nullable=False)
    units_produced = Column(Integer, nullable=False)
    volume_taken_l = Column(Numeric(12, 3, asdecimal=False), nullable=False)
    loss_l = Column(Numeric(12, 3, asdecimal=False), nullable=False)
    loss_percentage = Column(Numeric(6, 2, asdecimal=False), nullable=False)

    # QA
    abv_at_packaging = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    carbonation_level = Column(Text, nullable=True)  # 'still' | 'petillant' | 'sparkling'
    fill_check = Column(Text, nullable=True)  # 'pass' | 'fail' | 'not_tested'
    fill_variance_ml = Column(Numeric(8, 2, asdecimal=False), nullable=True)
    test_method = Column(String, nullable=True)
    test_date = Column(Date, nullable=True)
    qa_technician_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    qa_notes = Column(Text, nullable=True)

    status = Column(Text, nullable=False, default="completed", index=True)  # 'completed' | 'voided'
    void_reason = Column(Text, nullable=True)
    voided_at = Column(DateTime, nullable=True)
    voided_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    batch = relationship("Batch")
    vessel = relationship("Vessel")
    qa_technician = relationship("User", foreign_keys=[qa_technician_id])
    inventory_items = relationship("InventoryItem", back_populates="packaging_run")
