import uuid
from sqlalchemy import BigInteger, Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    vendor_id = Column(Uuid, ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(Text, nullable=False, default="DRAFT", index=True)  # DRAFT|ORDERED|RECEIVED|CANCELLED
    order_date = Column(Date, nullable=False, index=True)
    received_date = Column(Date, nullable=True, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    vendor = relationship("Vendor", back_populates="purchase_orders")
    items = relationship("PurchaseOrderItem", back_populates="order", cascade="all, delete-orphan")


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)

    material_type = Column(Text, nullable=False, index=True)  # basefruit|juice|additive|packaging
    name = Column(String, nullable=False)
    fruit_type = Column(Text, nullable=True)  # basefruit only: apple|other

    quantity = Column(Numeric(12, 3, asdecimal=False), nullable=False)
    unit = Column(Text, nullable=False)  # kg|lb|g|L|gal|units
    unit_cost_minor = Column(BigInteger, nullable=True)

    order = relationship("PurchaseOrder", back_populates="items")
