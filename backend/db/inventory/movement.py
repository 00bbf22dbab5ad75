import uuid

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    inventory_item_id = Column(
        Uuid,
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # 'PACKAGED' | 'DISTRIBUTION' | 'ADJUSTMENT' | 'VOID'
    kind = Column(Text, nullable=False, index=True)
    change = Column(Integer, nullable=False)
    # ADJUSTMENT only: 'sample' | 'breakage' | 'correction' | 'return'
    adjustment_type = Column(Text, nullable=True, index=True)
    reason = Column(Text, nullable=True)

    # DISTRIBUTION only
    sales_channel_id = Column(Uuid, ForeignKey("sales_channels.id", ondelete="SET NULL"), nullable=True, index=True)
    unit_price_minor = Column(BigInteger, nullable=True)

    occurred_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    inventory_item = relationship("InventoryItem", back_populates="movements")
    sales_channel = relationship("SalesChannel")
    created_by_user = relationship("User")
