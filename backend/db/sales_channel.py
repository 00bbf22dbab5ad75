import uuid
from sqlalchemy import Boolean, Column, String, Text, Uuid
from .database import Base

# Channel codes that map onto TTB tax-paid removal buckets
TTB_CHANNEL_CODES = ("tasting_room", "wholesale", "online_dtc", "events")


class SalesChannel(Base):
    __tablename__ = "sales_channels"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(Text, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    # retail channels sell at retail_price, everything else at wholesale_price
    uses_retail_price = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "uses_retail_price": self.uses_retail_price,
            "is_active": self.is_active,
        }
