import uuid
from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, Numeric, Text, Uuid
from sqlalchemy.sql import func
from .database import Base


class TTBReport(Base):
    """Saved 5120.17 snapshot. Lifecycle: draft -> submitted -> finalized."""

    __tablename__ = "ttb_reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    period_type = Column(Text, nullable=False)  # 'monthly' | 'quarterly' | 'annual'
    year = Column(Integer, nullable=False, index=True)
    period_number = Column(Integer, nullable=True)
    period_start = Column(Date, nullable=False, index=True)
    period_end = Column(Date, nullable=False, index=True)
    status = Column(Text, nullable=False, default="draft", index=True)

    beginning_inventory_bulk_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)
    beginning_inventory_bottled_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)
    beginning_inventory_total_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)
    wine_produced_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)

    # {"tasting_room": g, "wholesale": g, "online_dtc": g, "events": g, "uncategorized": g}
    tax_paid_by_channel = Column(JSON, nullable=False, default=dict)
    tax_paid_total_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)

    other_removals_samples_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)
    other_removals_breakage_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)
    other_removals_losses_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)
    other_removals_total_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)

    ending_inventory_bulk_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)
    ending_inventory_bottled_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)
    ending_inventory_total_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)

    taxable_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)
    tax_rate = Column(Numeric(8, 4, asdecimal=False), nullable=False, default=0)
    small_producer_credit_gallons = Column(Numeric(14, 3, asdecimal=False), nullable=False, default=0)
    small_producer_credit_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    tax_owed = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    generated_at = Column(DateTime, nullable=False, server_default=func.now())
    generated_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    submitted_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    finalized_at = Column(DateTime, nullable=True)
    finalized_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class TTBOpeningBalance(Base):
    """Single-row organization setting: inventory on hand when tracking started."""

    __tablename__ = "ttb_opening_balances"

    id = Column(Integer, primary_key=True, default=1)
    balance_date = Column(Date, nullable=False)
    # {"hard_cider": g, "wine_under_16": g, ...} keyed by tax class
    bulk = Column(JSON, nullable=False, default=dict)
    bottled = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, nullable=True)
    updated_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
