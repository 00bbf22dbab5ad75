"""Every table module, imported so mappers and Base.metadata are complete."""

from db.batch import Batch, BatchAdditive, BatchCellarOperation, BatchMeasurement
from db.carbonation import CarbonationOperation
from db.inventory.item import InventoryItem
from db.inventory.movement import InventoryMovement
from db.packaging import PackageSize, PackagingRun
from db.purchase_order import PurchaseOrder, PurchaseOrderItem
from db.sales_channel import SalesChannel
from db.ttb import TTBOpeningBalance, TTBReport
from db.users import User
from db.vendor import Vendor
from db.vessel import Vessel

__all__ = [
    "Batch",
    "BatchAdditive",
    "BatchCellarOperation",
    "BatchMeasurement",
    "CarbonationOperation",
    "InventoryItem",
    "InventoryMovement",
    "PackageSize",
    "PackagingRun",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "SalesChannel",
    "TTBOpeningBalance",
    "TTBReport",
    "User",
    "Vendor",
    "Vessel",
]
