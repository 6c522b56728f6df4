from vendorsettle.models.business import Business
from vendorsettle.models.catalog import Item
from vendorsettle.models.security import AuditLog
from vendorsettle.models.settlement import DailySalesRecord, SettlementLine, VendorSettlement
from vendorsettle.models.user import User
from vendorsettle.models.vendor import Vendor, VendorItem

__all__ = [
    "AuditLog",
    "Business",
    "DailySalesRecord",
    "Item",
    "SettlementLine",
    "User",
    "Vendor",
    "VendorItem",
    "VendorSettlement",
]
