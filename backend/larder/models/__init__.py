from .accounts import User, Location
from .suppliers import Supplier, SupplierItem
from .inventory import InventoryItem, StockLevel, PriceHistory, WasteLog
from .orders import PurchaseOrder, PurchaseOrderLine
from .audit import AuditLog

__all__ = [
    'User', 'Location',
    'Supplier', 'SupplierItem',
    'InventoryItem', 'StockLevel', 'PriceHistory', 'WasteLog',
    'PurchaseOrder', 'PurchaseOrderLine',
    'AuditLog',
]
