# Importing every model module registers its tables on ``Base.metadata``.
from .user import User
from .project import Project, Task
from .labour import Labour, LabourAttendance, Payroll
from .catalog import Item, Warehouse
from .supplier import Supplier, SupplierLedgerEntry
from .material import InventoryHistory, Material
from .mrr import MaterialRequirementRequest, MrrItem
from .purchase_order import PurchaseOrder, PurchaseOrderItem
from .receipt import MaterialReceipt, MaterialReceiptItem
from .movement import MaterialConsumption, MaterialIssue, MaterialReturn

__all__ = [
    "InventoryHistory",
    "Item",
    "Labour",
    "LabourAttendance",
    "Material",
    "MaterialConsumption",
    "MaterialIssue",
    "MaterialReceipt",
    "MaterialReceiptItem",
    "MaterialRequirementRequest",
    "MaterialReturn",
    "MrrItem",
    "Payroll",
    "Project",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "Supplier",
    "SupplierLedgerEntry",
    "Task",
    "User",
    "Warehouse",
]
