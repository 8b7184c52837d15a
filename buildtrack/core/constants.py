"""Shared role, status and transaction-type constants."""

# ---- Roles
ROLE_ADMIN = "Admin"
ROLE_PROJECT_MANAGER = "Project Manager"
ROLE_ONSITE_TEAM = "Project On-site Team"
ROLE_INVENTORY_MANAGER = "Inventory Manager"
ROLE_STORE_MANAGER = "Store Manager"
ROLE_STORE_INCHARGE = "Store Incharge"
ROLE_ENGINEER_HO = "Engineer HO"
ROLE_PURCHASE_MANAGER_HO = "Purchase Manager HO"
ROLE_ACCOUNTANT_HEAD = "Accountant Head"
ROLE_ACCOUNTANT = "Accountant"

ROLE_CHOICES = (
    ROLE_ADMIN,
    ROLE_PROJECT_MANAGER,
    ROLE_ONSITE_TEAM,
    ROLE_INVENTORY_MANAGER,
    ROLE_STORE_MANAGER,
    ROLE_STORE_INCHARGE,
    ROLE_ENGINEER_HO,
    ROLE_PURCHASE_MANAGER_HO,
    ROLE_ACCOUNTANT_HEAD,
    ROLE_ACCOUNTANT,
)

# ---- Inventory ledger
TXN_ISSUE = "ISSUE"
TXN_RETURN = "RETURN"
TXN_ADJUSTMENT = "ADJUSTMENT"
TXN_PURCHASE = "PURCHASE"
TXN_CONSUMPTION = "CONSUMPTION"

TRANSACTION_TYPES = (TXN_ISSUE, TXN_RETURN, TXN_ADJUSTMENT, TXN_PURCHASE, TXN_CONSUMPTION)

MATERIAL_STATUSES = ("ACTIVE", "INACTIVE", "DISCONTINUED")

# ---- Projects and tasks
PROJECT_STATUSES = ("PLANNED", "ACTIVE", "ON_HOLD", "COMPLETED", "CANCELLED")
TASK_STATUSES = ("TODO", "IN_PROGRESS", "BLOCKED", "DONE")
TASK_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "CRITICAL")

# ---- Material requirement requests
PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")
MRR_DRAFT = "DRAFT"
MRR_SUBMITTED = "SUBMITTED"
MRR_APPROVED = "APPROVED"
MRR_REJECTED = "REJECTED"
MRR_PROCESSING = "PROCESSING"
MRR_COMPLETED = "COMPLETED"
MRR_CANCELLED = "CANCELLED"

# ---- Purchase orders
PO_DRAFT = "DRAFT"
PO_APPROVED = "APPROVED"
PO_PLACED = "PLACED"
PO_PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
PO_FULLY_RECEIVED = "FULLY_RECEIVED"
PO_CANCELLED = "CANCELLED"
PO_CLOSED = "CLOSED"

# ---- Material receipts
RECEIPT_PENDING = "PENDING"
RECEIPT_RECEIVED = "RECEIVED"
RECEIPT_APPROVED = "APPROVED"
RECEIPT_REJECTED = "REJECTED"
RECEIPT_COMPLETED = "COMPLETED"

CONDITIONS = ("GOOD", "DAMAGED", "PARTIAL", "REJECTED")
ITEM_CONDITIONS = ("GOOD", "DAMAGED", "REJECTED")

# ---- Stock movements
ISSUE_PENDING = "PENDING"
ISSUE_ISSUED = "ISSUED"
ISSUE_RECEIVED = "RECEIVED"
ISSUE_CANCELLED = "CANCELLED"
ISSUE_STATUSES = (ISSUE_PENDING, ISSUE_ISSUED, ISSUE_RECEIVED, ISSUE_CANCELLED)
RETURN_CONDITIONS = ("GOOD", "DAMAGED", "USED", "EXPIRED")

# ---- Supplier ledger
LEDGER_PURCHASE = "PURCHASE"
LEDGER_PAYMENT = "PAYMENT"
LEDGER_ADJUSTMENT = "ADJUSTMENT"
LEDGER_CREDIT_NOTE = "CREDIT_NOTE"
LEDGER_DEBIT_NOTE = "DEBIT_NOTE"

PAYMENT_PENDING = "PENDING"
PAYMENT_PARTIAL = "PARTIAL"
PAYMENT_PAID = "PAID"
PAYMENT_OVERDUE = "OVERDUE"


def normalize_choice(value: str | None, choices: tuple[str, ...], default: str) -> str:
    """Return an upper-cased member of ``choices`` or raise ``ValueError``."""

    normalized = (value or default).strip().upper()
    if normalized not in choices:
        raise ValueError(f"must be one of {', '.join(choices)}")
    return normalized
