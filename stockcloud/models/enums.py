"""
Model Enums
"""

from enum import Enum


class RecordState(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class MovementKind(Enum):
    SALE = "sale"
    PURCHASE = "purchase"
    ADJUSTMENT = "adjustment"


class AdjustmentKind(Enum):
    SHORTAGE = "shortage"
    OVERAGE = "overage"


class DocumentType(Enum):
    RECEIPT = "receipt"
    INVOICE = "invoice"

    @property
    def series(self):
        return 'B001' if self is DocumentType.RECEIPT else 'F001'


class OrderStatus(Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class UserRole(Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"
