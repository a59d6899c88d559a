from stockcloud.database import db
from .enums import (
    AdjustmentKind, DocumentType, MovementKind, OrderStatus, RecordState, UserRole
)
from .catalog import Category, Customer, Product, Supplier
from .users import User
from .movements import (
    AdjustmentMovement, Movement, MovementLine, PurchaseMovement, SaleMovement
)
from .orders import ReplenishmentOrder
from .incidents import Incident
from .audit import ProductAudit

__all__ = [
    'db',
    'AdjustmentKind', 'DocumentType', 'MovementKind', 'OrderStatus', 'RecordState', 'UserRole',
    'Category', 'Customer', 'Product', 'Supplier', 'User',
    'Movement', 'MovementLine', 'SaleMovement', 'PurchaseMovement', 'AdjustmentMovement',
    'ReplenishmentOrder', 'Incident', 'ProductAudit',
]
