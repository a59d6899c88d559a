from .product_repository import ProductRepository
from .movement_repository import MovementRepository
from .order_repository import OrderRepository
from .incident_repository import IncidentRepository
from .catalog_repository import (
    CategoryRepository, CustomerRepository, ProductAuditRepository, SupplierRepository, UserRepository
)

__all__ = [
    'ProductRepository', 'MovementRepository', 'OrderRepository', 'IncidentRepository',
    'CategoryRepository', 'CustomerRepository', 'SupplierRepository', 'UserRepository',
    'ProductAuditRepository',
]
