from .stock_ledger import StockLedger
from .incident_service import IncidentLog
from .movement_service import MovementRecorder
from .order_service import OrderLifecycle
from .catalog_service import CategoryService, CustomerService, ProductService, SupplierService
from .user_service import UserService
from .report_service import ReportService

__all__ = [
    'StockLedger', 'IncidentLog', 'MovementRecorder', 'OrderLifecycle',
    'CategoryService', 'CustomerService', 'ProductService', 'SupplierService',
    'UserService', 'ReportService',
]
