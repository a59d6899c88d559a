"""
Domain exceptions.

Every error the services raise on purpose derives from StockCloudError and
carries the HTTP status the API answers with, so the boundary never has to
inspect message text.
"""


class StockCloudError(Exception):
    status_code = 500
    error = 'Internal Server Error'

    def __init__(self, message=None, **details):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.details = details

    def to_dict(self):
        body = {
            'error': self.error,
            'message': self.message,
            'status_code': self.status_code,
        }
        if self.details:
            body['details'] = self.details
        return body


class ValidationFailed(StockCloudError):
    status_code = 400
    error = 'Validation Error'


class AuthenticationFailed(StockCloudError):
    status_code = 401
    error = 'Authentication required'


class PermissionDenied(StockCloudError):
    status_code = 403
    error = 'Forbidden'


class NotFound(StockCloudError):
    status_code = 404
    error = 'Not Found'
    entity = 'Resource'

    def __init__(self, entity_id=None, message=None):
        super().__init__(message or f"{self.entity} {entity_id} not found", entity_id=entity_id)
        self.entity_id = entity_id


class ProductNotFound(NotFound):
    entity = 'Product'


class CategoryNotFound(NotFound):
    entity = 'Category'


class SupplierNotFound(NotFound):
    entity = 'Supplier'


class CustomerNotFound(NotFound):
    entity = 'Customer'


class MovementNotFound(NotFound):
    entity = 'Movement'


class OrderNotFound(NotFound):
    entity = 'Order'


class IncidentNotFound(NotFound):
    entity = 'Incident'


class UserNotFound(NotFound):
    entity = 'User'


class Conflict(StockCloudError):
    status_code = 409
    error = 'Conflict'


class InvalidOrderState(Conflict):
    def __init__(self, order_id, status):
        super().__init__(
            f"Order {order_id} is {status} and cannot receive goods",
            order_id=order_id,
            status=status,
        )


class DuplicateSequence(Conflict):
    def __init__(self, document_type):
        super().__init__(
            f"Another {document_type} took the same sequence number, retry the sale",
            document_type=document_type,
        )


class CategoryInUse(Conflict):
    def __init__(self, category_id, products_in_stock):
        super().__init__(
            f"Category {category_id} has {products_in_stock} active product(s) with stock",
            category_id=category_id,
            products_in_stock=products_in_stock,
        )


class DuplicateRecord(Conflict):
    pass
