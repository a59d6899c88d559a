from marshmallow import Schema, fields, validate, validates_schema, post_load, ValidationError
from stockcloud.models import AdjustmentKind, DocumentType, RecordState, UserRole


class LoginSchema(Schema):
    """Schema for logging in"""
    username = fields.Str(required=True, validate=validate.Length(min=1))
    password = fields.Str(required=True, validate=validate.Length(min=1), load_only=True)


class CustomerSchema(Schema):
    """Customer data sent along with a sale"""
    name = fields.Str(allow_none=True, validate=validate.Length(max=150))
    business_name = fields.Str(allow_none=True, validate=validate.Length(max=150))
    national_id = fields.Str(allow_none=True, validate=validate.Regexp(r'^\d{8}$', error='DNI must have 8 digits'))
    tax_id = fields.Str(allow_none=True, validate=validate.Regexp(r'^\d{11}$', error='RUC must have 11 digits'))
    address = fields.Str(allow_none=True, validate=validate.Length(max=255))
    email = fields.Email(allow_none=True)


class MovementLineSchema(Schema):
    """Line item of a sale or purchase"""
    product_id = fields.Int(required=True, validate=validate.Range(min=1))
    name = fields.Str(allow_none=True)
    quantity = fields.Int(required=True, validate=validate.Range(min=1))
    unit_price = fields.Decimal(allow_none=True, as_string=False, validate=validate.Range(min=0))
    incident = fields.Str(allow_none=True, validate=validate.Length(max=500))


class SaleRequestSchema(Schema):
    """Schema for registering a sale"""
    customer = fields.Nested(CustomerSchema, required=True)
    document_type = fields.Str(
        required=True,
        validate=validate.OneOf([dt.value for dt in DocumentType])
    )
    lines = fields.List(fields.Nested(MovementLineSchema), required=True, validate=validate.Length(min=1))
    note = fields.Str(allow_none=True, validate=validate.Length(max=500))
    total = fields.Decimal(allow_none=True, as_string=False, validate=validate.Range(min=0))

    @validates_schema
    def validate_customer_identifier(self, data, **kwargs):
        customer = data.get('customer') or {}
        if data.get('document_type') == DocumentType.RECEIPT.value and not customer.get('national_id'):
            raise ValidationError('A receipt requires the customer DNI', 'customer')
        if data.get('document_type') == DocumentType.INVOICE.value and not customer.get('tax_id'):
            raise ValidationError('An invoice requires the customer RUC', 'customer')

    @post_load
    def to_enum(self, data, **kwargs):
        data['document_type'] = DocumentType(data['document_type'])
        return data


class PurchaseRequestSchema(Schema):
    """Schema for registering incoming goods, optionally against an order"""
    supplier_id = fields.Int(allow_none=True, validate=validate.Range(min=1))
    order_id = fields.Int(allow_none=True, validate=validate.Range(min=1))
    lines = fields.List(fields.Nested(MovementLineSchema), required=True, validate=validate.Length(min=1))
    note = fields.Str(allow_none=True, validate=validate.Length(max=500))
    total = fields.Decimal(allow_none=True, as_string=False, validate=validate.Range(min=0))

    @validates_schema
    def validate_source(self, data, **kwargs):
        if not data.get('supplier_id') and not data.get('order_id'):
            raise ValidationError('supplier_id or order_id is required')


class ReceiptRequestSchema(Schema):
    """Schema for receiving a purchase against an existing order"""
    lines = fields.List(fields.Nested(MovementLineSchema), required=True, validate=validate.Length(min=1))
    note = fields.Str(allow_none=True, validate=validate.Length(max=500))
    total = fields.Decimal(allow_none=True, as_string=False, validate=validate.Range(min=0))


class AdjustmentRequestSchema(Schema):
    """Schema for shortages and overages"""
    kind = fields.Str(
        required=True,
        validate=validate.OneOf([kind.value for kind in AdjustmentKind])
    )
    product_id = fields.Int(required=True, validate=validate.Range(min=1))
    quantity = fields.Int(required=True, validate=validate.Range(min=1))
    reason = fields.Str(allow_none=True, validate=validate.Length(max=255))
    note = fields.Str(allow_none=True, validate=validate.Length(max=500))

    @post_load
    def to_enum(self, data, **kwargs):
        data['kind'] = AdjustmentKind(data['kind'])
        return data


class OrderLineSchema(Schema):
    product_id = fields.Int(required=True, validate=validate.Range(min=1))
    quantity = fields.Int(required=True, validate=validate.Range(min=1))


class OrderRequestSchema(Schema):
    """Schema for creating replenishment orders"""
    supplier_id = fields.Int(required=True, validate=validate.Range(min=1))
    lines = fields.List(fields.Nested(OrderLineSchema), required=True, validate=validate.Length(min=1))


class ProductRequestSchema(Schema):
    """Schema for creating/updating products"""
    name = fields.Str(required=True, validate=validate.Length(min=1, max=150))
    stock = fields.Int(validate=validate.Range(min=0), load_default=0)
    unit_price = fields.Decimal(required=True, as_string=False, validate=validate.Range(min=0))
    category_id = fields.Int(allow_none=True)
    supplier_id = fields.Int(allow_none=True)
    minimum_quantity = fields.Int(validate=validate.Range(min=0), load_default=0)
    state = fields.Str(validate=validate.OneOf([state.value for state in RecordState]))


class StateRequestSchema(Schema):
    """Schema for activating/deactivating a record"""
    state = fields.Str(required=True, validate=validate.OneOf([state.value for state in RecordState]))

    @post_load
    def to_enum(self, data, **kwargs):
        data['state'] = RecordState(data['state'])
        return data


class CategoryRequestSchema(Schema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))


class SupplierRequestSchema(Schema):
    """Schema for creating/updating suppliers"""
    business_name = fields.Str(required=True, validate=validate.Length(min=1, max=150))
    tax_id = fields.Str(allow_none=True, validate=validate.Regexp(r'^\d{11}$', error='RUC must have 11 digits'))
    phone = fields.Str(allow_none=True, validate=validate.Length(max=20))
    email = fields.Email(allow_none=True)
    address = fields.Str(allow_none=True, validate=validate.Length(max=255))


class UserRequestSchema(Schema):
    """Schema for creating users"""
    username = fields.Str(required=True, validate=validate.Length(min=3, max=50))
    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=validate.Length(min=8), load_only=True)
    role = fields.Str(validate=validate.OneOf([role.value for role in UserRole]), load_default=UserRole.EMPLOYEE.value)

    @post_load
    def to_enum(self, data, **kwargs):
        data['role'] = UserRole(data['role'])
        return data


class UserUpdateSchema(Schema):
    """Schema for changing role or active flag"""
    role = fields.Str(validate=validate.OneOf([role.value for role in UserRole]))
    active = fields.Bool()

    @validates_schema
    def validate_not_empty(self, data, **kwargs):
        if not data:
            raise ValidationError('role or active is required')


class DayQuerySchema(Schema):
    """Schema for ?date=YYYY-MM-DD lookups"""
    date = fields.Date(required=True, format='%Y-%m-%d')


class ReportQuerySchema(Schema):
    """Schema for movement report downloads"""
    kind = fields.Str(
        required=True,
        validate=validate.OneOf(['sale', 'purchase', 'shortage', 'overage', 'all'])
    )
    start = fields.Date(required=True, format='%Y-%m-%d')
    end = fields.Date(required=True, format='%Y-%m-%d')

    @validates_schema
    def validate_range(self, data, **kwargs):
        if data.get('start') and data.get('end') and data['start'] > data['end']:
            raise ValidationError('start must not be after end', 'start')


class RankingQuerySchema(Schema):
    by = fields.Str(validate=validate.OneOf(['quantity', 'revenue']), load_default='quantity')
    limit = fields.Int(validate=validate.Range(min=1, max=100), load_default=10)


class AuditQuerySchema(Schema):
    user_id = fields.Int(validate=validate.Range(min=1))


class PasswordResetRequestSchema(Schema):
    """Schema for asking a password reset token"""
    email = fields.Email(required=True)


class PasswordResetSchema(Schema):
    """Schema for setting a new password with a reset token"""
    password = fields.Str(required=True, validate=validate.Length(min=8), load_only=True)
    confirm = fields.Str(required=True, load_only=True)

    @validates_schema
    def validate_match(self, data, **kwargs):
        if data.get('password') != data.get('confirm'):
            raise ValidationError('Passwords do not match', 'confirm')
