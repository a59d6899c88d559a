"""
Catalog models: categories, suppliers, customers and products
"""

from sqlalchemy import DECIMAL

from stockcloud.database import db
from stockcloud.utils.time_utils import utcnow
from .enums import RecordState


class Category(db.Model):
    """Product category"""
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    state = db.Column(db.Enum(RecordState), default=RecordState.ACTIVE, nullable=False)

    products = db.relationship('Product', backref='category', lazy=True)

    def __repr__(self):
        return f'<Category {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'state': self.state.value,
        }


class Supplier(db.Model):
    """Supplier of products and recipient of replenishment orders"""
    __tablename__ = 'suppliers'

    id = db.Column(db.Integer, primary_key=True)
    business_name = db.Column(db.String(150), nullable=False)
    tax_id = db.Column(db.String(11), unique=True, nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    email = db.Column(db.String(120), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    products = db.relationship('Product', backref='supplier', lazy=True)

    def __repr__(self):
        return f'<Supplier {self.business_name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'business_name': self.business_name,
            'tax_id': self.tax_id,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
        }


class Customer(db.Model):
    """Sale customer, identified by national id (receipts) or tax id (invoices)"""
    __tablename__ = 'customers'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=True)
    business_name = db.Column(db.String(150), nullable=True)
    national_id = db.Column(db.String(8), unique=True, nullable=True, index=True)
    tax_id = db.Column(db.String(11), unique=True, nullable=True, index=True)
    address = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(120), nullable=True)

    def __repr__(self):
        return f'<Customer {self.national_id or self.tax_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'business_name': self.business_name,
            'national_id': self.national_id,
            'tax_id': self.tax_id,
            'address': self.address,
            'email': self.email,
        }


class Product(db.Model):
    """Catalog product. `stock` is the on-hand quantity kept by the stock ledger."""
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), unique=True, nullable=False)
    stock = db.Column(db.Integer, default=0, nullable=False)
    minimum_quantity = db.Column(db.Integer, default=0, nullable=False)
    unit_price = db.Column(DECIMAL(10, 2), default=0, nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey('suppliers.id'), nullable=True)
    state = db.Column(db.Enum(RecordState), default=RecordState.ACTIVE, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f'<Product {self.name}>'

    @property
    def is_active(self):
        return self.state == RecordState.ACTIVE

    @property
    def is_below_minimum(self):
        """Check if the product is under its minimum threshold"""
        return self.stock < self.minimum_quantity

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'stock': self.stock,
            'minimum_quantity': self.minimum_quantity,
            'unit_price': float(self.unit_price) if self.unit_price is not None else 0.0,
            'category_id': self.category_id,
            'category': self.category.name if self.category else None,
            'supplier_id': self.supplier_id,
            'supplier': self.supplier.business_name if self.supplier else None,
            'state': self.state.value,
            'is_below_minimum': self.is_below_minimum,
        }
