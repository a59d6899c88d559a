"""
Stock movement models.

A Movement is immutable once written and owns exactly one specialization
row (sale, purchase or adjustment) plus one or more line items.
"""

from sqlalchemy import DECIMAL

from stockcloud.database import db
from .enums import AdjustmentKind, DocumentType, MovementKind


class Movement(db.Model):
    """Stock-affecting event"""
    __tablename__ = 'movements'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    kind = db.Column(db.Enum(MovementKind), nullable=False, index=True)
    occurred_at = db.Column(db.DateTime, nullable=False, index=True)
    note = db.Column(db.Text, nullable=True)

    user = db.relationship('User', lazy='joined')
    sale = db.relationship('SaleMovement', uselist=False, backref='movement')
    purchase = db.relationship('PurchaseMovement', uselist=False, backref='movement')
    adjustment = db.relationship('AdjustmentMovement', uselist=False, backref='movement')
    lines = db.relationship('MovementLine', backref='movement', lazy=True,
                            order_by='MovementLine.id')

    def __repr__(self):
        return f'<Movement {self.id} {self.kind.value}>'

    @property
    def lines_total(self):
        return sum((line.subtotal for line in self.lines), 0)

    def to_dict(self, include_lines=False):
        """Convert to dictionary"""
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'kind': self.kind.value,
            'occurred_at': self.occurred_at.isoformat(),
            'note': self.note,
        }
        if self.sale:
            data['sale'] = self.sale.to_dict()
        if self.purchase:
            data['purchase'] = self.purchase.to_dict()
        if self.adjustment:
            data['adjustment'] = self.adjustment.to_dict()
        if include_lines:
            data['lines'] = [line.to_dict() for line in self.lines]
        return data


class SaleMovement(db.Model):
    """Sale specialization: customer, fiscal document and total"""
    __tablename__ = 'sale_movements'
    __table_args__ = (
        db.UniqueConstraint('document_type', 'sequence', name='uq_sale_document_sequence'),
    )

    movement_id = db.Column(db.Integer, db.ForeignKey('movements.id'), primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False)
    document_type = db.Column(db.Enum(DocumentType), nullable=False)
    series = db.Column(db.String(4), nullable=False)
    sequence = db.Column(db.Integer, nullable=False)
    total = db.Column(DECIMAL(12, 2), nullable=False)

    customer = db.relationship('Customer', lazy='joined')

    @property
    def document_number(self):
        return f"{self.series}-{self.sequence:08d}"

    def to_dict(self):
        return {
            'customer_id': self.customer_id,
            'customer': self.customer.to_dict() if self.customer else None,
            'document_type': self.document_type.value,
            'series': self.series,
            'sequence': self.sequence,
            'document_number': self.document_number,
            'total': float(self.total),
        }


class PurchaseMovement(db.Model):
    """Purchase specialization: supplier, total and optional replenishment order"""
    __tablename__ = 'purchase_movements'

    movement_id = db.Column(db.Integer, db.ForeignKey('movements.id'), primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey('suppliers.id'), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey('replenishment_orders.id'), nullable=True, index=True)
    total = db.Column(DECIMAL(12, 2), nullable=False)

    supplier = db.relationship('Supplier', lazy='joined')

    def to_dict(self):
        return {
            'supplier_id': self.supplier_id,
            'supplier': self.supplier.business_name if self.supplier else None,
            'order_id': self.order_id,
            'total': float(self.total),
        }


class AdjustmentMovement(db.Model):
    """Adjustment specialization: shortage or overage with its reason"""
    __tablename__ = 'adjustment_movements'

    movement_id = db.Column(db.Integer, db.ForeignKey('movements.id'), primary_key=True)
    adjustment_kind = db.Column(db.Enum(AdjustmentKind), nullable=False, index=True)
    reason = db.Column(db.String(255), nullable=True)

    def to_dict(self):
        return {
            'adjustment_kind': self.adjustment_kind.value,
            'reason': self.reason,
        }


class MovementLine(db.Model):
    """Line item of a movement"""
    __tablename__ = 'movement_lines'

    id = db.Column(db.Integer, primary_key=True)
    movement_id = db.Column(db.Integer, db.ForeignKey('movements.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(DECIMAL(10, 2), nullable=False)
    subtotal = db.Column(DECIMAL(12, 2), nullable=False)

    product = db.relationship('Product', lazy='joined')

    def __repr__(self):
        return f'<MovementLine {self.movement_id}:{self.product_id} x{self.quantity}>'

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product': self.product.name if self.product else None,
            'quantity': self.quantity,
            'unit_price': float(self.unit_price),
            'subtotal': float(self.subtotal),
        }
