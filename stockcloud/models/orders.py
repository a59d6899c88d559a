"""
Replenishment order model
"""

from stockcloud.database import db
from .enums import OrderStatus


class ReplenishmentOrder(db.Model):
    """
    Replenishment request to a supplier.

    Lines are embedded as a JSON list of
    {product_id, name, quantity, received, incident}. The list is always
    replaced as a whole so SQLAlchemy notices the change.
    """
    __tablename__ = 'replenishment_orders'

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey('suppliers.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, index=True)
    status = db.Column(db.Enum(OrderStatus), default=OrderStatus.IN_PROGRESS, nullable=False, index=True)
    lines = db.Column(db.JSON, nullable=False, default=list)

    supplier = db.relationship('Supplier', lazy='joined')
    user = db.relationship('User', lazy='joined')
    purchases = db.relationship('PurchaseMovement', backref='order', lazy=True)

    def __repr__(self):
        return f'<ReplenishmentOrder {self.id} {self.status.value}>'

    @property
    def is_open(self):
        return self.status == OrderStatus.IN_PROGRESS

    @property
    def is_fully_received(self):
        """Every line received at least what was ordered"""
        return all(int(line.get('received') or 0) >= int(line['quantity']) for line in self.lines or [])

    def line_for(self, product_id):
        for line in self.lines or []:
            if int(line['product_id']) == int(product_id):
                return line
        return None

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'supplier_id': self.supplier_id,
            'supplier': self.supplier.business_name if self.supplier else None,
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'created_at': self.created_at.isoformat(),
            'status': self.status.value,
            'lines': list(self.lines or []),
            'is_fully_received': self.is_fully_received,
        }
