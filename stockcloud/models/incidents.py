"""
Incident model
"""

from stockcloud.database import db
from stockcloud.utils.time_utils import utcnow


class Incident(db.Model):
    """Discrepancy found when a purchase arrived (short or damaged goods)"""
    __tablename__ = 'incidents'

    id = db.Column(db.Integer, primary_key=True)
    movement_id = db.Column(db.Integer, db.ForeignKey('movements.id'), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey('replenishment_orders.id'), nullable=True, index=True)
    description = db.Column(db.Text, nullable=True)
    # [{product_id, name, quantity, incident}]
    details = db.Column(db.JSON, nullable=False, default=list)
    effective_date = db.Column(db.DateTime, nullable=False, index=True)
    registered_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    movement = db.relationship('Movement', lazy='joined')
    order = db.relationship('ReplenishmentOrder', lazy='joined')

    def __repr__(self):
        return f'<Incident {self.id} movement={self.movement_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'movement_id': self.movement_id,
            'order_id': self.order_id,
            'order_status': self.order.status.value if self.order else None,
            'description': self.description,
            'details': list(self.details or []),
            'effective_date': self.effective_date.isoformat(),
            'registered_at': self.registered_at.isoformat() if self.registered_at else None,
        }
