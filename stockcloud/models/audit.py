"""
Product audit trail model
"""

from stockcloud.database import db
from stockcloud.utils.time_utils import utcnow


class ProductAudit(db.Model):
    """One edit of a product by a user. Rows are only ever inserted."""
    __tablename__ = 'product_audits'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    action = db.Column(db.String(20), nullable=False)
    # {field: {before, after}}
    changed_fields = db.Column(db.JSON, nullable=False, default=dict)
    recorded_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    product = db.relationship('Product', lazy='joined')
    user = db.relationship('User', lazy='joined')

    def __repr__(self):
        return f'<ProductAudit {self.id} product={self.product_id} {self.action}>'

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product': self.product.name if self.product else None,
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'action': self.action,
            'changed_fields': dict(self.changed_fields or {}),
            'recorded_at': self.recorded_at.isoformat() if self.recorded_at else None,
        }
