"""
User model
"""

from werkzeug.security import check_password_hash, generate_password_hash

from stockcloud.database import db
from stockcloud.utils.time_utils import utcnow
from .enums import UserRole


class User(db.Model):
    """Application user"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)
    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    reset_token = db.Column(db.String(64), unique=True, nullable=True)
    reset_token_expires = db.Column(db.DateTime, nullable=True)

    def __repr__(self):
        return f'<User {self.username}>'

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def reset_token_valid(self, now):
        """Password reset token issued and not yet expired"""
        if not self.reset_token or self.reset_token_expires is None:
            return False
        return self.reset_token_expires > now

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role.value,
            'active': self.active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
