"""
Category, Supplier, Customer, User and Product Audit Repository Implementations
"""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from stockcloud.database import db
from stockcloud.errors import DuplicateRecord
from stockcloud.models import Category, Customer, ProductAudit, RecordState, Supplier, User


class _FlushingRepository:
    """Shared add/flush with a readable duplicate error"""
    model = None
    label = 'Record'

    def get_by_id(self, record_id: int):
        return db.session.get(self.model, record_id)

    def add(self, record):
        try:
            db.session.add(record)
            db.session.flush()
            return record
        except IntegrityError:
            raise DuplicateRecord(f"{self.label} already exists")

    def flush(self, record):
        try:
            db.session.flush()
            return record
        except IntegrityError:
            raise DuplicateRecord(f"{self.label} already exists")


class CategoryRepository(_FlushingRepository):
    model = Category
    label = 'Category'

    def list_all(self) -> List[Category]:
        return Category.query.order_by(Category.id.asc()).all()

    def list_active(self) -> List[Category]:
        return Category.query.filter_by(state=RecordState.ACTIVE).order_by(Category.id.asc()).all()


class SupplierRepository(_FlushingRepository):
    model = Supplier
    label = 'Supplier'

    def list_all(self) -> List[Supplier]:
        return Supplier.query.order_by(Supplier.id.asc()).all()


class CustomerRepository(_FlushingRepository):
    model = Customer
    label = 'Customer'

    def find_by_national_id(self, national_id: str) -> Optional[Customer]:
        return Customer.query.filter_by(national_id=national_id).first()

    def find_by_tax_id(self, tax_id: str) -> Optional[Customer]:
        return Customer.query.filter_by(tax_id=tax_id).first()

    def list_all(self) -> List[Customer]:
        return Customer.query.order_by(Customer.id.asc()).all()


class UserRepository(_FlushingRepository):
    model = User
    label = 'User'

    def get_by_username(self, username: str) -> Optional[User]:
        return User.query.filter_by(username=username).first()

    def list_all(self) -> List[User]:
        return User.query.order_by(User.id.asc()).all()

    def get_by_email(self, email: str) -> Optional[User]:
        return User.query.filter_by(email=email).first()

    def get_by_reset_token(self, token: str) -> Optional[User]:
        return User.query.filter_by(reset_token=token).first()


class ProductAuditRepository(_FlushingRepository):
    """Audit entries are inserted, never updated"""
    model = ProductAudit
    label = 'Product audit'

    def list_all(self, product_id: Optional[int] = None, user_id: Optional[int] = None) -> List[ProductAudit]:
        query = ProductAudit.query
        if product_id is not None:
            query = query.filter_by(product_id=product_id)
        if user_id is not None:
            query = query.filter_by(user_id=user_id)
        return query.order_by(ProductAudit.recorded_at.desc(), ProductAudit.id.desc()).all()
