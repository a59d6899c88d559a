"""
Product Repository Implementation
"""

from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from stockcloud.database import db
from stockcloud.errors import DuplicateRecord
from stockcloud.models import (
    MovementKind, Movement, MovementLine, Product, RecordState
)
from stockcloud.utils.time_utils import utcnow
from .base import ProductRepositoryInterface


class ProductRepository(ProductRepositoryInterface):
    """Concrete implementation of product repository. Writes flush, callers commit."""

    def get_by_id(self, product_id: int) -> Optional[Product]:
        """Get product by ID"""
        return db.session.get(Product, product_id)

    def get_by_name(self, name: str) -> Optional[Product]:
        return Product.query.filter_by(name=name).first()

    def get_many(self, product_ids: List[int]) -> List[Product]:
        if not product_ids:
            return []
        return Product.query.filter(Product.id.in_(product_ids)).all()

    def list_all(self) -> List[Product]:
        """All products ordered by name"""
        return Product.query.order_by(Product.name.asc()).all()

    def list_below_minimum(self) -> List[Product]:
        """Active products whose stock is under their minimum threshold"""
        return Product.query.filter(
            Product.state == RecordState.ACTIVE,
            Product.stock < Product.minimum_quantity,
        ).order_by(Product.name.asc()).all()

    def create(self, product: Product) -> Product:
        """Create new product"""
        try:
            db.session.add(product)
            db.session.flush()
            return product
        except IntegrityError:
            raise DuplicateRecord(f"Product {product.name} already exists")

    def update(self, product: Product) -> Product:
        """Update product"""
        product.updated_at = utcnow()
        try:
            db.session.flush()
        except IntegrityError:
            raise DuplicateRecord(f"Product {product.name} already exists")
        return product

    def add_to_stock(self, product_id: int, delta: int) -> bool:
        """Atomic `stock = stock + delta`. False when the product does not exist."""
        result = db.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + delta, updated_at=utcnow())
            .execution_options(synchronize_session='fetch')
        )
        return result.rowcount > 0

    def current_stock(self, product_id: int) -> Optional[int]:
        """Stock as stored, bypassing the identity map"""
        return db.session.query(Product.stock).filter(Product.id == product_id).scalar()

    def count_active_in_stock(self, category_id: int) -> int:
        return Product.query.filter(
            Product.category_id == category_id,
            Product.state == RecordState.ACTIVE,
            Product.stock > 0,
        ).count()

    def deactivate_by_category(self, category_id: int) -> int:
        result = db.session.execute(
            update(Product)
            .where(Product.category_id == category_id)
            .values(state=RecordState.INACTIVE, updated_at=utcnow())
            .execution_options(synchronize_session='fetch')
        )
        return result.rowcount

    def ranking(self, by: str = 'quantity', limit: int = 10) -> List[dict]:
        """Best sellers by quantity sold or by revenue"""
        measure = func.sum(MovementLine.quantity) if by == 'quantity' else func.sum(MovementLine.subtotal)
        rows = (
            db.session.query(Product.id, Product.name, measure.label('total'))
            .join(MovementLine, MovementLine.product_id == Product.id)
            .join(Movement, Movement.id == MovementLine.movement_id)
            .filter(Movement.kind == MovementKind.SALE)
            .group_by(Product.id, Product.name)
            .order_by(measure.desc())
            .limit(limit)
            .all()
        )
        return [
            {'product_id': row.id, 'name': row.name, 'total': float(row.total or 0)}
            for row in rows
        ]
