"""
Replenishment Order Repository Implementation
"""

from copy import deepcopy
from datetime import datetime
from typing import List, Optional

from stockcloud.database import db
from stockcloud.models import OrderStatus, ReplenishmentOrder
from .base import OrderRepositoryInterface


class OrderRepository(OrderRepositoryInterface):
    """Concrete implementation of order repository"""

    def create(self, order: ReplenishmentOrder) -> ReplenishmentOrder:
        db.session.add(order)
        db.session.flush()
        return order

    def get_by_id(self, order_id: int) -> Optional[ReplenishmentOrder]:
        """Get order by ID"""
        return db.session.get(ReplenishmentOrder, order_id)

    def list_all(self) -> List[ReplenishmentOrder]:
        """All orders, newest first"""
        return ReplenishmentOrder.query.order_by(ReplenishmentOrder.id.desc()).all()

    def list_by_status(self, status: OrderStatus) -> List[ReplenishmentOrder]:
        return ReplenishmentOrder.query.filter_by(status=status).order_by(ReplenishmentOrder.id.asc()).all()

    def list_by_supplier(self, supplier_id: int, status: Optional[OrderStatus] = None) -> List[ReplenishmentOrder]:
        query = ReplenishmentOrder.query.filter_by(supplier_id=supplier_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(ReplenishmentOrder.created_at.desc()).all()

    def list_between(self, start: datetime, end: datetime) -> List[ReplenishmentOrder]:
        return ReplenishmentOrder.query.filter(
            ReplenishmentOrder.created_at >= start,
            ReplenishmentOrder.created_at < end,
        ).order_by(ReplenishmentOrder.created_at.asc()).all()

    def list_since(self, since: datetime) -> List[ReplenishmentOrder]:
        return ReplenishmentOrder.query.filter(
            ReplenishmentOrder.created_at >= since
        ).order_by(ReplenishmentOrder.created_at.desc()).all()

    def save_lines(self, order: ReplenishmentOrder, lines: List[dict]) -> ReplenishmentOrder:
        """Replace the embedded line list"""
        order.lines = deepcopy(lines)
        db.session.flush()
        return order

    def set_status(self, order: ReplenishmentOrder, status: OrderStatus) -> ReplenishmentOrder:
        order.status = status
        db.session.flush()
        return order

    def refresh(self, order: ReplenishmentOrder) -> ReplenishmentOrder:
        db.session.refresh(order)
        return order
