"""
Base Repository Interface - Abstract base classes
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from stockcloud.models import (
    AdjustmentKind, DocumentType, Incident, Movement, MovementLine, OrderStatus,
    Product, ReplenishmentOrder
)


class ProductRepositoryInterface(ABC):
    """Abstract base class for product repository"""

    @abstractmethod
    def get_by_id(self, product_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    def list_all(self) -> List[Product]:
        pass

    @abstractmethod
    def create(self, product: Product) -> Product:
        pass

    @abstractmethod
    def add_to_stock(self, product_id: int, delta: int) -> bool:
        pass


class MovementRepositoryInterface(ABC):
    """Abstract base class for movement repository"""

    @abstractmethod
    def add(self, movement: Movement) -> Movement:
        pass

    @abstractmethod
    def add_line(self, line: MovementLine) -> MovementLine:
        pass

    @abstractmethod
    def max_sequence(self, document_type: DocumentType) -> int:
        pass

    @abstractmethod
    def get_by_id(self, movement_id: int) -> Optional[Movement]:
        pass

    @abstractmethod
    def list_all(self) -> List[Movement]:
        pass

    @abstractmethod
    def list_adjustments_between(self, kind: AdjustmentKind, start: datetime,
                                 end: datetime) -> List[Movement]:
        pass


class OrderRepositoryInterface(ABC):
    """Abstract base class for replenishment order repository"""

    @abstractmethod
    def create(self, order: ReplenishmentOrder) -> ReplenishmentOrder:
        pass

    @abstractmethod
    def get_by_id(self, order_id: int) -> Optional[ReplenishmentOrder]:
        pass

    @abstractmethod
    def list_by_status(self, status: OrderStatus) -> List[ReplenishmentOrder]:
        pass

    @abstractmethod
    def save_lines(self, order: ReplenishmentOrder, lines: List[dict]) -> ReplenishmentOrder:
        pass

    @abstractmethod
    def set_status(self, order: ReplenishmentOrder, status: OrderStatus) -> ReplenishmentOrder:
        pass


class IncidentRepositoryInterface(ABC):
    """Abstract base class for incident repository"""

    @abstractmethod
    def create(self, incident: Incident) -> Incident:
        pass

    @abstractmethod
    def get_by_id(self, incident_id: int) -> Optional[Incident]:
        pass

    @abstractmethod
    def list_by_order(self, order_id: int) -> List[Incident]:
        pass

    @abstractmethod
    def list_by_movement(self, movement_id: int) -> List[Incident]:
        pass

    @abstractmethod
    def list_between(self, start: datetime, end: datetime) -> List[Incident]:
        pass
