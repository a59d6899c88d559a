"""
Movement Repository Implementation
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func

from stockcloud.database import db
from stockcloud.models import (
    AdjustmentKind, AdjustmentMovement, DocumentType, Movement, MovementKind,
    MovementLine, PurchaseMovement, SaleMovement
)
from .base import MovementRepositoryInterface


class MovementRepository(MovementRepositoryInterface):
    """Concrete implementation of movement repository"""

    def add(self, movement: Movement) -> Movement:
        """Persist a movement and assign its id"""
        db.session.add(movement)
        db.session.flush()
        return movement

    def add_details(self, details):
        """Persist one specialization row (sale, purchase or adjustment)"""
        db.session.add(details)
        db.session.flush()
        return details

    def add_line(self, line: MovementLine) -> MovementLine:
        db.session.add(line)
        db.session.flush()
        return line

    def max_sequence(self, document_type: DocumentType) -> int:
        """Highest sequence number issued for a document type, 0 when none"""
        value = db.session.query(func.max(SaleMovement.sequence)).filter(
            SaleMovement.document_type == document_type
        ).scalar()
        return value or 0

    def get_by_id(self, movement_id: int) -> Optional[Movement]:
        """Get movement by ID"""
        return db.session.get(Movement, movement_id)

    def list_all(self) -> List[Movement]:
        """All movements, newest first"""
        return Movement.query.order_by(Movement.id.desc()).all()

    def list_kind_between(self, kind: MovementKind, start: datetime, end: datetime) -> List[Movement]:
        return Movement.query.filter(
            Movement.kind == kind,
            Movement.occurred_at >= start,
            Movement.occurred_at < end,
        ).order_by(Movement.occurred_at.desc(), Movement.id.asc()).all()

    def list_between(self, start: datetime, end: datetime) -> List[Movement]:
        return Movement.query.filter(
            Movement.occurred_at >= start,
            Movement.occurred_at < end,
        ).order_by(Movement.occurred_at.desc(), Movement.id.asc()).all()

    def list_adjustments_between(self, kind: AdjustmentKind, start: datetime,
                                 end: datetime) -> List[Movement]:
        """Adjustment movements of one kind inside [start, end)"""
        return (
            Movement.query.join(AdjustmentMovement, AdjustmentMovement.movement_id == Movement.id)
            .filter(
                AdjustmentMovement.adjustment_kind == kind,
                Movement.occurred_at >= start,
                Movement.occurred_at < end,
            )
            .order_by(Movement.occurred_at.asc())
            .all()
        )

    def list_adjustment_dates_since(self, kind: AdjustmentKind, since: datetime) -> List[datetime]:
        rows = (
            db.session.query(Movement.occurred_at)
            .join(AdjustmentMovement, AdjustmentMovement.movement_id == Movement.id)
            .filter(AdjustmentMovement.adjustment_kind == kind, Movement.occurred_at >= since)
            .all()
        )
        return [row.occurred_at for row in rows]

    def list_sales_since(self, since: datetime) -> List[tuple]:
        """(occurred_at, total) of every sale since `since`"""
        rows = (
            db.session.query(Movement.occurred_at, SaleMovement.total)
            .join(SaleMovement, SaleMovement.movement_id == Movement.id)
            .filter(Movement.occurred_at >= since)
            .all()
        )
        return [(row.occurred_at, row.total) for row in rows]

    def list_purchases_for_order(self, order_id: int) -> List[Movement]:
        return (
            Movement.query.join(PurchaseMovement, PurchaseMovement.movement_id == Movement.id)
            .filter(PurchaseMovement.order_id == order_id)
            .order_by(Movement.occurred_at.asc())
            .all()
        )
