"""
Incident Repository Implementation
"""

from datetime import datetime
from typing import List, Optional

from stockcloud.database import db
from stockcloud.models import Incident
from .base import IncidentRepositoryInterface


class IncidentRepository(IncidentRepositoryInterface):
    """Concrete implementation of incident repository. Incidents are never updated."""

    def create(self, incident: Incident) -> Incident:
        db.session.add(incident)
        db.session.flush()
        return incident

    def get_by_id(self, incident_id: int) -> Optional[Incident]:
        return db.session.get(Incident, incident_id)

    def list_all(self) -> List[Incident]:
        return Incident.query.order_by(Incident.registered_at.desc(), Incident.id.desc()).all()

    def list_by_order(self, order_id: int) -> List[Incident]:
        return Incident.query.filter_by(order_id=order_id).order_by(Incident.id.asc()).all()

    def list_by_movement(self, movement_id: int) -> List[Incident]:
        return Incident.query.filter_by(movement_id=movement_id).order_by(Incident.registered_at.desc()).all()

    def list_between(self, start: datetime, end: datetime) -> List[Incident]:
        return Incident.query.filter(
            Incident.effective_date >= start,
            Incident.effective_date < end,
        ).order_by(Incident.effective_date.asc()).all()

    def list_since(self, since: datetime) -> List[Incident]:
        return Incident.query.filter(
            Incident.effective_date >= since
        ).order_by(Incident.effective_date.desc()).all()
