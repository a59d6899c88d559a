"""
Incident Log - discrepancies found when a purchase arrives
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from stockcloud.database import schedule_eviction
from stockcloud.errors import IncidentNotFound
from stockcloud.models import Incident
from stockcloud.repositories import IncidentRepository, ProductRepository
from stockcloud.utils.cache_utils import CacheKeys, get_cache
from stockcloud.utils.time_utils import (
    local_date, local_day_bounds, parse_day, summary_window_start, utcnow
)

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Issues on arrival of the purchase"


def flagged(line: Dict[str, Any]) -> bool:
    """A line carries an incident when its note is non-blank"""
    note = line.get('incident')
    return bool(note and str(note).strip())


class IncidentLog:
    """Additive log of incidents. Writes join the caller's unit of work."""

    def __init__(self, incident_repo=None, product_repo=None, cache=None):
        self.incident_repo = incident_repo or IncidentRepository()
        self.product_repo = product_repo or ProductRepository()
        self.cache = cache or get_cache()

    def details_from_lines(self, lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Build incident details from received lines.

        Only lines with a non-blank incident note are kept. The product name
        comes from the line when present, otherwise from the catalog.
        """
        details = []
        for line in lines:
            if not flagged(line):
                continue

            name = line.get('name')
            if not name:
                product = self.product_repo.get_by_id(int(line['product_id']))
                name = product.name if product else None

            details.append({
                'product_id': int(line['product_id']),
                'name': name,
                'quantity': int(line['quantity']),
                'incident': str(line['incident']).strip(),
            })
        return details

    def register(self, movement_id: int, details: List[Dict[str, Any]], order_id: Optional[int] = None,
                 general_note: Optional[str] = None, effective_date=None) -> Incident:
        """Record an incident for a movement and, optionally, an order"""
        effective_date = effective_date or utcnow()
        incident = Incident(
            movement_id=movement_id,
            order_id=order_id,
            description=(general_note or '').strip() or DEFAULT_DESCRIPTION,
            details=list(details),
            effective_date=effective_date,
            registered_at=utcnow(),
        )
        self.incident_repo.create(incident)

        schedule_eviction({
            CacheKeys.INCIDENTS_ALL,
            CacheKeys.INCIDENTS_30D,
            CacheKeys.incidents_on(local_date(effective_date).isoformat()),
        })
        logger.info(
            f"Registered incident {incident.id} for movement {movement_id}"
            f" (order {order_id}) with {len(details)} detail(s)"
        )
        return incident

    def get(self, incident_id: int) -> Dict[str, Any]:
        incident = self.incident_repo.get_by_id(incident_id)
        if not incident:
            raise IncidentNotFound(incident_id)
        return incident.to_dict()

    def list_all(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(
            CacheKeys.INCIDENTS_ALL,
            lambda: [incident.to_dict() for incident in self.incident_repo.list_all()],
        )

    def by_order(self, order_id: int) -> List[Dict[str, Any]]:
        return [incident.to_dict() for incident in self.incident_repo.list_by_order(order_id)]

    def by_movement(self, movement_id: int) -> List[Dict[str, Any]]:
        return [incident.to_dict() for incident in self.incident_repo.list_by_movement(movement_id)]

    def by_date(self, day) -> List[Dict[str, Any]]:
        """Incidents whose effective date falls on a local calendar day"""
        day = parse_day(day)
        start, end = local_day_bounds(day)
        return self.cache.get_or_set(
            CacheKeys.incidents_on(day.isoformat()),
            lambda: [incident.to_dict() for incident in self.incident_repo.list_between(start, end)],
        )

    def summary_last_30_days(self) -> List[Dict[str, Any]]:
        """Incident count per local day over the last 30 days"""
        def load():
            counts = Counter(
                local_date(incident.effective_date).isoformat()
                for incident in self.incident_repo.list_since(summary_window_start())
            )
            return [{'date': day, 'count': counts[day]} for day in sorted(counts)]

        return self.cache.get_or_set(CacheKeys.INCIDENTS_30D, load)
