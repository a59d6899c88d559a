"""
Order Lifecycle - replenishment orders, received quantities and status
"""

import logging
from collections import Counter
from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple

from stockcloud.database import unit_of_work
from stockcloud.errors import (
    InvalidOrderState, OrderNotFound, ProductNotFound, SupplierNotFound, ValidationFailed
)
from stockcloud.models import Incident, OrderStatus, ReplenishmentOrder
from stockcloud.repositories import OrderRepository, ProductRepository, SupplierRepository
from stockcloud.services.cache_policy import UseCase, invalidate_after
from stockcloud.services.incident_service import IncidentLog, flagged
from stockcloud.utils.cache_utils import CacheKeys, get_cache
from stockcloud.utils.time_utils import (
    local_date, local_day_bounds, parse_day, summary_window_start, utcnow
)

logger = logging.getLogger(__name__)


class OrderLifecycle:
    """
    Replenishment orders move from in_progress to completed or cancelled.

    An order completes when every line has received at least the ordered
    quantity and the receipt that got it there raised no incident.
    """

    def __init__(self, order_repo=None, product_repo=None, supplier_repo=None,
                 recorder=None, incidents=None, cache=None):
        self.order_repo = order_repo or OrderRepository()
        self.product_repo = product_repo or ProductRepository()
        self.supplier_repo = supplier_repo or SupplierRepository()
        self.cache = cache or get_cache()
        self.incidents = incidents or IncidentLog(product_repo=self.product_repo, cache=self.cache)
        self._recorder = recorder

    @property
    def recorder(self):
        if self._recorder is None:
            from stockcloud.services.movement_service import MovementRecorder
            self._recorder = MovementRecorder(
                product_repo=self.product_repo, incidents=self.incidents, orders=self, cache=self.cache
            )
        return self._recorder

    def _get(self, order_id: int) -> ReplenishmentOrder:
        order = self.order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order

    def _day_key(self, order: ReplenishmentOrder):
        return CacheKeys.orders_on(local_date(order.created_at).isoformat())

    def create(self, supplier_id: int, lines: List[Dict[str, Any]], requester_id: Optional[int] = None) -> Dict[str, Any]:
        """Create an in-progress order. Each line starts with nothing received."""
        if not lines:
            raise ValidationFailed("An order needs at least one product")

        try:
            with unit_of_work(self.cache):
                if not self.supplier_repo.get_by_id(supplier_id):
                    raise SupplierNotFound(supplier_id)

                order_lines = []
                for line in lines:
                    product_id = int(line['product_id'])
                    product = self.product_repo.get_by_id(product_id)
                    if not product:
                        raise ProductNotFound(product_id)
                    order_lines.append({
                        'product_id': product_id,
                        'name': product.name,
                        'quantity': int(line['quantity']),
                        'received': 0,
                        'incident': None,
                    })

                order = ReplenishmentOrder(
                    supplier_id=supplier_id,
                    user_id=requester_id,
                    created_at=utcnow(),
                    status=OrderStatus.IN_PROGRESS,
                    lines=order_lines,
                )
                self.order_repo.create(order)

                invalidate_after(
                    UseCase.ORDER_CHANGED,
                    self._day_key(order),
                    CacheKeys.PRODUCTS_CRITICAL,
                    CacheKeys.PRODUCTS_FOR_ORDER,
                )

            logger.info(f"Created order {order.id} for supplier {supplier_id} with {len(order_lines)} line(s)")
            return order.to_dict()

        except Exception as e:
            logger.error(f"Error creating order: {str(e)}")
            raise

    def receive(self, order_id: int, movement_lines: List[Dict[str, Any]], movement_id: int,
                note: Optional[str] = None, effective_date=None) -> Tuple[ReplenishmentOrder, Optional[Incident]]:
        """
        Apply received quantities of a purchase movement to an order.

        Incoming lines are matched to order lines by product id; lines that
        match nothing are skipped. Flagged lines produce an incident and keep
        the order open. Runs inside the caller's unit of work.
        """
        order = self._get(order_id)
        if not order.is_open:
            raise InvalidOrderState(order_id, order.status.value)

        updated = deepcopy(order.lines or [])
        by_product = {int(line['product_id']): line for line in updated}
        for incoming in movement_lines:
            line = by_product.get(int(incoming['product_id']))
            if line is None:
                logger.warning(
                    f"Order {order_id} has no line for product {incoming['product_id']}, skipping"
                )
                continue
            line['received'] = int(line.get('received') or 0) + int(incoming['quantity'])
            if flagged(incoming):
                line['incident'] = str(incoming['incident']).strip()

        self.order_repo.save_lines(order, updated)

        incident = None
        if any(flagged(line) for line in movement_lines):
            details = self.incidents.details_from_lines([
                {**line, 'name': line.get('name') or (order.line_for(line['product_id']) or {}).get('name')}
                for line in movement_lines
            ])
            incident = self.incidents.register(
                movement_id,
                details,
                order_id=order_id,
                general_note=note,
                effective_date=effective_date,
            )
        else:
            order = self.order_repo.refresh(order)
            if order.is_fully_received:
                self.order_repo.set_status(order, OrderStatus.COMPLETED)
                logger.info(f"Order {order_id} fully received, marked completed")

        invalidate_after(UseCase.ORDER_CHANGED, self._day_key(order))
        return order, incident

    def receive_purchase(self, order_id: int, actor_id: Optional[int], lines: List[Dict[str, Any]],
                         note: Optional[str] = None, total=None, supplier_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Receive a purchase against an order as one atomic operation.

        Records the purchase movement and its line items, increases stock,
        updates received quantities, logs an incident for flagged lines and
        completes the order when everything arrived. Any failure rolls the
        whole receipt back.
        """
        try:
            with unit_of_work(self.cache):
                order = self._get(order_id)
                if not order.is_open:
                    raise InvalidOrderState(order_id, order.status.value)

                movement = self.recorder.record_purchase(
                    actor_id,
                    supplier_id or order.supplier_id,
                    lines,
                    note=note,
                    total=total,
                    order_id=order_id,
                )
                order, incident = self.receive(
                    order_id, lines, movement.id, note=note, effective_date=movement.occurred_at
                )

                invalidate_after(UseCase.PURCHASE)

            logger.info(
                f"Received purchase {movement.id} against order {order_id}, status {order.status.value}"
            )
            result = movement.to_dict(include_lines=True)
            result['order'] = order.to_dict()
            result['incident'] = incident.to_dict() if incident else None
            return result

        except Exception as e:
            logger.error(f"Error receiving purchase for order {order_id}: {str(e)}")
            raise

    def cancel(self, order_id: int) -> Dict[str, Any]:
        """Set the order to cancelled. The previous status is not checked."""
        try:
            with unit_of_work(self.cache):
                order = self._get(order_id)
                if not order.is_open:
                    logger.warning(f"Cancelling order {order_id} which is already {order.status.value}")

                self.order_repo.set_status(order, OrderStatus.CANCELLED)
                invalidate_after(
                    UseCase.ORDER_CHANGED,
                    self._day_key(order),
                    CacheKeys.PRODUCTS_CRITICAL,
                    CacheKeys.PRODUCTS_FOR_ORDER,
                )

            logger.info(f"Cancelled order {order_id}")
            return order.to_dict()

        except Exception as e:
            logger.error(f"Error cancelling order {order_id}: {str(e)}")
            raise

    def find_open_order_for_product(self, product_id: int) -> Optional[Dict[str, Any]]:
        """First in-progress order with a line for the product, or None"""
        for order in self.order_repo.list_by_status(OrderStatus.IN_PROGRESS):
            if order.line_for(product_id) is not None:
                return order.to_dict()
        return None

    def products_in_open_orders(self) -> List[int]:
        """Distinct product ids across the lines of in-progress orders"""
        seen = []
        for order in self.order_repo.list_by_status(OrderStatus.IN_PROGRESS):
            for line in order.lines or []:
                product_id = int(line['product_id'])
                if product_id not in seen:
                    seen.append(product_id)
        return seen

    def get(self, order_id: int) -> Dict[str, Any]:
        """Order with the incidents raised while receiving it"""
        order = self._get(order_id)
        result = order.to_dict()
        result['incidents'] = self.incidents.by_order(order_id)
        return result

    def list(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(
            CacheKeys.ORDERS_ALL,
            lambda: [order.to_dict() for order in self.order_repo.list_all()],
        )

    def by_supplier(self, supplier_id: int, status: Optional[OrderStatus] = None) -> List[Dict[str, Any]]:
        return [order.to_dict() for order in self.order_repo.list_by_supplier(supplier_id, status)]

    def by_date(self, day) -> List[Dict[str, Any]]:
        """Orders created on a local calendar day"""
        day = parse_day(day)
        start, end = local_day_bounds(day)
        return self.cache.get_or_set(
            CacheKeys.orders_on(day.isoformat()),
            lambda: [order.to_dict() for order in self.order_repo.list_between(start, end)],
        )

    def summary_last_30_days(self) -> List[Dict[str, Any]]:
        """Order count per local day over the last 30 days"""
        def load():
            counts = Counter(
                local_date(order.created_at).isoformat()
                for order in self.order_repo.list_since(summary_window_start())
            )
            return [{'date': day, 'count': counts[day]} for day in sorted(counts)]

        return self.cache.get_or_set(CacheKeys.ORDERS_30D, load)

