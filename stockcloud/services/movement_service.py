"""
Movement Recorder - Business logic for sales, purchases and adjustments
"""

import logging
from collections import Counter, defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from stockcloud.database import unit_of_work
from stockcloud.errors import (
    DuplicateSequence, MovementNotFound, ProductNotFound, SupplierNotFound, ValidationFailed
)
from stockcloud.models import (
    AdjustmentKind, AdjustmentMovement, Customer, DocumentType, Movement, MovementKind,
    MovementLine, PurchaseMovement, SaleMovement
)
from stockcloud.repositories import (
    CustomerRepository, MovementRepository, ProductRepository, SupplierRepository
)
from stockcloud.services.cache_policy import UseCase, invalidate_after
from stockcloud.services.incident_service import IncidentLog, flagged
from stockcloud.services.stock_ledger import StockLedger
from stockcloud.utils.cache_utils import CacheKeys, get_cache
from stockcloud.utils.time_utils import (
    local_date, local_day_bounds, parse_day, summary_window_start, utcnow
)

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class MovementRecorder:
    """
    Records immutable movements: one specialization plus 1..n line items.

    The record_* primitives only flush and run inside whatever unit of work
    the caller opened. The register_* use cases each open their own.
    """

    def __init__(self, movement_repo=None, product_repo=None, customer_repo=None,
                 supplier_repo=None, ledger=None, incidents=None, orders=None, cache=None):
        self.movement_repo = movement_repo or MovementRepository()
        self.product_repo = product_repo or ProductRepository()
        self.customer_repo = customer_repo or CustomerRepository()
        self.supplier_repo = supplier_repo or SupplierRepository()
        self.cache = cache or get_cache()
        self.ledger = ledger or StockLedger(self.product_repo)
        self.incidents = incidents or IncidentLog(product_repo=self.product_repo, cache=self.cache)
        self._orders = orders

    @property
    def orders(self):
        if self._orders is None:
            from stockcloud.services.order_service import OrderLifecycle
            self._orders = OrderLifecycle(recorder=self, incidents=self.incidents, cache=self.cache)
        return self._orders

    # Primitives

    def record(self, actor_id: Optional[int], kind: MovementKind, occurred_at=None,
               note: Optional[str] = None) -> Movement:
        movement = Movement(
            user_id=actor_id,
            kind=kind,
            occurred_at=occurred_at or utcnow(),
            note=note,
        )
        return self.movement_repo.add(movement)

    def record_sale_details(self, movement: Movement, customer_id: int, document_type: DocumentType,
                            total) -> SaleMovement:
        """Sale specialization. The sequence is the highest issued for the document type plus one."""
        sequence = self.movement_repo.max_sequence(document_type) + 1
        details = SaleMovement(
            movement_id=movement.id,
            customer_id=customer_id,
            document_type=document_type,
            series=document_type.series,
            sequence=sequence,
            total=to_money(total),
        )
        try:
            return self.movement_repo.add_details(details)
        except IntegrityError:
            logger.warning(f"Sequence {sequence} for {document_type.value} was taken concurrently")
            raise DuplicateSequence(document_type.value)

    def record_purchase_details(self, movement: Movement, supplier_id: int, total,
                                order_id: Optional[int] = None) -> PurchaseMovement:
        details = PurchaseMovement(
            movement_id=movement.id,
            supplier_id=supplier_id,
            order_id=order_id,
            total=to_money(total),
        )
        return self.movement_repo.add_details(details)

    def record_adjustment_details(self, movement: Movement, kind: AdjustmentKind,
                                  reason: Optional[str] = None) -> AdjustmentMovement:
        details = AdjustmentMovement(
            movement_id=movement.id,
            adjustment_kind=kind,
            reason=reason,
        )
        return self.movement_repo.add_details(details)

    def record_line_item(self, movement: Movement, product_id: int, quantity: int, unit_price) -> MovementLine:
        """Line item with subtotal = quantity x unit price"""
        unit_price = to_money(unit_price)
        line = MovementLine(
            movement_id=movement.id,
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=(unit_price * quantity).quantize(CENT),
        )
        return self.movement_repo.add_line(line)

    def _priced_lines(self, lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Resolve products and fill in missing unit prices from the catalog"""
        if not lines:
            raise ValidationFailed("A movement needs at least one line item")

        priced = []
        for line in lines:
            product_id = int(line['product_id'])
            product = self.product_repo.get_by_id(product_id)
            if not product:
                raise ProductNotFound(product_id)

            unit_price = line.get('unit_price')
            priced.append({
                **line,
                'product_id': product_id,
                'name': line.get('name') or product.name,
                'quantity': int(line['quantity']),
                'unit_price': product.unit_price if unit_price is None else unit_price,
            })
        return priced

    @staticmethod
    def _lines_total(lines: List[Dict[str, Any]]) -> Decimal:
        return sum((to_money(line['unit_price']) * line['quantity'] for line in lines), Decimal('0.00'))

    def record_purchase(self, actor_id: Optional[int], supplier_id: int, lines: List[Dict[str, Any]],
                        note: Optional[str] = None, total=None, order_id: Optional[int] = None) -> Movement:
        """
        Purchase movement, its line items and the stock increase.

        Runs inside the caller's unit of work and does not touch the order.
        """
        if not self.supplier_repo.get_by_id(supplier_id):
            raise SupplierNotFound(supplier_id)

        lines = self._priced_lines(lines)
        movement = self.record(actor_id, MovementKind.PURCHASE, note=note)
        self.record_purchase_details(
            movement, supplier_id,
            self._lines_total(lines) if total is None else total,
            order_id=order_id,
        )
        for line in lines:
            self.record_line_item(movement, line['product_id'], line['quantity'], line['unit_price'])
            self.ledger.increase(line['product_id'], line['quantity'])
        return movement

    # Use cases

    def _resolve_customer(self, customer_data: Dict[str, Any], document_type: DocumentType) -> Customer:
        """
        Receipts identify the customer by national id, invoices by tax id.
        A known customer gets its e-mail and address refreshed when they changed.
        """
        if document_type is DocumentType.RECEIPT:
            identifier = customer_data.get('national_id')
            customer = self.customer_repo.find_by_national_id(identifier) if identifier else None
        else:
            identifier = customer_data.get('tax_id')
            customer = self.customer_repo.find_by_tax_id(identifier) if identifier else None

        if not identifier:
            field = 'national_id' if document_type is DocumentType.RECEIPT else 'tax_id'
            raise ValidationFailed(f"A {document_type.value} requires the customer's {field}")

        if customer:
            changed = False
            for field in ('email', 'address'):
                value = customer_data.get(field)
                if value and value != getattr(customer, field):
                    setattr(customer, field, value)
                    changed = True
            if changed:
                self.customer_repo.flush(customer)
                logger.info(f"Updated contact data of customer {customer.id}")
            return customer

        customer = Customer(
            name=customer_data.get('name'),
            business_name=customer_data.get('business_name'),
            national_id=customer_data.get('national_id'),
            tax_id=customer_data.get('tax_id'),
            address=customer_data.get('address'),
            email=customer_data.get('email'),
        )
        self.customer_repo.add(customer)
        logger.info(f"Registered customer {customer.id} ({identifier})")
        return customer

    def register_sale(self, actor_id: Optional[int], customer: Dict[str, Any], document_type: DocumentType,
                      lines: List[Dict[str, Any]], note: Optional[str] = None, total=None) -> Dict[str, Any]:
        """Record a sale and take its products out of stock"""
        try:
            with unit_of_work(self.cache):
                resolved = self._resolve_customer(customer, document_type)
                lines = self._priced_lines(lines)

                movement = self.record(actor_id, MovementKind.SALE, note=note)
                sale = self.record_sale_details(
                    movement, resolved.id, document_type,
                    self._lines_total(lines) if total is None else total,
                )
                for line in lines:
                    self.record_line_item(movement, line['product_id'], line['quantity'], line['unit_price'])
                    self.ledger.decrease(line['product_id'], line['quantity'])

                invalidate_after(UseCase.SALE, CacheKeys.SALES_30D)

            logger.info(f"Registered sale {movement.id} ({sale.document_number}) for customer {resolved.id}")
            return movement.to_dict(include_lines=True)

        except Exception as e:
            logger.error(f"Error registering sale: {str(e)}")
            raise

    def register_purchase(self, actor_id: Optional[int], supplier_id: Optional[int], lines: List[Dict[str, Any]],
                          note: Optional[str] = None, total=None, order_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Record incoming goods.

        Against an order the whole receipt is handed to the order lifecycle.
        Without one, flagged lines still produce an incident.
        """
        if order_id:
            return self.orders.receive_purchase(
                order_id, actor_id, lines, note=note, total=total, supplier_id=supplier_id
            )

        if not supplier_id:
            raise ValidationFailed("A purchase without an order needs a supplier")

        try:
            with unit_of_work(self.cache):
                movement = self.record_purchase(actor_id, supplier_id, lines, note=note, total=total)

                incident = None
                if any(flagged(line) for line in lines):
                    incident = self.incidents.register(
                        movement.id,
                        self.incidents.details_from_lines(lines),
                        general_note=note,
                        effective_date=movement.occurred_at,
                    )

                invalidate_after(UseCase.PURCHASE)

            logger.info(f"Registered purchase {movement.id} from supplier {supplier_id}")
            result = movement.to_dict(include_lines=True)
            result['incident'] = incident.to_dict() if incident else None
            return result

        except Exception as e:
            logger.error(f"Error registering purchase: {str(e)}")
            raise

    def register_adjustment(self, actor_id: Optional[int], kind: AdjustmentKind, product_id: int, quantity: int,
                            reason: Optional[str] = None, note: Optional[str] = None) -> Dict[str, Any]:
        """Shortages take stock out, overages put it back"""
        if quantity <= 0:
            raise ValidationFailed("Adjustment quantity must be positive")

        try:
            with unit_of_work(self.cache):
                product = self.product_repo.get_by_id(product_id)
                if not product:
                    raise ProductNotFound(product_id)

                movement = self.record(actor_id, MovementKind.ADJUSTMENT, note=note)
                self.record_adjustment_details(movement, kind, reason)
                self.record_line_item(movement, product.id, quantity, product.unit_price)

                if kind is AdjustmentKind.SHORTAGE:
                    self.ledger.decrease(product.id, quantity)
                    use_case = UseCase.SHORTAGE
                else:
                    self.ledger.increase(product.id, quantity)
                    use_case = UseCase.OVERAGE

                invalidate_after(
                    use_case,
                    CacheKeys.adjustments_on(kind.value, local_date(movement.occurred_at).isoformat()),
                )

            logger.info(f"Registered {kind.value} {movement.id} of {quantity} x product {product_id}")
            return movement.to_dict(include_lines=True)

        except Exception as e:
            logger.error(f"Error registering {kind.value}: {str(e)}")
            raise

    # Reads

    def list_movements(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(
            CacheKeys.MOVEMENTS_ALL,
            lambda: [movement.to_dict() for movement in self.movement_repo.list_all()],
        )

    def get_movement(self, movement_id: int) -> Dict[str, Any]:
        """Movement with its specialization, line items and incidents"""
        def load():
            movement = self.movement_repo.get_by_id(movement_id)
            if not movement:
                raise MovementNotFound(movement_id)
            result = movement.to_dict(include_lines=True)
            result['incidents'] = self.incidents.by_movement(movement_id)
            return result

        return self.cache.get_or_set(CacheKeys.movement_detail(movement_id), load)

    def adjustments_last_30_days(self, kind: AdjustmentKind) -> List[Dict[str, Any]]:
        """Adjustment count per local day over the last 30 days"""
        key = CacheKeys.SHORTAGES_30D if kind is AdjustmentKind.SHORTAGE else CacheKeys.OVERAGES_30D

        def load():
            counts = Counter(
                local_date(occurred_at).isoformat()
                for occurred_at in self.movement_repo.list_adjustment_dates_since(kind, summary_window_start())
            )
            return [{'date': day, 'count': counts[day]} for day in sorted(counts)]

        return self.cache.get_or_set(key, load)

    def adjustments_on_day(self, kind: AdjustmentKind, day) -> List[Dict[str, Any]]:
        """Adjusted products of one kind on a local calendar day"""
        day = parse_day(day)
        start, end = local_day_bounds(day)

        def load():
            rows = []
            for movement in self.movement_repo.list_adjustments_between(kind, start, end):
                for line in movement.lines:
                    rows.append({
                        'movement_id': movement.id,
                        'note': movement.note,
                        'reason': movement.adjustment.reason if movement.adjustment else None,
                        'product_id': line.product_id,
                        'product': line.product.name if line.product else None,
                        'quantity': line.quantity,
                    })
            return rows

        return self.cache.get_or_set(CacheKeys.adjustments_on(kind.value, day.isoformat()), load)

    def sales_last_30_days(self) -> List[Dict[str, Any]]:
        """Sales total per local day over the last 30 days"""
        def load():
            totals = defaultdict(Decimal)
            for occurred_at, total in self.movement_repo.list_sales_since(summary_window_start()):
                totals[local_date(occurred_at).isoformat()] += Decimal(total or 0)
            return [{'date': day, 'total': float(totals[day])} for day in sorted(totals)]

        return self.cache.get_or_set(CacheKeys.SALES_30D, load)
