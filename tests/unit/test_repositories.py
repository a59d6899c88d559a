import pytest
from datetime import timedelta
from decimal import Decimal
from sqlalchemy.exc import IntegrityError

from stockcloud.errors import DuplicateRecord
from stockcloud.models import (
    AdjustmentKind, AdjustmentMovement, Category, DocumentType, Movement, MovementKind,
    MovementLine, OrderStatus, Product, RecordState, ReplenishmentOrder, SaleMovement
)
from stockcloud.repositories import (
    CategoryRepository, CustomerRepository, MovementRepository, OrderRepository, ProductRepository
)
from stockcloud.utils.time_utils import utcnow
from tests.conftest import (
    create_test_category, create_test_customer, create_test_product, create_test_supplier
)


class TestProductRepository:
    """Test ProductRepository implementations."""

    def test_add_to_stock(self, db_session):
        repo = ProductRepository()
        product = create_test_product(db_session, stock=5)

        assert repo.add_to_stock(product.id, -7) is True
        db_session.commit()

        assert repo.current_stock(product.id) == -2

    def test_add_to_stock_unknown_product(self, db_session):
        assert ProductRepository().add_to_stock(9999, 1) is False

    def test_create_duplicate_name(self, db_session):
        repo = ProductRepository()
        create_test_product(db_session, name='Leche Gloria')

        with pytest.raises(DuplicateRecord):
            repo.create(Product(name='Leche Gloria', unit_price=Decimal('4.00')))
        db_session.rollback()

    def test_list_below_minimum_skips_inactive(self, db_session):
        repo = ProductRepository()
        low = create_test_product(db_session, stock=0, minimum_quantity=3)
        create_test_product(db_session, stock=0, minimum_quantity=3, state=RecordState.INACTIVE)

        assert [p.id for p in repo.list_below_minimum()] == [low.id]

    def test_count_and_deactivate_by_category(self, db_session):
        repo = ProductRepository()
        category = create_test_category(db_session)
        create_test_product(db_session, category_id=category.id, stock=2)
        create_test_product(db_session, category_id=category.id, stock=0)

        assert repo.count_active_in_stock(category.id) == 1
        assert repo.deactivate_by_category(category.id) == 2
        assert repo.count_active_in_stock(category.id) == 0


class TestMovementRepository:
    """Test MovementRepository implementations."""

    def _movement(self, db_session, kind, occurred_at=None):
        movement = Movement(kind=kind, occurred_at=occurred_at or utcnow())
        db_session.add(movement)
        db_session.flush()
        return movement

    def test_max_sequence(self, db_session):
        repo = MovementRepository()
        customer = create_test_customer(db_session)

        assert repo.max_sequence(DocumentType.RECEIPT) == 0

        for sequence in (1, 2):
            movement = self._movement(db_session, MovementKind.SALE)
            repo.add_details(SaleMovement(
                movement_id=movement.id, customer_id=customer.id, document_type=DocumentType.RECEIPT,
                series='B001', sequence=sequence, total=Decimal('1.00'),
            ))
        db_session.commit()

        assert repo.max_sequence(DocumentType.RECEIPT) == 2
        assert repo.max_sequence(DocumentType.INVOICE) == 0

    def test_duplicate_sequence_is_rejected(self, db_session):
        repo = MovementRepository()
        customer = create_test_customer(db_session)

        first = self._movement(db_session, MovementKind.SALE)
        repo.add_details(SaleMovement(
            movement_id=first.id, customer_id=customer.id, document_type=DocumentType.INVOICE,
            series='F001', sequence=1, total=Decimal('1.00'),
        ))
        second = self._movement(db_session, MovementKind.SALE)

        with pytest.raises(IntegrityError):
            repo.add_details(SaleMovement(
                movement_id=second.id, customer_id=customer.id, document_type=DocumentType.INVOICE,
                series='F001', sequence=1, total=Decimal('1.00'),
            ))
        db_session.rollback()

    def test_list_adjustments_between(self, db_session):
        repo = MovementRepository()
        product = create_test_product(db_session)
        now = utcnow()

        inside = self._movement(db_session, MovementKind.ADJUSTMENT, now)
        repo.add_details(AdjustmentMovement(movement_id=inside.id, adjustment_kind=AdjustmentKind.SHORTAGE))
        repo.add_line(MovementLine(movement_id=inside.id, product_id=product.id, quantity=1,
                                   unit_price=Decimal('1.00'), subtotal=Decimal('1.00')))
        other_kind = self._movement(db_session, MovementKind.ADJUSTMENT, now)
        repo.add_details(AdjustmentMovement(movement_id=other_kind.id, adjustment_kind=AdjustmentKind.OVERAGE))
        too_old = self._movement(db_session, MovementKind.ADJUSTMENT, now - timedelta(days=3))
        repo.add_details(AdjustmentMovement(movement_id=too_old.id, adjustment_kind=AdjustmentKind.SHORTAGE))
        db_session.commit()

        found = repo.list_adjustments_between(
            AdjustmentKind.SHORTAGE, now - timedelta(hours=1), now + timedelta(hours=1)
        )

        assert [m.id for m in found] == [inside.id]
        assert found[0].lines[0].product_id == product.id


class TestOrderRepository:
    """Test OrderRepository implementations."""

    def test_save_lines_copies_the_list(self, db_session):
        repo = OrderRepository()
        supplier = create_test_supplier(db_session)
        order = repo.create(ReplenishmentOrder(
            supplier_id=supplier.id, created_at=utcnow(), status=OrderStatus.IN_PROGRESS, lines=[]
        ))
        lines = [{'product_id': 1, 'name': 'A', 'quantity': 2, 'received': 0, 'incident': None}]

        repo.save_lines(order, lines)
        lines[0]['received'] = 99
        db_session.commit()

        assert repo.get_by_id(order.id).lines[0]['received'] == 0

    def test_list_by_supplier_and_status(self, db_session):
        repo = OrderRepository()
        supplier = create_test_supplier(db_session)
        for status in (OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED):
            repo.create(ReplenishmentOrder(supplier_id=supplier.id, created_at=utcnow(), status=status, lines=[]))
        db_session.commit()

        assert len(repo.list_by_supplier(supplier.id)) == 2
        assert len(repo.list_by_supplier(supplier.id, OrderStatus.CANCELLED)) == 1
        assert len(repo.list_by_status(OrderStatus.IN_PROGRESS)) == 1


class TestCatalogRepositories:
    """Test the small catalog repositories."""

    def test_duplicate_category(self, db_session):
        repo = CategoryRepository()
        create_test_category(db_session, name='Bebidas')

        with pytest.raises(DuplicateRecord):
            repo.add(Category(name='Bebidas'))
        db_session.rollback()

    def test_find_customer(self, db_session):
        repo = CustomerRepository()
        customer = create_test_customer(db_session, national_id='87654321', tax_id='10876543210')

        assert repo.find_by_national_id('87654321').id == customer.id
        assert repo.find_by_tax_id('10876543210').id == customer.id
        assert repo.find_by_national_id('00000000') is None
