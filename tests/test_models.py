import pytest
from datetime import timedelta
from decimal import Decimal

from stockcloud.models import (
    DocumentType, Incident, Movement, MovementKind, MovementLine, OrderStatus, RecordState,
    ReplenishmentOrder, SaleMovement, UserRole
)
from stockcloud.utils.time_utils import utcnow
from tests.conftest import (
    create_test_customer, create_test_product, create_test_supplier, create_test_user
)


class TestProduct:
    """Test Product model."""

    def test_create_product(self, db_session):
        """Test creating a product."""
        product = create_test_product(db_session, name='Arroz Costeño 5kg', stock=12)

        assert product.id is not None
        assert product.name == 'Arroz Costeño 5kg'
        assert product.stock == 12
        assert product.state == RecordState.ACTIVE
        assert product.created_at is not None
        assert product.updated_at is not None

    def test_is_below_minimum_property(self, db_session):
        """Test is_below_minimum computed property."""
        low = create_test_product(db_session, stock=1, minimum_quantity=5)
        assert low.is_below_minimum is True

        normal = create_test_product(db_session, stock=5, minimum_quantity=5)
        assert normal.is_below_minimum is False

    def test_to_dict_method(self, db_session):
        """Test to_dict serialization method."""
        supplier = create_test_supplier(db_session)
        product = create_test_product(db_session, supplier_id=supplier.id, unit_price=Decimal('4.20'))

        data = product.to_dict()

        assert data['id'] == product.id
        assert data['unit_price'] == 4.2
        assert data['supplier_id'] == supplier.id
        assert data['supplier'] == supplier.business_name
        assert data['category'] is None
        assert data['state'] == 'active'


class TestMovement:
    """Test Movement models."""

    def test_sale_document_number(self, db_session):
        """Series and zero-padded sequence form the document number."""
        customer = create_test_customer(db_session)
        product = create_test_product(db_session)

        movement = Movement(kind=MovementKind.SALE, occurred_at=utcnow())
        db_session.add(movement)
        db_session.flush()
        db_session.add(SaleMovement(
            movement_id=movement.id,
            customer_id=customer.id,
            document_type=DocumentType.RECEIPT,
            series=DocumentType.RECEIPT.series,
            sequence=42,
            total=Decimal('7.00'),
        ))
        db_session.add(MovementLine(
            movement_id=movement.id, product_id=product.id, quantity=2,
            unit_price=Decimal('3.50'), subtotal=Decimal('7.00'),
        ))
        db_session.commit()

        data = movement.to_dict(include_lines=True)

        assert data['kind'] == 'sale'
        assert data['sale']['document_number'] == 'B001-00000042'
        assert data['sale']['customer']['national_id'] == customer.national_id
        assert len(data['lines']) == 1
        assert movement.lines_total == Decimal('7.00')
        assert 'purchase' not in data

    def test_document_series(self):
        assert DocumentType.RECEIPT.series == 'B001'
        assert DocumentType.INVOICE.series == 'F001'


class TestReplenishmentOrder:
    """Test ReplenishmentOrder model."""

    def _order(self, db_session, lines, status=OrderStatus.IN_PROGRESS):
        supplier = create_test_supplier(db_session)
        order = ReplenishmentOrder(
            supplier_id=supplier.id, created_at=utcnow(), status=status, lines=lines
        )
        db_session.add(order)
        db_session.commit()
        return order

    def test_is_fully_received(self, db_session):
        order = self._order(db_session, [
            {'product_id': 1, 'name': 'A', 'quantity': 10, 'received': 10, 'incident': None},
            {'product_id': 2, 'name': 'B', 'quantity': 4, 'received': 3, 'incident': None},
        ])
        assert order.is_fully_received is False

        order.lines = [dict(line, received=line['quantity']) for line in order.lines]
        db_session.commit()
        assert order.is_fully_received is True

    def test_line_for_compares_numeric_ids(self, db_session):
        order = self._order(db_session, [
            {'product_id': '7', 'name': 'A', 'quantity': 1, 'received': 0, 'incident': None},
        ])

        assert order.line_for(7)['name'] == 'A'
        assert order.line_for('7')['name'] == 'A'
        assert order.line_for(8) is None

    def test_is_open(self, db_session):
        assert self._order(db_session, []).is_open is True
        assert self._order(db_session, [], status=OrderStatus.CANCELLED).is_open is False

    def test_incident_to_dict_reports_order_status(self, db_session):
        order = self._order(db_session, [])
        movement = Movement(kind=MovementKind.PURCHASE, occurred_at=utcnow())
        db_session.add(movement)
        db_session.flush()
        incident = Incident(
            movement_id=movement.id, order_id=order.id, description='Broken boxes',
            details=[{'product_id': 1, 'name': 'A', 'quantity': 2, 'incident': 'broken'}],
            effective_date=utcnow(),
        )
        db_session.add(incident)
        db_session.commit()

        data = incident.to_dict()

        assert data['order_status'] == 'in_progress'
        assert data['details'][0]['incident'] == 'broken'


class TestUser:
    """Test User model."""

    def test_password_is_hashed(self, db_session):
        user = create_test_user(db_session, password='s3cret-pass')

        assert user.password_hash != 's3cret-pass'
        assert user.check_password('s3cret-pass') is True
        assert user.check_password('wrong') is False

    def test_admin_role(self, db_session):
        user = create_test_user(db_session, role=UserRole.ADMIN)

        assert user.is_admin is True
        assert 'password_hash' not in user.to_dict()

    def test_reset_token_validity(self, db_session):
        user = create_test_user(db_session)
        now = utcnow()

        assert user.reset_token_valid(now) is False

        user.reset_token = 'ab' * 32
        user.reset_token_expires = now + timedelta(hours=1)
        assert user.reset_token_valid(now) is True
        assert user.reset_token_valid(now + timedelta(hours=2)) is False
        assert 'reset_token' not in user.to_dict()


@pytest.mark.parametrize('kind', list(MovementKind))
def test_movement_kind_values_are_lowercase(kind):
    assert kind.value == kind.name.lower()
