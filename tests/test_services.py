import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from stockcloud.errors import (
    AuthenticationFailed, CategoryInUse, DuplicateSequence, InvalidOrderState, ProductNotFound,
    SupplierNotFound, ValidationFailed
)
from stockcloud.models import (
    AdjustmentKind, DocumentType, Incident, Movement, Product, RecordState, User, UserRole, db
)
from stockcloud.repositories import IncidentRepository, MovementRepository
from stockcloud.services import (
    CategoryService, CustomerService, IncidentLog, MovementRecorder, OrderLifecycle,
    ProductService, UserService
)
from stockcloud.services.incident_service import DEFAULT_DESCRIPTION
from stockcloud.utils.cache_utils import CacheKeys
from stockcloud.utils.time_utils import local_date, utcnow
from tests.conftest import (
    create_test_category, create_test_customer, create_test_product, create_test_supplier,
    create_test_user
)


def stock_of(product_id):
    return db.session.get(Product, product_id).stock


class TestMovementRecorder:
    """Test MovementRecorder business logic."""

    def test_sale_decreases_stock(self, db_session):
        """Sale of 2 with stock 5 leaves 3."""
        product = create_test_product(db_session, stock=5, unit_price=Decimal('3.50'))

        sale = MovementRecorder().register_sale(
            None, {'name': 'Rosa Quispe', 'national_id': '45678912'}, DocumentType.RECEIPT,
            [{'product_id': product.id, 'quantity': 2}],
        )

        assert stock_of(product.id) == 3
        assert sale['kind'] == 'sale'
        assert sale['sale']['total'] == 7.0
        assert sale['sale']['series'] == 'B001'
        assert sale['lines'][0]['subtotal'] == 7.0

    def test_sale_evicts_dependent_keys(self, db_session, cache):
        """Cached product and movement lists do not survive a sale."""
        product = create_test_product(db_session, stock=5)
        cache.set(CacheKeys.PRODUCTS_ALL, [{'id': product.id, 'stock': 5}])
        cache.set(CacheKeys.MOVEMENTS_ALL, [{'id': 0}])
        cache.set(CacheKeys.ORDERS_ALL, [{'id': 0}])

        MovementRecorder().register_sale(
            None, {'national_id': '45678912'}, DocumentType.RECEIPT,
            [{'product_id': product.id, 'quantity': 2}],
        )

        assert cache.get(CacheKeys.PRODUCTS_ALL) is None
        assert cache.get(CacheKeys.MOVEMENTS_ALL) is None
        # Not part of the sale policy
        assert cache.get(CacheKeys.ORDERS_ALL) == [{'id': 0}]
        assert ProductService().list_products()[0]['stock'] == 3

    def test_sale_sequence_per_document_type(self, db_session):
        product = create_test_product(db_session, stock=50)
        recorder = MovementRecorder()
        line = [{'product_id': product.id, 'quantity': 1}]

        first = recorder.register_sale(None, {'national_id': '45678912'}, DocumentType.RECEIPT, line)
        second = recorder.register_sale(None, {'national_id': '45678912'}, DocumentType.RECEIPT, line)
        invoice = recorder.register_sale(
            None, {'business_name': 'Bodega Lucia EIRL', 'tax_id': '20123456789'}, DocumentType.INVOICE, line
        )

        assert first['sale']['sequence'] == 1
        assert second['sale']['sequence'] == 2
        assert invoice['sale']['sequence'] == 1
        assert invoice['sale']['document_number'] == 'F001-00000001'

    def test_sale_updates_known_customer(self, db_session):
        customer = create_test_customer(db_session, national_id='11112222', email='old@mail.pe')
        product = create_test_product(db_session)

        sale = MovementRecorder().register_sale(
            None, {'national_id': '11112222', 'email': 'new@mail.pe'}, DocumentType.RECEIPT,
            [{'product_id': product.id, 'quantity': 1}],
        )

        assert sale['sale']['customer_id'] == customer.id
        assert CustomerService().find(national_id='11112222')['email'] == 'new@mail.pe'

    def test_invoice_requires_tax_id(self, db_session):
        product = create_test_product(db_session)

        with pytest.raises(ValidationFailed):
            MovementRecorder().register_sale(
                None, {'national_id': '45678912'}, DocumentType.INVOICE,
                [{'product_id': product.id, 'quantity': 1}],
            )

    def test_sale_may_leave_negative_stock(self, db_session):
        product = create_test_product(db_session, stock=1)

        MovementRecorder().register_sale(
            None, {'national_id': '45678912'}, DocumentType.RECEIPT,
            [{'product_id': product.id, 'quantity': 3}],
        )

        assert stock_of(product.id) == -2

    def test_failed_sale_rolls_back(self, db_session):
        """An unknown product fails the whole sale, customer included."""
        product = create_test_product(db_session, stock=5)

        with pytest.raises(ProductNotFound):
            MovementRecorder().register_sale(
                None, {'national_id': '45678912'}, DocumentType.RECEIPT,
                [{'product_id': product.id, 'quantity': 2}, {'product_id': 9999, 'quantity': 1}],
            )

        assert stock_of(product.id) == 5
        assert Movement.query.count() == 0
        assert CustomerService().find(national_id='45678912') is None

    def test_taken_sequence_is_a_conflict(self, db_session):
        """A sequence number claimed by another sale fails the second sale with 409."""
        product = create_test_product(db_session, stock=10)
        recorder = MovementRecorder()
        line = [{'product_id': product.id, 'quantity': 1}]
        recorder.register_sale(None, {'national_id': '45678912'}, DocumentType.RECEIPT, line)

        with patch.object(MovementRepository, 'max_sequence', return_value=0):
            with pytest.raises(DuplicateSequence) as excinfo:
                recorder.register_sale(None, {'national_id': '45678912'}, DocumentType.RECEIPT, line)

        assert excinfo.value.status_code == 409
        assert excinfo.value.details == {'document_type': 'receipt'}
        assert stock_of(product.id) == 9
        assert Movement.query.count() == 1

    def test_line_subtotals(self, db_session):
        """Line subtotals equal quantity x unit price."""
        product = create_test_product(db_session, stock=20)

        sale = MovementRecorder().register_sale(
            None, {'national_id': '45678912'}, DocumentType.RECEIPT,
            [{'product_id': product.id, 'quantity': 3, 'unit_price': Decimal('2.35')}],
            total=Decimal('7.00'),
        )

        line = sale['lines'][0]
        assert line['subtotal'] == pytest.approx(line['quantity'] * line['unit_price'])
        # The movement total is stored as given
        assert sale['sale']['total'] == 7.0

    def test_purchase_without_order(self, db_session):
        supplier = create_test_supplier(db_session)
        product = create_test_product(db_session, stock=2)

        purchase = MovementRecorder().register_purchase(
            None, supplier.id, [{'product_id': product.id, 'quantity': 8, 'unit_price': Decimal('2.00')}]
        )

        assert stock_of(product.id) == 10
        assert purchase['purchase']['total'] == 16.0
        assert purchase['purchase']['order_id'] is None
        assert purchase['incident'] is None

    def test_purchase_without_order_logs_incident(self, db_session):
        supplier = create_test_supplier(db_session)
        product = create_test_product(db_session, name='Aceite Primor 1L', stock=0)

        purchase = MovementRecorder().register_purchase(
            None, supplier.id, [{'product_id': product.id, 'quantity': 4, 'incident': 'leaking'}]
        )

        incident = purchase['incident']
        assert incident['order_id'] is None
        assert incident['movement_id'] == purchase['id']
        assert incident['description'] == DEFAULT_DESCRIPTION
        assert incident['details'] == [
            {'product_id': product.id, 'name': 'Aceite Primor 1L', 'quantity': 4, 'incident': 'leaking'}
        ]

    def test_purchase_unknown_supplier(self, db_session):
        product = create_test_product(db_session)

        with pytest.raises(SupplierNotFound):
            MovementRecorder().register_purchase(None, 9999, [{'product_id': product.id, 'quantity': 1}])

    def test_shortage_and_overage(self, db_session):
        product = create_test_product(db_session, stock=10, unit_price=Decimal('1.20'))
        recorder = MovementRecorder()

        shortage = recorder.register_adjustment(None, AdjustmentKind.SHORTAGE, product.id, 3, reason='Expired')
        recorder.register_adjustment(None, AdjustmentKind.OVERAGE, product.id, 1)

        assert stock_of(product.id) == 8
        assert shortage['adjustment']['adjustment_kind'] == 'shortage'
        assert shortage['lines'][0]['unit_price'] == 1.2

        today = local_date(utcnow())
        rows = recorder.adjustments_on_day(AdjustmentKind.SHORTAGE, today)
        assert [(row['product_id'], row['quantity'], row['reason']) for row in rows] == [
            (product.id, 3, 'Expired')
        ]
        summary = recorder.adjustments_last_30_days(AdjustmentKind.OVERAGE)
        assert summary == [{'date': today.isoformat(), 'count': 1}]

    def test_adjustment_quantity_must_be_positive(self, db_session):
        product = create_test_product(db_session)

        with pytest.raises(ValidationFailed):
            MovementRecorder().register_adjustment(None, AdjustmentKind.SHORTAGE, product.id, 0)

    def test_sales_summary(self, db_session):
        product = create_test_product(db_session, stock=10, unit_price=Decimal('2.50'))
        recorder = MovementRecorder()
        for _ in range(2):
            recorder.register_sale(
                None, {'national_id': '45678912'}, DocumentType.RECEIPT,
                [{'product_id': product.id, 'quantity': 2}],
            )

        summary = recorder.sales_last_30_days()

        assert summary == [{'date': local_date(utcnow()).isoformat(), 'total': 10.0}]


class TestOrderLifecycle:
    """Test the replenishment order workflow."""

    def _order(self, db_session, quantity=10, stock=0):
        supplier = create_test_supplier(db_session)
        product = create_test_product(db_session, name='Azucar Rubia 1kg', stock=stock)
        order = OrderLifecycle().create(supplier.id, [{'product_id': product.id, 'quantity': quantity}])
        return order, product

    def test_create_order(self, db_session):
        order, product = self._order(db_session)

        assert order['status'] == 'in_progress'
        assert order['lines'] == [
            {'product_id': product.id, 'name': 'Azucar Rubia 1kg', 'quantity': 10, 'received': 0, 'incident': None}
        ]

    def test_full_receipt_completes_order(self, db_session):
        """Receive 10 of 10 -> completed."""
        order, product = self._order(db_session)

        result = MovementRecorder().register_purchase(
            None, None, [{'product_id': product.id, 'quantity': 10}], order_id=order['id']
        )

        assert result['order']['status'] == 'completed'
        assert result['order']['lines'][0]['received'] == 10
        assert result['incident'] is None
        assert result['purchase']['order_id'] == order['id']
        assert stock_of(product.id) == 10

    def test_receipt_with_incident_keeps_order_open(self, db_session):
        """Receive 6 flagged as damaged -> incident, order stays in progress."""
        order, product = self._order(db_session)

        result = OrderLifecycle().receive_purchase(
            order['id'], None, [{'product_id': product.id, 'quantity': 6, 'incident': 'damaged'}]
        )

        assert result['order']['status'] == 'in_progress'
        assert result['order']['lines'][0]['received'] == 6
        assert result['order']['lines'][0]['incident'] == 'damaged'
        assert result['incident']['order_id'] == order['id']
        assert result['incident']['movement_id'] == result['id']
        assert result['incident']['details'] == [
            {'product_id': product.id, 'name': 'Azucar Rubia 1kg', 'quantity': 6, 'incident': 'damaged'}
        ]
        assert stock_of(product.id) == 6

    def test_receipt_rolls_back_when_incident_fails(self, db_session):
        """A failure after stock and order lines were written undoes the whole receipt."""
        order, product = self._order(db_session)

        with patch.object(IncidentRepository, 'create', side_effect=RuntimeError('disk full')):
            with pytest.raises(RuntimeError):
                OrderLifecycle().receive_purchase(
                    order['id'], None, [{'product_id': product.id, 'quantity': 6, 'incident': 'damaged'}]
                )

        assert stock_of(product.id) == 0
        assert Movement.query.count() == 0
        assert Incident.query.count() == 0
        stored = OrderLifecycle().get(order['id'])
        assert stored['status'] == 'in_progress'
        assert stored['lines'][0]['received'] == 0
        assert stored['lines'][0]['incident'] is None

    def test_flagged_full_receipt_does_not_complete(self, db_session):
        order, product = self._order(db_session)

        result = OrderLifecycle().receive_purchase(
            order['id'], None, [{'product_id': product.id, 'quantity': 10, 'incident': 'wrong brand'}]
        )

        assert result['order']['status'] == 'in_progress'
        assert result['order']['is_fully_received'] is True

    def test_partial_receipts_complete_once(self, db_session):
        order, product = self._order(db_session)
        lifecycle = OrderLifecycle()

        first = lifecycle.receive_purchase(order['id'], None, [{'product_id': product.id, 'quantity': 6}])
        second = lifecycle.receive_purchase(order['id'], None, [{'product_id': product.id, 'quantity': 4}])

        assert first['order']['status'] == 'in_progress'
        assert second['order']['status'] == 'completed'
        with pytest.raises(InvalidOrderState):
            lifecycle.receive_purchase(order['id'], None, [{'product_id': product.id, 'quantity': 1}])
        assert stock_of(product.id) == 10

    def test_unmatched_lines_are_skipped(self, db_session):
        order, product = self._order(db_session, quantity=2)
        other = create_test_product(db_session, stock=0)

        result = OrderLifecycle().receive_purchase(order['id'], None, [
            {'product_id': product.id, 'quantity': 2},
            {'product_id': other.id, 'quantity': 5},
        ])

        assert [line['product_id'] for line in result['order']['lines']] == [product.id]
        assert result['order']['status'] == 'completed'
        # The unmatched product is still purchased
        assert stock_of(other.id) == 5

    def test_receipt_on_cancelled_order_changes_nothing(self, db_session):
        order, product = self._order(db_session)
        lifecycle = OrderLifecycle()
        lifecycle.cancel(order['id'])

        with pytest.raises(InvalidOrderState):
            lifecycle.receive_purchase(order['id'], None, [{'product_id': product.id, 'quantity': 10}])

        assert stock_of(product.id) == 0
        assert Movement.query.count() == 0

    def test_cancel_completed_order(self, db_session):
        order, product = self._order(db_session, quantity=1)
        lifecycle = OrderLifecycle()
        lifecycle.receive_purchase(order['id'], None, [{'product_id': product.id, 'quantity': 1}])

        cancelled = lifecycle.cancel(order['id'])

        assert cancelled['status'] == 'cancelled'

    def test_find_open_order_for_product(self, db_session):
        order, product = self._order(db_session)
        lifecycle = OrderLifecycle()

        assert lifecycle.find_open_order_for_product(product.id)['id'] == order['id']
        assert lifecycle.products_in_open_orders() == [product.id]

        lifecycle.cancel(order['id'])
        assert lifecycle.find_open_order_for_product(product.id) is None

    def test_get_includes_incidents(self, db_session):
        order, product = self._order(db_session)
        lifecycle = OrderLifecycle()
        lifecycle.receive_purchase(
            order['id'], None, [{'product_id': product.id, 'quantity': 3, 'incident': 'wet'}], note='Rainy day'
        )

        detail = lifecycle.get(order['id'])

        assert len(detail['incidents']) == 1
        assert detail['incidents'][0]['description'] == 'Rainy day'

    def test_by_date_and_summary(self, db_session):
        order, _ = self._order(db_session)
        today = local_date(utcnow())
        lifecycle = OrderLifecycle()

        assert [o['id'] for o in lifecycle.by_date(today)] == [order['id']]
        assert lifecycle.summary_last_30_days() == [{'date': today.isoformat(), 'count': 1}]

    def test_create_order_requires_lines(self, db_session):
        supplier = create_test_supplier(db_session)

        with pytest.raises(ValidationFailed):
            OrderLifecycle().create(supplier.id, [])


class TestIncidentLog:
    """Test IncidentLog queries."""

    def test_by_date_and_summary(self, db_session):
        supplier = create_test_supplier(db_session)
        product = create_test_product(db_session)
        purchase = MovementRecorder().register_purchase(
            None, supplier.id, [{'product_id': product.id, 'quantity': 1, 'incident': 'crushed'}]
        )
        today = local_date(utcnow())
        log = IncidentLog()

        assert [i['id'] for i in log.by_date(today)] == [purchase['incident']['id']]
        assert [i['id'] for i in log.by_movement(purchase['id'])] == [purchase['incident']['id']]
        assert log.summary_last_30_days() == [{'date': today.isoformat(), 'count': 1}]
        assert log.get(purchase['incident']['id'])['details'][0]['incident'] == 'crushed'

    def test_blank_incident_notes_are_ignored(self, db_session):
        log = IncidentLog()

        details = log.details_from_lines([
            {'product_id': 1, 'name': 'A', 'quantity': 2, 'incident': '   '},
            {'product_id': 2, 'name': 'B', 'quantity': 3, 'incident': None},
        ])

        assert details == []


class TestCatalogServices:
    """Test product and category rules."""

    def test_critical_products_exclude_open_orders(self, db_session):
        supplier = create_test_supplier(db_session)
        low = create_test_product(db_session, stock=1, minimum_quantity=5)
        ordered = create_test_product(db_session, stock=0, minimum_quantity=5)
        create_test_product(db_session, stock=9, minimum_quantity=5)
        OrderLifecycle().create(supplier.id, [{'product_id': ordered.id, 'quantity': 10}])

        critical = ProductService().critical_products()

        assert [p['id'] for p in critical] == [low.id]

    def test_deactivate_category_in_use(self, db_session):
        category = create_test_category(db_session)
        create_test_product(db_session, category_id=category.id, stock=3)

        with pytest.raises(CategoryInUse):
            CategoryService().change_state(category.id, RecordState.INACTIVE)

    def test_deactivate_category_deactivates_products(self, db_session):
        category = create_test_category(db_session)
        product = create_test_product(db_session, category_id=category.id, stock=0)

        result = CategoryService().change_state(category.id, RecordState.INACTIVE)

        assert result['state'] == 'inactive'
        assert db.session.get(Product, product.id).state == RecordState.INACTIVE

    def test_ranking(self, db_session):
        best = create_test_product(db_session, stock=50, unit_price=Decimal('1.00'))
        other = create_test_product(db_session, stock=50, unit_price=Decimal('10.00'))
        recorder = MovementRecorder()
        recorder.register_sale(None, {'national_id': '45678912'}, DocumentType.RECEIPT,
                               [{'product_id': best.id, 'quantity': 5}, {'product_id': other.id, 'quantity': 1}])

        by_quantity = ProductService().ranking(by='quantity')
        by_revenue = ProductService().ranking(by='revenue')

        assert by_quantity[0]['product_id'] == best.id
        assert by_revenue[0]['product_id'] == other.id

    def test_product_edit_records_changed_fields(self, db_session):
        owner = create_test_user(db_session, username='owner', email='owner@stockcloud.pe', role=UserRole.ADMIN)
        product = create_test_product(db_session, name='Arroz Costeno', stock=5, unit_price=Decimal('3.50'))
        service = ProductService()

        service.update_product(product.id, actor_id=owner.id, name='Arroz Costeno 5kg',
                               unit_price=Decimal('3.5'), stock=8)

        trail = service.audit_trail(product_id=product.id)
        assert len(trail) == 1
        assert trail[0]['action'] == 'update'
        assert trail[0]['username'] == 'owner'
        # Same price written as 3.5 is not a change
        assert trail[0]['changed_fields'] == {
            'name': {'before': 'Arroz Costeno', 'after': 'Arroz Costeno 5kg'},
            'stock': {'before': 5, 'after': 8},
        }
        assert service.audit_trail(user_id=owner.id)[0]['id'] == trail[0]['id']

    def test_state_change_is_audited(self, db_session):
        product = create_test_product(db_session, minimum_quantity=2)
        service = ProductService()

        service.set_product_state(product.id, RecordState.INACTIVE)
        service.update_product(product.id, minimum_quantity=2)

        trail = service.audit_trail()
        assert [entry['action'] for entry in trail] == ['deactivate']
        assert trail[0]['changed_fields'] == {'state': {'before': 'active', 'after': 'inactive'}}
        assert trail[0]['user_id'] is None

    def test_failed_edit_leaves_no_audit(self, db_session):
        product = create_test_product(db_session)

        with pytest.raises(SupplierNotFound):
            ProductService().update_product(product.id, stock=1, supplier_id=9999)

        assert ProductService().audit_trail(product_id=product.id) == []
        assert stock_of(product.id) == 5


class TestUserService:
    """Test UserService accounts, login and password resets."""

    def test_authenticate(self, db_session):
        service = UserService()
        service.create_user('admin', 'admin@stockcloud.pe', 'long-password', role=UserRole.ADMIN)

        user = service.authenticate('admin', 'long-password')

        assert user['role'] == 'admin'
        with pytest.raises(AuthenticationFailed):
            service.authenticate('admin', 'nope')

    def test_inactive_user_cannot_log_in(self, db_session):
        service = UserService()
        user = service.create_user('cashier', 'cashier@stockcloud.pe', 'long-password')
        service.set_active(user['id'], False)

        with pytest.raises(AuthenticationFailed):
            service.authenticate('cashier', 'long-password')

    def test_password_reset(self, db_session):
        service = UserService()
        user = service.create_user('cashier', 'cashier@stockcloud.pe', 'long-password')

        issued = service.request_password_reset('cashier@stockcloud.pe')

        assert issued['user_id'] == user['id']
        assert len(issued['token']) == 64
        assert service.verify_reset_token(issued['token'])['username'] == 'cashier'

        service.reset_password(issued['token'], 'brand-new-password')

        assert service.authenticate('cashier', 'brand-new-password')['id'] == user['id']
        # Tokens are single use
        with pytest.raises(ValidationFailed):
            service.reset_password(issued['token'], 'another-password')

    def test_password_reset_unknown_email(self, db_session):
        assert UserService().request_password_reset('nobody@stockcloud.pe') is None

    def test_expired_reset_token(self, db_session):
        service = UserService()
        user = service.create_user('cashier', 'cashier@stockcloud.pe', 'long-password')
        issued = service.issue_reset_token(user['id'])

        stored = db.session.get(User, user['id'])
        stored.reset_token_expires = utcnow() - timedelta(minutes=1)
        db.session.commit()

        with pytest.raises(ValidationFailed):
            service.verify_reset_token(issued['token'])
        assert service.authenticate('cashier', 'long-password')['id'] == user['id']
