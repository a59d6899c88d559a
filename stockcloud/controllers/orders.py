"""
Orders Controller - replenishment orders and their receipts
"""

from flask import g, request
from flask_restx import Resource, fields
from stockcloud.middleware.auth import require_auth
from stockcloud.services import OrderLifecycle
from stockcloud.utils.schemas import DayQuerySchema, OrderRequestSchema, ReceiptRequestSchema
import logging

logger = logging.getLogger(__name__)

order_schema = OrderRequestSchema()
receipt_schema = ReceiptRequestSchema()
day_schema = DayQuerySchema()


def get_order_models(api):
    """Define API models for order operations"""
    order_line_model = api.model('OrderLine', {
        'product_id': fields.Integer(required=True, description='Product ID'),
        'quantity': fields.Integer(required=True, description='Ordered units'),
    })

    order_model = api.model('ReplenishmentOrder', {
        'supplier_id': fields.Integer(required=True, description='Supplier ID'),
        'lines': fields.List(fields.Nested(order_line_model), required=True),
    })

    receipt_line_model = api.model('ReceiptLine', {
        'product_id': fields.Integer(required=True, description='Product ID'),
        'quantity': fields.Integer(required=True, description='Received units'),
        'unit_price': fields.Float(description='Unit price, defaults to the catalog price'),
        'incident': fields.String(description='What was wrong with this line'),
    })

    receipt_model = api.model('OrderReceipt', {
        'lines': fields.List(fields.Nested(receipt_line_model), required=True),
        'note': fields.String(description='Free-text note, also the incident description'),
        'total': fields.Float(description='Purchase total, defaults to the sum of subtotals'),
    })

    return order_model, receipt_model


def register_order_routes(api, namespace):
    """Register order-related routes"""
    order_model, receipt_model = get_order_models(api)

    @namespace.route('/')
    class OrderList(Resource):
        @api.doc('list_orders')
        @require_auth
        def get(self):
            """All orders, newest first"""
            return OrderLifecycle().list(), 200

        @api.doc('create_order')
        @api.expect(order_model)
        @require_auth
        def post(self):
            """Create a replenishment order"""
            data = order_schema.load(request.get_json(silent=True) or {})
            order = OrderLifecycle().create(data['supplier_id'], data['lines'], requester_id=g.user_id)
            return order, 201

    @namespace.route('/<int:order_id>')
    class OrderDetail(Resource):
        @api.doc('get_order')
        @require_auth
        def get(self, order_id):
            """Order with its incidents"""
            return OrderLifecycle().get(order_id), 200

    @namespace.route('/<int:order_id>/receipts')
    class OrderReceipts(Resource):
        @api.doc('receive_purchase')
        @api.expect(receipt_model)
        @require_auth
        def post(self, order_id):
            """Receive goods against the order"""
            data = receipt_schema.load(request.get_json(silent=True) or {})
            result = OrderLifecycle().receive_purchase(
                order_id, g.user_id, data['lines'], note=data.get('note'), total=data.get('total')
            )
            return result, 201

    @namespace.route('/<int:order_id>/cancel')
    class OrderCancel(Resource):
        @api.doc('cancel_order')
        @require_auth
        def post(self, order_id):
            """Cancel the order"""
            return OrderLifecycle().cancel(order_id), 200

    @namespace.route('/by-date')
    @namespace.doc(params={'date': 'Local day, YYYY-MM-DD'})
    class OrdersByDate(Resource):
        @require_auth
        def get(self):
            """Orders created on a given day"""
            query = day_schema.load(request.args.to_dict())
            return OrderLifecycle().by_date(query['date']), 200

    @namespace.route('/summary')
    class OrderSummary(Resource):
        @require_auth
        def get(self):
            """Orders per day over the summary window"""
            return OrderLifecycle().summary_last_30_days(), 200

    @namespace.route('/open-products')
    class OpenOrderProducts(Resource):
        @require_auth
        def get(self):
            """Product ids already requested in in-progress orders"""
            return {'product_ids': OrderLifecycle().products_in_open_orders()}, 200
