"""
Movements Controller - sales, purchases, adjustments, summaries and reports
"""

from io import BytesIO

from flask import g, request, send_file
from flask_restx import Resource, fields
from stockcloud.errors import ValidationFailed
from stockcloud.middleware.auth import require_admin, require_auth
from stockcloud.models import AdjustmentKind
from stockcloud.services import MovementRecorder, ReportService
from stockcloud.utils.schemas import (
    AdjustmentRequestSchema, DayQuerySchema, PurchaseRequestSchema, ReportQuerySchema, SaleRequestSchema
)
import logging

logger = logging.getLogger(__name__)

sale_schema = SaleRequestSchema()
purchase_schema = PurchaseRequestSchema()
adjustment_schema = AdjustmentRequestSchema()
day_schema = DayQuerySchema()
report_schema = ReportQuerySchema()

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def get_movement_models(api):
    """Define API models for movement operations"""
    line_model = api.model('MovementLine', {
        'product_id': fields.Integer(required=True, description='Product ID'),
        'quantity': fields.Integer(required=True, description='Units moved'),
        'unit_price': fields.Float(description='Unit price, defaults to the catalog price'),
        'incident': fields.String(description='Incident note for a received line'),
    })

    customer_model = api.model('SaleCustomer', {
        'name': fields.String(description='Customer name'),
        'business_name': fields.String(description='Business name'),
        'national_id': fields.String(description='DNI, required for receipts'),
        'tax_id': fields.String(description='RUC, required for invoices'),
        'address': fields.String(description='Address'),
        'email': fields.String(description='E-mail'),
    })

    sale_model = api.model('Sale', {
        'customer': fields.Nested(customer_model, required=True),
        'document_type': fields.String(required=True, enum=['receipt', 'invoice']),
        'lines': fields.List(fields.Nested(line_model), required=True),
        'note': fields.String(description='Free-text note'),
        'total': fields.Float(description='Sale total, defaults to the sum of subtotals'),
    })

    purchase_model = api.model('Purchase', {
        'supplier_id': fields.Integer(description='Supplier ID'),
        'order_id': fields.Integer(description='Replenishment order being received'),
        'lines': fields.List(fields.Nested(line_model), required=True),
        'note': fields.String(description='Free-text note, also the incident description'),
        'total': fields.Float(description='Purchase total, defaults to the sum of subtotals'),
    })

    adjustment_model = api.model('Adjustment', {
        'kind': fields.String(required=True, enum=['shortage', 'overage']),
        'product_id': fields.Integer(required=True),
        'quantity': fields.Integer(required=True),
        'reason': fields.String(description='Reason of the adjustment'),
        'note': fields.String(description='Free-text note'),
    })

    return line_model, sale_model, purchase_model, adjustment_model


def register_movement_routes(api, namespace):
    """Register movement-related routes"""
    line_model, sale_model, purchase_model, adjustment_model = get_movement_models(api)

    @namespace.route('/')
    class MovementList(Resource):
        @api.doc('list_movements')
        @require_auth
        def get(self):
            """All movements, newest first"""
            return MovementRecorder().list_movements(), 200

    @namespace.route('/<int:movement_id>')
    class MovementDetail(Resource):
        @api.doc('get_movement')
        @require_auth
        def get(self, movement_id):
            """Movement with its line items and incidents"""
            return MovementRecorder().get_movement(movement_id), 200

    @namespace.route('/sales')
    class Sales(Resource):
        @api.doc('register_sale')
        @api.expect(sale_model)
        @require_auth
        def post(self):
            """Register a sale"""
            data = sale_schema.load(request.get_json(silent=True) or {})
            movement = MovementRecorder().register_sale(g.user_id, **data)
            return movement, 201

    @namespace.route('/purchases')
    class Purchases(Resource):
        @api.doc('register_purchase')
        @api.expect(purchase_model)
        @require_auth
        def post(self):
            """Register incoming goods, optionally against an order"""
            data = purchase_schema.load(request.get_json(silent=True) or {})
            movement = MovementRecorder().register_purchase(
                g.user_id,
                data.get('supplier_id'),
                data['lines'],
                note=data.get('note'),
                total=data.get('total'),
                order_id=data.get('order_id'),
            )
            return movement, 201

    @namespace.route('/adjustments')
    class Adjustments(Resource):
        @api.doc('register_adjustment')
        @api.expect(adjustment_model)
        @require_auth
        def post(self):
            """Register a shortage or an overage"""
            data = adjustment_schema.load(request.get_json(silent=True) or {})
            movement = MovementRecorder().register_adjustment(g.user_id, **data)
            return movement, 201

    @namespace.route('/adjustments/<string:kind>')
    @namespace.doc(params={'kind': 'shortage or overage', 'date': 'Local day, YYYY-MM-DD'})
    class AdjustmentsOnDay(Resource):
        @require_auth
        def get(self, kind):
            """Adjusted products of one kind on a given day"""
            query = day_schema.load(request.args.to_dict())
            return MovementRecorder().adjustments_on_day(_adjustment_kind(kind), query['date']), 200

    @namespace.route('/summary/sales')
    class SalesSummary(Resource):
        @require_auth
        def get(self):
            """Sales total per day over the summary window"""
            return MovementRecorder().sales_last_30_days(), 200

    @namespace.route('/summary/<string:kind>')
    class AdjustmentSummary(Resource):
        @require_auth
        def get(self, kind):
            """Shortages or overages per day over the summary window"""
            return MovementRecorder().adjustments_last_30_days(_adjustment_kind(kind)), 200

    @namespace.route('/report')
    @namespace.doc(params={'kind': 'sale, purchase, shortage, overage or all',
                           'start': 'First day, YYYY-MM-DD', 'end': 'Last day, YYYY-MM-DD'})
    class MovementReport(Resource):
        @require_admin
        def get(self):
            """Download the movement report as an Excel workbook"""
            query = report_schema.load(request.args.to_dict())
            content = ReportService().export(query['kind'], query['start'], query['end'])
            filename = f"report_{query['kind']}_{query['start']}_{query['end']}.xlsx"
            return send_file(
                BytesIO(content),
                mimetype=XLSX_MIMETYPE,
                as_attachment=True,
                download_name=filename,
            )


def _adjustment_kind(value):
    try:
        return AdjustmentKind(value)
    except ValueError:
        raise ValidationFailed(f"Unknown adjustment kind {value}", allowed=[k.value for k in AdjustmentKind])
