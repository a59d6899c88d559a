"""
Catalog Controller - products, categories, suppliers and customers
"""

from flask import g, request
from flask_restx import Resource, fields
from stockcloud.errors import CustomerNotFound, OrderNotFound, ValidationFailed
from stockcloud.middleware.auth import require_admin, require_auth
from stockcloud.models import OrderStatus
from stockcloud.services import (
    CategoryService, CustomerService, OrderLifecycle, ProductService, SupplierService
)
from stockcloud.utils.schemas import (
    AuditQuerySchema, CategoryRequestSchema, ProductRequestSchema, RankingQuerySchema, StateRequestSchema,
    SupplierRequestSchema
)
import logging

logger = logging.getLogger(__name__)

product_schema = ProductRequestSchema()
product_update_schema = ProductRequestSchema(partial=True)
state_schema = StateRequestSchema()
category_schema = CategoryRequestSchema()
supplier_schema = SupplierRequestSchema()
supplier_update_schema = SupplierRequestSchema(partial=True)
ranking_schema = RankingQuerySchema()
audit_query_schema = AuditQuerySchema()


def get_catalog_models(api):
    """Define API models for catalog operations"""
    product_model = api.model('Product', {
        'name': fields.String(required=True, description='Unique product name'),
        'stock': fields.Integer(description='On-hand quantity'),
        'unit_price': fields.Float(required=True, description='Unit price'),
        'category_id': fields.Integer(description='Category ID'),
        'supplier_id': fields.Integer(description='Supplier ID'),
        'minimum_quantity': fields.Integer(description='Minimum stock threshold'),
        'state': fields.String(enum=['active', 'inactive']),
    })

    state_model = api.model('RecordState', {
        'state': fields.String(required=True, enum=['active', 'inactive']),
    })

    category_model = api.model('Category', {
        'name': fields.String(required=True, description='Category name'),
    })

    supplier_model = api.model('Supplier', {
        'business_name': fields.String(required=True, description='Business name'),
        'tax_id': fields.String(description='RUC'),
        'phone': fields.String(description='Phone number'),
        'email': fields.String(description='E-mail'),
        'address': fields.String(description='Address'),
    })

    return product_model, state_model, category_model, supplier_model


def register_catalog_routes(api, products_ns, categories_ns, suppliers_ns, customers_ns):
    """Register catalog-related routes"""
    product_model, state_model, category_model, supplier_model = get_catalog_models(api)

    @products_ns.route('/')
    class ProductList(Resource):
        @api.doc('list_products')
        @require_auth
        def get(self):
            return ProductService().list_products(), 200

        @api.doc('create_product')
        @api.expect(product_model)
        @require_admin
        def post(self):
            data = product_schema.load(request.get_json(silent=True) or {})
            data.pop('state', None)
            return ProductService().create_product(**data), 201

    @products_ns.route('/<int:product_id>')
    class ProductDetail(Resource):
        @api.doc('get_product')
        @require_auth
        def get(self, product_id):
            return ProductService().get_product(product_id), 200

        @api.doc('update_product')
        @api.expect(product_model)
        @require_admin
        def put(self, product_id):
            data = product_update_schema.load(request.get_json(silent=True) or {})
            return ProductService().update_product(product_id, actor_id=g.user_id, **data), 200

    @products_ns.route('/<int:product_id>/state')
    class ProductState(Resource):
        @api.expect(state_model)
        @require_admin
        def patch(self, product_id):
            """Activate or deactivate a product"""
            data = state_schema.load(request.get_json(silent=True) or {})
            return ProductService().set_product_state(product_id, data['state'], actor_id=g.user_id), 200

    @products_ns.route('/<int:product_id>/open-order')
    class ProductOpenOrder(Resource):
        @require_auth
        def get(self, product_id):
            """In-progress order that already requests this product"""
            order = OrderLifecycle().find_open_order_for_product(product_id)
            if order is None:
                raise OrderNotFound(message=f"No open order found for product {product_id}")
            return {'order': order}, 200

    @products_ns.route('/audits')
    @products_ns.doc(params={'user_id': 'Only edits made by this user'})
    class ProductAuditList(Resource):
        @require_admin
        def get(self):
            """Audit trail of product edits, newest first"""
            query = audit_query_schema.load(request.args.to_dict())
            return ProductService().audit_trail(user_id=query.get('user_id')), 200

    @products_ns.route('/<int:product_id>/audits')
    class ProductAuditDetail(Resource):
        @require_admin
        def get(self, product_id):
            """Audit trail of one product"""
            return ProductService().audit_trail(product_id=product_id), 200

    @products_ns.route('/critical')
    class CriticalProducts(Resource):
        @require_auth
        def get(self):
            """Active products under their minimum and not on order"""
            return ProductService().critical_products(), 200

    @products_ns.route('/for-order')
    class ProductsForOrder(Resource):
        @require_auth
        def get(self):
            return ProductService().products_for_order(), 200

    @products_ns.route('/ranking')
    @products_ns.doc(params={'by': 'quantity or revenue', 'limit': 'Number of products'})
    class ProductRanking(Resource):
        @require_auth
        def get(self):
            """Best sellers"""
            query = ranking_schema.load(request.args.to_dict())
            return ProductService().ranking(**query), 200

    @categories_ns.route('/')
    class CategoryList(Resource):
        @require_auth
        def get(self):
            return CategoryService().list_categories(), 200

        @api.expect(category_model)
        @require_admin
        def post(self):
            data = category_schema.load(request.get_json(silent=True) or {})
            return CategoryService().create_category(data['name']), 201

    @categories_ns.route('/active')
    class ActiveCategories(Resource):
        @require_auth
        def get(self):
            return CategoryService().list_active(), 200

    @categories_ns.route('/<int:category_id>')
    class CategoryDetail(Resource):
        @api.expect(category_model)
        @require_admin
        def put(self, category_id):
            """Rename a category"""
            data = category_schema.load(request.get_json(silent=True) or {})
            return CategoryService().rename_category(category_id, data['name']), 200

    @categories_ns.route('/<int:category_id>/state')
    class CategoryState(Resource):
        @api.expect(state_model)
        @require_admin
        def patch(self, category_id):
            """Activate or deactivate a category and its products"""
            data = state_schema.load(request.get_json(silent=True) or {})
            return CategoryService().change_state(category_id, data['state']), 200

    @suppliers_ns.route('/')
    class SupplierList(Resource):
        @require_auth
        def get(self):
            return SupplierService().list_suppliers(), 200

        @api.expect(supplier_model)
        @require_admin
        def post(self):
            data = supplier_schema.load(request.get_json(silent=True) or {})
            return SupplierService().create_supplier(**data), 201

    @suppliers_ns.route('/<int:supplier_id>')
    class SupplierDetail(Resource):
        @require_auth
        def get(self, supplier_id):
            return SupplierService().get_supplier(supplier_id), 200

        @api.expect(supplier_model)
        @require_admin
        def put(self, supplier_id):
            data = supplier_update_schema.load(request.get_json(silent=True) or {})
            return SupplierService().update_supplier(supplier_id, **data), 200

    @suppliers_ns.route('/<int:supplier_id>/orders')
    @suppliers_ns.doc(params={'status': 'in_progress, completed or cancelled'})
    class SupplierOrders(Resource):
        @require_auth
        def get(self, supplier_id):
            status = request.args.get('status')
            if status and status not in [s.value for s in OrderStatus]:
                raise ValidationFailed(f"Unknown order status {status}")
            return OrderLifecycle().by_supplier(supplier_id, OrderStatus(status) if status else None), 200

    @customers_ns.route('/')
    class CustomerList(Resource):
        @require_auth
        def get(self):
            return CustomerService().list_customers(), 200

    @customers_ns.route('/lookup')
    @customers_ns.doc(params={'national_id': 'DNI', 'tax_id': 'RUC'})
    class CustomerLookup(Resource):
        @require_auth
        def get(self):
            """Find a customer by DNI or RUC"""
            customer = CustomerService().find(
                national_id=request.args.get('national_id'),
                tax_id=request.args.get('tax_id'),
            )
            if not customer:
                raise CustomerNotFound(request.args.get('national_id') or request.args.get('tax_id'))
            return customer, 200
