"""
Controllers package initialization - Sets up Flask-RESTX API with all namespaces
"""

from flask import Blueprint
from flask_restx import Api
from stockcloud.utils.error_handlers import handle_api_errors
from stockcloud.controllers.operational import Health, Readiness
from stockcloud.controllers.catalog import register_catalog_routes
from stockcloud.controllers.movements import register_movement_routes
from stockcloud.controllers.orders import register_order_routes
from stockcloud.controllers.incidents import register_incident_routes
from stockcloud.controllers.users import register_user_routes
import logging

logger = logging.getLogger(__name__)

# Create Blueprint
api_bp = Blueprint('stockcloud', __name__)
api = Api(api_bp, version='1.0', title='StockCloud API',
          description='Inventory, sales and replenishment management',
          doc='/docs/', decorators=[handle_api_errors])

# Define namespaces
auth_ns = api.namespace('auth', description='Login sessions')
products_ns = api.namespace('products', description='Product catalog')
categories_ns = api.namespace('categories', description='Product categories')
suppliers_ns = api.namespace('suppliers', description='Suppliers')
customers_ns = api.namespace('customers', description='Customers')
movements_ns = api.namespace('movements', description='Sales, purchases and adjustments')
orders_ns = api.namespace('orders', description='Replenishment orders')
incidents_ns = api.namespace('incidents', description='Purchase incidents')
users_ns = api.namespace('users', description='User administration')

# Register routes for each namespace
register_user_routes(api, auth_ns, users_ns)
register_catalog_routes(api, products_ns, categories_ns, suppliers_ns, customers_ns)
register_movement_routes(api, movements_ns)
register_order_routes(api, orders_ns)
register_incident_routes(api, incidents_ns)


def register_routes(app):
    """Register all routes with the Flask app"""
    app.register_blueprint(api_bp, url_prefix='/api/v1')

    # Operational endpoints live outside /api/v1
    app.add_url_rule('/health', view_func=handle_api_errors(Health.as_view('health')))
    app.add_url_rule('/health/ready', view_func=handle_api_errors(Readiness.as_view('readiness')))
