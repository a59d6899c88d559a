"""
Operational endpoints for the stock service
Used by load balancers and monitoring to check the process and its backing services
"""

from flask import current_app
from flask_restx import Resource, Namespace
from sqlalchemy import text
import os
import logging

from stockcloud.database import db
from stockcloud.utils.cache_utils import get_cache
from stockcloud.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

operational_ns = Namespace('operational', description='Operational endpoints')


def check_database():
    try:
        db.session.execute(text('SELECT 1'))
        return {'status': 'healthy'}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {'status': 'unhealthy', 'error': 'Database unreachable'}


def check_cache():
    cache = get_cache()
    if not cache.enabled:
        return {'status': 'disabled'}
    return {'status': 'healthy' if cache.ping() else 'unhealthy'}


@operational_ns.route('/health')
class Health(Resource):
    def get(self):
        """Main health check endpoint"""
        return {
            'status': 'healthy',
            'service': 'stockcloud',
            'timestamp': utcnow().isoformat() + 'Z',
            'version': os.environ.get('API_VERSION', '1.0.0'),
            'environment': current_app.config.get('ENV_NAME', 'development'),
        }, 200


@operational_ns.route('/health/ready')
class Readiness(Resource):
    def get(self):
        """Readiness check - database must answer, the cache is optional"""
        checks = {
            'database': check_database(),
            'cache': check_cache(),
        }
        ready = checks['database']['status'] == 'healthy'

        return {
            'status': 'ready' if ready else 'not ready',
            'service': 'stockcloud',
            'timestamp': utcnow().isoformat() + 'Z',
            'checks': checks,
        }, 200 if ready else 503
