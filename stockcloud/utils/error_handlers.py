from functools import wraps
from flask import jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from stockcloud.errors import StockCloudError
from stockcloud.middleware.correlation_id import get_correlation_id

logger = logging.getLogger(__name__)


def validation_body(error):
    return {
        'error': 'Validation Error',
        'message': 'Request data validation failed',
        'details': error.messages,
        'status_code': 400
    }


def internal_error_body():
    # Same id as the log lines of the failed request
    return {
        'error': 'Internal Server Error',
        'message': 'An unexpected error occurred',
        'status_code': 500,
        'correlation_id': get_correlation_id(),
    }


def handle_api_errors(view):
    """
    Map exceptions raised by API resources to JSON responses.
    Domain errors carry their own status; anything else is logged and becomes a 500.
    """
    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except StockCloudError as e:
            if e.status_code >= 500:
                logger.error(f"{type(e).__name__}: {e.message}")
            else:
                logger.info(f"{type(e).__name__}: {e.message}")
            return e.to_dict(), e.status_code
        except ValidationError as e:
            return validation_body(e), 400
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"Unhandled error: {e}")
            return internal_error_body(), 500

    return wrapper


def register_error_handlers(app):
    """Register application error handlers"""

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({
            'error': 'Bad Request',
            'message': 'The request could not be understood by the server',
            'status_code': 400
        }), 400

    @app.errorhandler(401)
    def unauthorized(error):
        return jsonify({
            'error': 'Authentication required',
            'message': 'Please log in first',
            'status_code': 401
        }), 401

    @app.errorhandler(403)
    def forbidden(error):
        return jsonify({
            'error': 'Forbidden',
            'message': 'You are not allowed to perform this action',
            'status_code': 403
        }), 403

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'error': 'Not Found',
            'message': 'The requested resource was not found',
            'status_code': 404
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'error': 'Method Not Allowed',
            'message': 'The method is not allowed for the requested URL',
            'status_code': 405
        }), 405

    @app.errorhandler(409)
    def conflict(error):
        return jsonify({
            'error': 'Conflict',
            'message': 'The request conflicts with the current state of the resource',
            'status_code': 409
        }), 409

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        return jsonify(internal_error_body()), 500

    @app.errorhandler(StockCloudError)
    def domain_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(ValidationError)
    def validation_error(error):
        return jsonify(validation_body(error)), 400
