"""
Correlation ID middleware for Flask application
Tags every request and its log lines with an X-Correlation-ID
"""
import uuid
import logging
from contextvars import ContextVar
from flask import Response, g, request, current_app

# Context variable to store correlation ID for the current request
correlation_id_context: ContextVar[str] = ContextVar('correlation_id', default='')


class CorrelationIdMiddleware:
    """
    Flask middleware for handling correlation IDs
    """

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize the middleware with Flask app"""
        app.before_request(self.before_request)
        app.after_request(self.after_request)

    def before_request(self):
        """Extract or generate correlation ID before request processing"""
        correlation_id = request.headers.get('X-Correlation-ID') or str(uuid.uuid4())

        # Request-scoped copy for handlers, context copy for log records
        g.correlation_id = correlation_id
        correlation_id_context.set(correlation_id)

        current_app.logger.info(f"[{correlation_id}] {request.method} {request.path} - Processing request")

    def after_request(self, response: Response) -> Response:
        """Add correlation ID to response headers"""
        correlation_id = getattr(g, 'correlation_id', 'unknown')
        response.headers['X-Correlation-ID'] = correlation_id

        current_app.logger.info(
            f"[{correlation_id}] {request.method} {request.path} - "
            f"Response: {response.status_code}"
        )

        return response


def get_correlation_id() -> str:
    """Get current correlation ID from Flask g object or context"""
    if hasattr(g, 'correlation_id'):
        return g.correlation_id
    return correlation_id_context.get() or 'unknown'


class CorrelationIdFilter(logging.Filter):
    """Adds `correlation_id` to every log record"""

    def filter(self, record):
        try:
            record.correlation_id = get_correlation_id()
        except RuntimeError:
            # Outside of an app/request context
            record.correlation_id = correlation_id_context.get() or '-'
        return True


def init_correlation_id_logging(app):
    """
    Initialize correlation ID logging configuration
    """
    formatter = logging.Formatter(
        '[%(correlation_id)s] %(levelname)s in %(module)s: %(message)s'
    )

    for handler in app.logger.handlers:
        handler.addFilter(CorrelationIdFilter())
        handler.setFormatter(formatter)
