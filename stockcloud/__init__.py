from flask import Flask
from flask_cors import CORS
import redis
import logging


def create_app(config_name='default', redis_client=None):
    """Application factory pattern"""
    app = Flask(__name__)

    # Load environment variables before the config classes read them
    from dotenv import load_dotenv
    load_dotenv()

    # Load configuration
    from config import config, get_database_uri
    app.config.from_object(config[config_name])
    if not app.config.get('SQLALCHEMY_DATABASE_URI'):
        app.config['SQLALCHEMY_DATABASE_URI'] = get_database_uri()
    app.config['ENV_NAME'] = config_name

    # Initialize correlation ID middleware
    from stockcloud.middleware.correlation_id import CorrelationIdMiddleware, init_correlation_id_logging
    CorrelationIdMiddleware(app)
    init_correlation_id_logging(app)

    # Initialize database
    from stockcloud.database import init_db
    init_db(app)

    # CORS setup
    CORS(app, origins=app.config.get('CORS_ORIGINS', ['*']), supports_credentials=True)

    # Initialize Redis; without it every read goes to the database
    if redis_client is None and app.config.get('REDIS_URL'):
        try:
            redis_client = redis.Redis.from_url(
                app.config['REDIS_URL'],
                decode_responses=True,
                socket_connect_timeout=5,  # 5 second timeout
                socket_timeout=5
            )
            redis_client.ping()  # Test connection
            app.logger.info("Redis connection established")
        except Exception as e:
            app.logger.warning(f"Redis connection failed: {e}. Caching will be disabled.")
            redis_client = None

    from stockcloud.utils.cache_utils import CACHE_EXTENSION, CacheStore
    app.extensions[CACHE_EXTENSION] = CacheStore(redis_client, default_ttl=app.config['CACHE_TTL_SECONDS'])

    # Configure logging
    if not app.testing:
        logging.basicConfig(
            level=getattr(logging, app.config['LOG_LEVEL']),
            format='%(asctime)s %(levelname)s %(name)s: %(message)s'
        )

    # Register blueprints/namespaces and operational endpoints
    from stockcloud.controllers import register_routes
    register_routes(app)

    # Register error handlers
    from stockcloud.utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    # Database tables creation is deferred to init_database() function
    return app


def init_database(app):
    """Initialize database tables - call this explicitly when ready"""
    from stockcloud.database import db
    with app.app_context():
        try:
            # Only create tables if database connection is successful
            from sqlalchemy import text
            db.session.execute(text('SELECT 1'))  # Test connection
            db.create_all()
            app.logger.info("Database tables created successfully")
            return True
        except Exception as e:
            app.logger.error(f"Failed to create database tables: {e}")
            if app.config.get('ENV_NAME') == 'production':
                # In production, fail fast
                raise
            else:
                app.logger.warning("Continuing without database connection in development mode")
                return False
