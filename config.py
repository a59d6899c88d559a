import os
from datetime import timedelta


def get_database_uri():
    """
    Build the database URI from the environment.
    DATABASE_URL wins; otherwise it is assembled from the MYSQL_* parts.
    """
    url = os.environ.get('DATABASE_URL')
    if url:
        return url

    user = os.environ.get('MYSQL_USER', 'stockcloud')
    password = os.environ.get('MYSQL_PASSWORD', 'stockcloud')
    host = os.environ.get('DATABASE_HOST', 'localhost')
    port = os.environ.get('DATABASE_PORT', '3306')
    database = os.environ.get('MYSQL_DATABASE', 'stockcloud')
    return f"mysql+pymysql://{user}:{password}@{host}:{port}/{database}"


class Config:
    """Base configuration"""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    PERMANENT_SESSION_LIFETIME = timedelta(hours=int(os.environ.get('SESSION_HOURS', 8)))
    SESSION_COOKIE_HTTPONLY = True

    # Database - resolved at app creation
    SQLALCHEMY_DATABASE_URI = None
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Cache
    REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
    CACHE_TTL_SECONDS = int(os.environ.get('CACHE_TTL_SECONDS', 3600))

    # Business rules
    BUSINESS_TIMEZONE = os.environ.get('BUSINESS_TIMEZONE', 'America/Lima')
    SUMMARY_WINDOW_DAYS = int(os.environ.get('SUMMARY_WINDOW_DAYS', 30))
    PASSWORD_RESET_TTL_HOURS = int(os.environ.get('PASSWORD_RESET_TTL_HOURS', 24))

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    # Use in-memory SQLite for testing
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    # No Redis in tests, the suite injects its own cache client
    REDIS_URL = None
    # Requests without a logged-in user act as an admin
    AUTH_BYPASS = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SESSION_COOKIE_SECURE = True


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
