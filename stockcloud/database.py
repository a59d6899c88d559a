"""
Database configuration and instance
"""

import logging
from contextlib import contextmanager

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

logger = logging.getLogger(__name__)

# Initialize database instance
db = SQLAlchemy()
migrate = Migrate()

# Session.info key holding cache keys to evict once the current transaction commits
PENDING_EVICTIONS = 'stockcloud.pending_evictions'


def init_db(app):
    """Initialize database with Flask app"""
    db.init_app(app)
    migrate.init_app(app, db)
    return db


def schedule_eviction(keys, session=None):
    """Queue cache keys for eviction after the surrounding unit of work commits."""
    session = session or db.session
    session.info.setdefault(PENDING_EVICTIONS, set()).update(keys)


@contextmanager
def unit_of_work(cache=None, session=None):
    """
    Run a block of writes as one transaction.

    Commits on success and rolls back on any exception. Cache keys queued
    with schedule_eviction() are only deleted after a successful commit.
    """
    session = session or db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        session.info.pop(PENDING_EVICTIONS, None)
        raise

    keys = session.info.pop(PENDING_EVICTIONS, set())
    if keys and cache is not None:
        cache.delete(*sorted(keys))
        logger.debug(f"Evicted cache keys after commit: {sorted(keys)}")
