#!/usr/bin/env python3
"""
StockCloud
Flask-based service for inventory, sales and replenishment orders.
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import application factory
from stockcloud import create_app, init_database

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Main application entry point."""
    env = os.environ.get('FLASK_ENV', 'production')

    logger.info(f"Starting StockCloud in {env} mode")

    app = create_app(env)

    # Create missing tables; schema changes go through Flask-Migrate
    init_database(app)

    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))
    debug = env == 'development'

    logger.info(f"Starting StockCloud on {host}:{port}")

    app.run(
        host=host,
        port=port,
        debug=debug,
        threaded=True
    )


if __name__ == '__main__':
    main()
