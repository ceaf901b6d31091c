#!/usr/bin/env python3
"""
Initialize database tables from SQLAlchemy models.

Creates any missing tables for games, predictions, news and subscription
plans. Existing tables are left untouched.
"""
import sys
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import logging

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    """Create all database tables from models."""
    from app.core.database import DATABASE_URL, init_db

    logger.info(f"Creating database tables at {DATABASE_URL[:30]}...")
    init_db()
    logger.info("All database tables created successfully")


if __name__ == "__main__":
    main()
