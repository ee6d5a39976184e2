#!/usr/bin/env python3
"""
Create all tables known to the SQLAlchemy models and seed the default RBAC data.
"""
from app.models import *  # noqa: F401,F403 - registers every model on Base.metadata
from app.database.session import engine, SessionLocal, Base
from app.core.logging_config import get_logger

logger = get_logger(__name__)


def create_tables(seed: bool = True):
    """Initialize the database and create all tables."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")

        if seed:
            from app.seed.seed_data import seed_rbac

            db = SessionLocal()
            try:
                seed_rbac(db)
            finally:
                db.close()
    except Exception as e:
        logger.exception(f"Database initialization failed: {e}")
        raise


if __name__ == "__main__":
    create_tables()
