"""
Database initialization
Seeds the built-in achievement definitions
"""
import logging

from sqlalchemy.orm import Session

from app.services.achievement_service import seed_default_achievements

logger = logging.getLogger(__name__)


def init_db(db: Session) -> int:
    """
    Insert the built-in achievements that are missing (matched by code).
    Safe to run on every startup; edited definitions are left untouched.
    """
    inserted = seed_default_achievements(db)
    if not inserted:
        logger.info("Built-in achievements already present, nothing to seed")
    return inserted
