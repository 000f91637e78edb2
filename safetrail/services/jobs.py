"""Scheduled background jobs."""

from __future__ import annotations

import logging

from safetrail.db.session import SessionLocal
from safetrail.services.session_service import sweep_expired_sessions

logger = logging.getLogger(__name__)


def run_expiry_sweep() -> int:
    """Expire overdue sessions. Failures are logged, never raised to the scheduler."""
    logger.info("Expiry sweep starting")
    db = SessionLocal()
    try:
        return sweep_expired_sessions(db)
    except Exception:
        logger.exception("Expiry sweep failed")
        db.rollback()
        return 0
    finally:
        db.close()
