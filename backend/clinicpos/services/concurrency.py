# Overview: Retry helper for write paths that race on shared rows.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError

from ..extensions import db


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation, retrying on lock contention and unique-key races.

    IntegrityError is retried because two concurrent sales can allocate the
    same invoice number; the loser re-reads the sequence and tries again.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, IntegrityError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
