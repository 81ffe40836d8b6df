# storefront/utils/db.py
from contextlib import contextmanager
from datetime import datetime, timezone

from ..extensions import db


def utcnow():
    # naive UTC, matching what SQLite hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


@contextmanager
def atomic():
    """Commit everything done in the block, or roll all of it back."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
