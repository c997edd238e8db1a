"""TTL sweeper: removes rows whose expires_at (epoch seconds) has passed."""
from __future__ import annotations
import logging
import time
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.bar import DailyBar, IntradayBar
from models.connection import Connection
from models.mover import Mover
from models.transaction import Transaction
from services.errors import StorageError

logger = logging.getLogger(__name__)

EXPIRING = {
    "transactions": Transaction,
    "movers": Mover,
    "bars_daily": DailyBar,
    "bars_intraday": IntradayBar,
    "connections": Connection,
}


def purge_expired(db: Session, now: Optional[int] = None) -> Dict[str, int]:
    now = int(time.time()) if now is None else now
    removed: Dict[str, int] = {}
    try:
        for name, model in EXPIRING.items():
            removed[name] = db.query(model).filter(model.expires_at <= now).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Failed to purge expired rows", str(e))
    logger.info("Purged expired rows: %s", removed)
    return removed
