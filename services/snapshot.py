from __future__ import annotations
import logging
from datetime import date, datetime, timedelta
from typing import List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from models.user import User
from models.portfolio_snapshot import PortfolioSnapshot
from schemas.portfolio import SnapshotOut
from services.bars import latest_daily_close
from services.errors import StorageError, ValidationError
from services.portfolio import get_positions, value_position
from services.users import get_user

logger = logging.getLogger(__name__)

MAX_HISTORY_DAYS = 366


def snapshot_user(db: Session, user: User, snap_date: date) -> PortfolioSnapshot:
    """Value positions at the latest stored close on or before snap_date (averagePrice if none)."""
    as_of = snap_date.isoformat()
    rows = []
    total_value = 0.0
    total_invested = 0.0
    for p in get_positions(db, user.user_id):
        valued = value_position(p, latest_daily_close(db, p.symbol, as_of))
        total_value += valued.currentValue
        total_invested += valued.totalInvested
        rows.append({
            'symbol': valued.symbol,
            'quantity': valued.quantity,
            'averagePrice': valued.averagePrice,
            'marketPrice': valued.currentPrice,
            'currentValue': valued.currentValue,
        })
    profit_loss = total_value - total_invested
    snap = (
        db.query(PortfolioSnapshot)
        .filter(PortfolioSnapshot.user_id == user.user_id, PortfolioSnapshot.snapshot_date == snap_date)
        .first()
    )
    if snap is None:
        snap = PortfolioSnapshot(user_id=user.user_id, snapshot_date=snap_date)
        db.add(snap)
    snap.total_value = total_value
    snap.total_invested = total_invested
    snap.profit_loss = profit_loss
    snap.profit_loss_percent = (profit_loss / total_invested) * 100 if total_invested > 0 else 0.0
    snap.cash_balance = user.virtual_balance
    snap.positions = rows
    snap.created_at = datetime.utcnow()
    return snap


def run_daily_snapshots(db: Session, snap_date: date | None = None) -> int:
    snap_date = snap_date or date.today()
    count = 0
    try:
        for u in db.query(User).all():
            snapshot_user(db, u, snap_date)
            count += 1
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Failed to store portfolio snapshots", str(e))
    logger.info("Stored %d portfolio snapshots for %s", count, snap_date)
    return count


def get_history(db: Session, user_id: str, days: int = 30) -> List[SnapshotOut]:
    if days <= 0 or days > MAX_HISTORY_DAYS:
        raise ValidationError(f"days must be between 1 and {MAX_HISTORY_DAYS}")
    get_user(db, user_id)
    since = date.today() - timedelta(days=days)
    snaps = (
        db.query(PortfolioSnapshot)
        .filter(PortfolioSnapshot.user_id == user_id, PortfolioSnapshot.snapshot_date > since)
        .order_by(PortfolioSnapshot.snapshot_date.desc())
        .all()
    )
    return [SnapshotOut.from_model(s) for s in snaps]
