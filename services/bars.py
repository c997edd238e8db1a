"""OHLCV bar storage and range queries (daily and intraday tables)."""
from __future__ import annotations
import logging
import time
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from config import settings
from models.bar import DailyBar, IntradayBar
from schemas.market import BarOut
from services.errors import ValidationError
from services.mock_data import DATA_MOCK, DATA_NOT_AVAILABLE, DATA_OK, mock_bars
from services.reference_data import normalize_symbol

logger = logging.getLogger(__name__)

TIMEFRAMES = ("daily", "intraday")


def daily_expiry() -> int:
    return int(time.time()) + settings.DAILY_BAR_TTL_DAYS * 24 * 60 * 60


def intraday_expiry() -> int:
    return int(time.time()) + settings.INTRADAY_BAR_TTL_DAYS * 24 * 60 * 60


def _to_out(bar, timeframe: str) -> BarOut:
    if timeframe == "daily":
        return BarOut(
            symbol=bar.symbol, timestamp=bar.date,
            open=bar.open, high=bar.high, low=bar.low, close=bar.close, volume=bar.volume or 0,
            exchange=bar.exchange, sector=bar.sector,
        )
    return BarOut(
        symbol=bar.symbol, timestamp=bar.timestamp,
        open=bar.open, high=bar.high, low=bar.low, close=bar.close, volume=bar.volume or 0,
    )


def query_bars(
    db: Session,
    symbol: str,
    timeframe: str = "daily",
    limit: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Tuple[List[BarOut], str]:
    """Most recent first. Dates compare lexically against the ISO sort key."""
    symbol = normalize_symbol(symbol)
    timeframe = (timeframe or "daily").lower()
    if timeframe not in TIMEFRAMES:
        raise ValidationError(f"Unsupported timeframe: {timeframe}", {"allowed": list(TIMEFRAMES)})
    requested = limit or settings.BARS_DEFAULT_LIMIT
    limit = min(requested, settings.BARS_MAX_LIMIT)
    model = DailyBar if timeframe == "daily" else IntradayBar
    key = model.date if timeframe == "daily" else model.timestamp
    base = db.query(model).filter(model.symbol == symbol)
    if base.first() is None:
        if settings.MOCK_DATA_ENABLED:
            return mock_bars(symbol, timeframe, requested), DATA_MOCK
        return [], DATA_NOT_AVAILABLE
    q = base
    if start_date:
        q = q.filter(key >= start_date)
    if end_date:
        q = q.filter(key <= end_date)
    rows = q.order_by(key.desc()).limit(limit).all()
    return [_to_out(r, timeframe) for r in rows], DATA_OK


def recent_daily_closes(db: Session, symbol: str, count: int) -> List[float]:
    """Up to `count` most recent daily closes, oldest first."""
    rows = (
        db.query(DailyBar)
        .filter(DailyBar.symbol == symbol)
        .order_by(DailyBar.date.desc())
        .limit(count)
        .all()
    )
    return [r.close for r in reversed(rows) if r.close is not None]


def latest_intraday_bar(db: Session, symbol: str) -> Optional[BarOut]:
    row = (
        db.query(IntradayBar)
        .filter(IntradayBar.symbol == symbol)
        .order_by(IntradayBar.timestamp.desc())
        .first()
    )
    return _to_out(row, "intraday") if row else None


def latest_daily_close(db: Session, symbol: str, on_or_before: Optional[str] = None) -> Optional[float]:
    q = db.query(DailyBar).filter(DailyBar.symbol == symbol)
    if on_or_before:
        q = q.filter(DailyBar.date <= on_or_before)
    row = q.order_by(DailyBar.date.desc()).first()
    return row.close if row else None
