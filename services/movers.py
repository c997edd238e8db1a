"""Market movers: daily calculation from stored bars, ranked replacement and queries.

Functions:
- compute_change(today_close, yesterday_close) -> (change, change_percent) rounded to 2dp
- rank_movers(candidates, top_n) -> {exchange: [ranked rows]}
- calculate_daily_movers(db, today) -> summary dict
- replace_movers(db, period, exchange, rows, date) -> int
- query_movers(db, ...) -> (List[MoverOut], data_status)
"""
from __future__ import annotations
import logging
import time
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.bar import DailyBar
from models.mover import Mover
from schemas.market import MoverOut
from services.errors import StorageError
from services.mock_data import DATA_MOCK, DATA_NOT_AVAILABLE, DATA_OK, mock_movers
from services.reference_data import ReferenceDataProvider, get_reference_data

logger = logging.getLogger(__name__)

PERIOD_DAILY = "DAILY"
PERIOD_INTRADAY = "INTRADAY"
ALL_EXCHANGES = "ALL"


def movers_pk(period: str, exchange: str) -> str:
    return f"PERIOD#{period.upper()}#EX#{exchange.upper()}"


def movers_sk(rank: int, symbol: str) -> str:
    return f"RANK#{rank:04d}#SYMB#{symbol}"


def compute_change(today_close: float, yesterday_close: float) -> Tuple[float, float]:
    change = today_close - yesterday_close
    change_percent = change / yesterday_close * 100
    return round(change, 2), round(change_percent, 2)


def rank_movers(candidates: Iterable[dict], top_n: int) -> Dict[str, List[dict]]:
    """Group by exchange, sort by |changePercent| descending, keep top_n, rank 1..N."""
    grouped: Dict[str, List[dict]] = {}
    for c in candidates:
        grouped.setdefault(c["exchange"], []).append(c)
    ranked = {}
    for exchange, rows in grouped.items():
        rows = sorted(rows, key=lambda r: abs(r["change_percent"]), reverse=True)[:top_n]
        ranked[exchange] = [dict(r, rank=i + 1) for i, r in enumerate(rows)]
    return ranked


def _daily_candidates(
    db: Session,
    today_str: str,
    yesterday_str: str,
    reference: ReferenceDataProvider,
    batch_size: int,
    delay: float,
) -> List[dict]:
    today_bars = db.query(DailyBar).filter(DailyBar.date == today_str).order_by(DailyBar.symbol).all()
    logger.info("Found %d symbols for %s", len(today_bars), today_str)
    now = datetime.now(timezone.utc).isoformat()
    candidates = []
    for start in range(0, len(today_bars), batch_size):
        batch = today_bars[start:start + batch_size]
        previous = {
            b.symbol: b
            for b in db.query(DailyBar).filter(
                DailyBar.date == yesterday_str,
                DailyBar.symbol.in_([b.symbol for b in batch]),
            )
        }
        for bar in batch:
            prev = previous.get(bar.symbol)
            if prev is None or bar.close is None or not prev.close:
                continue
            unrounded = (bar.close - prev.close) / prev.close * 100
            if abs(unrounded) < settings.MOVERS_MIN_CHANGE_PERCENT:
                continue
            change, change_percent = compute_change(bar.close, prev.close)
            candidates.append({
                "symbol": bar.symbol,
                "exchange": bar.exchange or reference.get_exchange(bar.symbol),
                "sector": bar.sector or "Unknown",
                "price": bar.close,
                "change": change,
                "change_percent": change_percent,
                "volume": bar.volume or 0,
                "timestamp": now,
            })
        if delay and start + batch_size < len(today_bars):
            time.sleep(delay)
    return candidates


def calculate_daily_movers(
    db: Session,
    today: Optional[date] = None,
    reference: ReferenceDataProvider | None = None,
    batch_size: Optional[int] = None,
    delay: Optional[float] = None,
) -> dict:
    """Diff today's close against the previous calendar day and replace DAILY movers."""
    reference = reference or get_reference_data()
    today = today or datetime.now(timezone.utc).date()
    today_str = today.isoformat()
    yesterday_str = (today - timedelta(days=1)).isoformat()
    logger.info("Processing dates: %s -> %s", yesterday_str, today_str)
    candidates = _daily_candidates(
        db,
        today_str,
        yesterday_str,
        reference,
        batch_size or settings.BATCH_SIZE,
        settings.BATCH_DELAY_SECONDS if delay is None else delay,
    )
    if not candidates:
        logger.info("No movers data calculated")
        return {"processed": 0, "exchanges": 0, "date": today_str}
    ranked = rank_movers(candidates, settings.MOVERS_TOP_N)
    for exchange, rows in ranked.items():
        replace_movers(db, PERIOD_DAILY, exchange, rows, today_str)
    logger.info("Processed %d movers across %d exchanges", len(candidates), len(ranked))
    return {"processed": len(candidates), "exchanges": len(ranked), "date": today_str}


def _delete_movers(db: Session, pk: str) -> int:
    return db.query(Mover).filter(Mover.pk == pk).delete(synchronize_session="fetch")


def replace_movers(db: Session, period: str, exchange: str, rows: List[dict], date_str: Optional[str] = None) -> int:
    """Swap the ranked set for (period, exchange) inside one transaction.

    The delete runs in a savepoint: if it fails the error is logged, stale rows
    may linger and the new rows overwrite matching keys. An insert failure rolls
    back everything, keeping the previous set, and raises StorageError.
    """
    pk = movers_pk(period, exchange)
    expires_at = int(time.time()) + settings.MOVERS_TTL_DAYS * 24 * 60 * 60
    try:
        with db.begin_nested():
            _delete_movers(db, pk)
    except SQLAlchemyError as e:
        logger.error("Failed to delete existing movers for %s: %s", pk, e)
    try:
        for row in rows:
            db.merge(Mover(
                pk=pk,
                sk=movers_sk(row["rank"], row["symbol"]),
                symbol=row["symbol"],
                exchange=row.get("exchange") or exchange,
                sector=row.get("sector") or "Unknown",
                price=row["price"],
                change=row["change"],
                change_percent=row["change_percent"],
                volume=row.get("volume") or 0,
                rank=row["rank"],
                date=date_str,
                timestamp=row.get("timestamp") or datetime.now(timezone.utc).isoformat(),
                expires_at=expires_at,
            ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to write movers for %s: %s", pk, e)
        raise StorageError("Failed to write movers", str(e))
    logger.info("Wrote %d movers for %s exchange", len(rows), exchange)
    return len(rows)


def to_mover_out(row: Mover, period: str) -> MoverOut:
    return MoverOut(
        symbol=row.symbol,
        exchange=row.exchange,
        sector=row.sector,
        price=row.price,
        change=row.change,
        changePercent=row.change_percent,
        volume=row.volume or 0,
        rank=row.rank,
        period=period,
        timestamp=row.timestamp,
        date=row.date,
    )


def query_movers(
    db: Session,
    period: str = PERIOD_DAILY,
    exchange: Optional[str] = None,
    sector: Optional[str] = None,
    limit: Optional[int] = None,
    gainers_only: bool = False,
    losers_only: bool = False,
) -> Tuple[List[MoverOut], str]:
    period = (period or PERIOD_DAILY).upper()
    exchange = (exchange or settings.DEFAULT_EXCHANGE).upper()
    limit = min(limit or settings.MOVERS_DEFAULT_LIMIT, settings.MOVERS_MAX_LIMIT)
    pk = movers_pk(period, exchange)
    base = db.query(Mover).filter(Mover.pk == pk)
    if base.first() is None:
        if settings.MOCK_DATA_ENABLED:
            logger.info("No movers for %s, returning mock data", pk)
            return mock_movers(exchange, period, limit, gainers_only, losers_only, sector), DATA_MOCK
        return [], DATA_NOT_AVAILABLE
    q = base
    if sector:
        q = q.filter(Mover.sector == sector)
    if gainers_only:
        q = q.filter(Mover.change_percent > 0)
    elif losers_only:
        q = q.filter(Mover.change_percent < 0)
    rows = q.order_by(Mover.sk.asc()).limit(limit).all()
    return [to_mover_out(r, period) for r in rows], DATA_OK
