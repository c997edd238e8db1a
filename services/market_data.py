"""Market data ingestion: quotes -> intraday bars, today's daily bar, intraday movers.

Runs from the scheduler (jobs/tasks.py) or POST /jobs/market-data. Upstream
calls are throttled with a fixed delay between batches; nothing is retried.
When a transport is supplied, fresh ticker values and the movers list are
pushed to WebSocket subscribers after the writes commit.
"""
from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.bar import DailyBar, IntradayBar
from schemas.quote import Quote
from services import gateway
from services.bars import daily_expiry, intraday_expiry
from services.errors import StorageError
from services.movers import ALL_EXCHANGES, PERIOD_INTRADAY, rank_movers, replace_movers
from services.quotes import QuoteService

logger = logging.getLogger(__name__)


async def fetch_quotes(quotes: QuoteService, symbols: List[str], batch_size: int, delay: float) -> List[Quote]:
    results: List[Quote] = []
    for start in range(0, len(symbols), batch_size):
        results.extend(await quotes.get_multiple_quotes(symbols[start:start + batch_size]))
        if delay and start + batch_size < len(symbols):
            await asyncio.sleep(delay)
    return results


def store_intraday(db: Session, quotes: List[Quote], timestamp: str) -> int:
    expires_at = intraday_expiry()
    try:
        for q in quotes:
            db.merge(IntradayBar(
                symbol=q.symbol,
                timestamp=timestamp,
                open=q.regularMarketPrice,
                high=q.regularMarketPrice,
                low=q.regularMarketPrice,
                close=q.regularMarketPrice,
                volume=q.regularMarketVolume or 0,
                expires_at=expires_at,
            ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Failed to store intraday bars", str(e))
    logger.info("Stored %d intraday records", len(quotes))
    return len(quotes)


async def store_daily(db: Session, quotes_service: QuoteService, quotes: List[Quote], date_str: str, delay: float) -> int:
    """Upsert today's bar per symbol; a failed symbol is logged and skipped."""
    reference = quotes_service.reference
    stored = 0
    for i, q in enumerate(quotes):
        history = await quotes_service.get_historical_data(q.symbol, "1d", "1d")
        values = dict(open=q.regularMarketPrice, high=q.regularMarketPrice, low=q.regularMarketPrice,
                      close=q.regularMarketPrice, volume=q.regularMarketVolume or 0)
        if history and history.timestamp:
            last = len(history.timestamp) - 1

            def at(series):
                return series[last] if last < len(series) else None

            if at(history.open):
                values = dict(
                    open=at(history.open),
                    high=at(history.high) or at(history.open),
                    low=at(history.low) or at(history.open),
                    close=at(history.close) or q.regularMarketPrice,
                    volume=at(history.volume) or q.regularMarketVolume or 0,
                )
        try:
            db.merge(DailyBar(
                symbol=q.symbol,
                date=date_str,
                exchange=reference.get_exchange(q.symbol),
                sector=reference.get_sector(q.symbol),
                expires_at=daily_expiry(),
                **values,
            ))
            db.commit()
            stored += 1
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Failed to store daily data for %s: %s", q.symbol, e)
        if delay and i + 1 < len(quotes):
            await asyncio.sleep(delay)
    logger.info("Updated daily data for %d symbols", stored)
    return stored


def intraday_movers(quotes: List[Quote], reference, timestamp: str) -> dict:
    """Ranked INTRADAY sets per exchange plus the cross-exchange ALL set."""
    candidates = [
        {
            "symbol": q.symbol,
            "exchange": reference.get_exchange(q.symbol),
            "sector": reference.get_sector(q.symbol),
            "price": q.regularMarketPrice,
            "change": q.regularMarketChange,
            "change_percent": q.regularMarketChangePercent,
            "volume": q.regularMarketVolume or 0,
            "timestamp": timestamp,
        }
        for q in quotes
        if q.regularMarketChangePercent != 0
    ]
    ranked = rank_movers(candidates, settings.INTRADAY_MOVERS_TOP_N)
    everything = sorted(candidates, key=lambda c: abs(c["change_percent"]), reverse=True)
    ranked[ALL_EXCHANGES] = [dict(c, rank=i + 1) for i, c in enumerate(everything[:settings.INTRADAY_MOVERS_ALL_TOP_N])]
    return ranked


async def ingest_market_data(
    db: Session,
    quotes_service: QuoteService,
    symbols: Optional[List[str]] = None,
    transport: Optional[gateway.Transport] = None,
    now: Optional[datetime] = None,
    delay: Optional[float] = None,
) -> dict:
    symbols = list(symbols or settings.TRACKED_SYMBOLS)
    delay = settings.BATCH_DELAY_SECONDS if delay is None else delay
    now = now or datetime.now(timezone.utc)
    date_str = now.date().isoformat()
    timestamp = now.isoformat()

    logger.info("Fetching quotes for %d symbols", len(symbols))
    quotes = await fetch_quotes(quotes_service, symbols, settings.BATCH_SIZE, delay)
    logger.info("Received %d valid quotes", len(quotes))
    if not quotes:
        logger.warning("No quotes received from quote source")
        return {"processed": 0, "timestamp": timestamp}

    store_intraday(db, quotes, timestamp)
    daily = await store_daily(db, quotes_service, quotes, date_str, delay)
    ranked = intraday_movers(quotes, quotes_service.reference, timestamp)
    for exchange, rows in ranked.items():
        replace_movers(db, PERIOD_INTRADAY, exchange, rows, date_str)

    pushed = 0
    if transport is not None:
        for q in quotes:
            pushed += await gateway.broadcast(db, transport, gateway.ticker_topic(q.symbol), {
                "type": "ticker",
                "data": {
                    "symbol": q.symbol,
                    "price": q.regularMarketPrice,
                    "change": q.regularMarketChange,
                    "changePercent": q.regularMarketChangePercent,
                    "volume": q.regularMarketVolume,
                },
                "timestamp": timestamp,
            })
        top = ranked.get(ALL_EXCHANGES, [])[:settings.MOVERS_DEFAULT_LIMIT]
        pushed += await gateway.broadcast(db, transport, gateway.MOVERS_TOPIC, {
            "type": "movers",
            "data": [
                {"symbol": m["symbol"], "price": m["price"], "change": m["change"],
                 "changePercent": m["change_percent"], "volume": m["volume"]}
                for m in top
            ],
            "timestamp": timestamp,
        })

    logger.info("Market data fetch completed: %d quotes", len(quotes))
    return {
        "processed": len(quotes),
        "dailyBars": daily,
        "exchanges": len(ranked) - 1,
        "pushed": pushed,
        "timestamp": timestamp,
    }
