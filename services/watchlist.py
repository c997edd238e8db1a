"""Per-user watchlist persistence with read-time quote enrichment."""
from __future__ import annotations
import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models.watchlist import WatchlistItem
from schemas.watchlist import WatchlistItemOut
from services.errors import ConflictError, NotFoundError, StorageError, ValidationError
from services.reference_data import normalize_symbol
from services.users import get_user

logger = logging.getLogger(__name__)


def _to_out(item: WatchlistItem, quote=None) -> WatchlistItemOut:
    out = WatchlistItemOut(symbol=item.symbol, addedAt=item.added_at, notes=item.notes)
    if quote is not None:
        out.name = quote.shortName
        out.currentPrice = quote.regularMarketPrice
        out.change = quote.regularMarketChange
        out.changePercent = quote.regularMarketChangePercent
        out.volume = quote.regularMarketVolume
        out.marketCap = quote.marketCap
    return out


def _get_item(db: Session, user_id: str, symbol: str) -> Optional[WatchlistItem]:
    return db.query(WatchlistItem).filter(WatchlistItem.user_id == user_id, WatchlistItem.symbol == symbol).first()


async def get_watchlist(db: Session, user_id: str, quotes) -> List[WatchlistItemOut]:
    """Quote failures leave the live fields as None; the read itself never fails on them."""
    get_user(db, user_id)
    items = (
        db.query(WatchlistItem)
        .filter(WatchlistItem.user_id == user_id)
        .order_by(WatchlistItem.added_at.desc())
        .all()
    )
    results = await asyncio.gather(*(quotes.get_quote(i.symbol) for i in items), return_exceptions=True)
    enriched = []
    for item, quote in zip(items, results):
        if isinstance(quote, BaseException):
            logger.warning("Failed to get quote for %s: %s", item.symbol, quote)
            quote = None
        enriched.append(_to_out(item, quote))
    return enriched


async def add_to_watchlist(db: Session, user_id: str, symbol: str, quotes, notes: Optional[str] = None) -> WatchlistItemOut:
    symbol = normalize_symbol(symbol)
    get_user(db, user_id)
    quote = await quotes.get_quote(symbol)
    if quote is None:
        raise ValidationError(f"Invalid stock symbol: {symbol}")
    if _get_item(db, user_id, symbol):
        raise ConflictError("Stock already exists in watchlist", {"symbol": symbol})
    item = WatchlistItem(user_id=user_id, symbol=symbol, added_at=datetime.utcnow(), notes=notes)
    db.add(item)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Stock already exists in watchlist", {"symbol": symbol})
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Failed to add stock to watchlist", str(e))
    db.refresh(item)
    return _to_out(item, quote)


def remove_from_watchlist(db: Session, user_id: str, symbol: str) -> str:
    symbol = normalize_symbol(symbol)
    item = _get_item(db, user_id, symbol)
    if not item:
        raise NotFoundError("Stock not found in watchlist", {"symbol": symbol})
    try:
        db.delete(item)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Failed to remove stock from watchlist", str(e))
    return symbol


def update_notes(db: Session, user_id: str, symbol: str, notes: Optional[str]) -> WatchlistItemOut:
    symbol = normalize_symbol(symbol)
    item = _get_item(db, user_id, symbol)
    if not item:
        raise NotFoundError("Stock not found in watchlist", {"symbol": symbol})
    item.notes = notes or None
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Failed to update watchlist item", str(e))
    db.refresh(item)
    return _to_out(item)
