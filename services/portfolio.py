"""Portfolio ledger: positions, cash balance and the append-only transaction log.

Functions:
- buy(db, user_id, symbol, quantity, price) -> BuyResult
- sell(db, user_id, symbol, quantity, price) -> SellResult
- get_portfolio(db, user_id, quotes) -> PortfolioSummary (async; live quotes, falls back to averagePrice)
- list_transactions(db, user_id, limit) -> List[TransactionOut]
- swap_balance(db, user_id, expected_version, delta, required) (compare-and-swap on the user row)

A buy or sell writes the position, the transaction row and the balance in one
database transaction. The balance update is conditional on the user's version
token, so a concurrent ledger write for the same user makes the later commit
fail instead of overwriting the balance.
"""
from __future__ import annotations
import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.position import Position
from models.transaction import Transaction
from models.user import User
from schemas.portfolio import BuyResult, SellResult, PortfolioSummary, PositionOut, TransactionOut
from services.errors import (
    ConcurrentUpdateError,
    InsufficientFundsError,
    InsufficientSharesError,
    NotFoundError,
    ServiceError,
    StorageError,
    ValidationError,
)
from services.reference_data import normalize_symbol

logger = logging.getLogger(__name__)


def _get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFoundError("User not found", {"userId": user_id})
    return user


def _get_position(db: Session, user_id: str, symbol: str) -> Optional[Position]:
    return db.query(Position).filter(Position.user_id == user_id, Position.symbol == symbol).first()


def _validate_trade(quantity: int, price: float) -> None:
    if quantity is None or quantity <= 0 or price is None or price <= 0:
        raise ValidationError("Valid symbol, quantity, and price are required")


def _expiry() -> int:
    return int(time.time()) + settings.TRANSACTION_TTL_DAYS * 24 * 60 * 60


def swap_balance(db: Session, user_id: str, expected_version: int, delta: float, required: float = 0.0) -> None:
    """Apply `delta` to the balance only if the row still carries `expected_version`.

    With `required` > 0 the update additionally demands balance >= required. On a
    miss the session is rolled back and the cause is re-read: an insufficient
    balance raises InsufficientFundsError, anything else ConcurrentUpdateError.
    """
    stmt = (
        update(User)
        .where(User.user_id == user_id, User.version == expected_version)
        .values(
            virtual_balance=User.virtual_balance + delta,
            version=User.version + 1,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if required > 0:
        stmt = stmt.where(User.virtual_balance >= required)
    result = db.execute(stmt)
    if result.rowcount == 1:
        return
    db.rollback()
    current = db.query(User).filter(User.user_id == user_id).first()
    if current is None:
        raise NotFoundError("User not found", {"userId": user_id})
    if required > 0 and current.virtual_balance < required:
        raise InsufficientFundsError(required, current.virtual_balance)
    logger.warning("Balance compare-and-swap lost for user %s (expected version %s)", user_id, expected_version)
    raise ConcurrentUpdateError(user_id)


def buy(db: Session, user_id: str, symbol: str, quantity: int, price: float) -> BuyResult:
    symbol = normalize_symbol(symbol)
    _validate_trade(quantity, price)
    user = _get_user(db, user_id)
    total_cost = quantity * price
    if user.virtual_balance < total_cost:
        raise InsufficientFundsError(total_cost, user.virtual_balance)
    expected_version = user.version
    now = datetime.utcnow()
    try:
        position = _get_position(db, user_id, symbol)
        if position:
            position.quantity += quantity
            position.total_invested += total_cost
            position.average_price = position.total_invested / position.quantity
            position.last_updated = now
        else:
            position = Position(
                user_id=user_id,
                symbol=symbol,
                quantity=quantity,
                average_price=price,
                total_invested=total_cost,
                last_updated=now,
            )
            db.add(position)
        txn = Transaction(
            transaction_id=str(uuid.uuid4()),
            user_id=user_id,
            symbol=symbol,
            type="BUY",
            quantity=quantity,
            price=price,
            total_amount=total_cost,
            timestamp=now,
            expires_at=_expiry(),
        )
        db.add(txn)
        swap_balance(db, user_id, expected_version, -total_cost, required=total_cost)
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Buy failed for user %s %s: %s", user_id, symbol, e)
        raise StorageError("Failed to buy stock", str(e))
    db.refresh(position)
    return BuyResult(
        transactionId=txn.transaction_id,
        symbol=symbol,
        quantity=quantity,
        price=price,
        totalAmount=total_cost,
        balance=_get_user(db, user_id).virtual_balance,
        position=PositionOut.from_model(position),
    )


def sell(db: Session, user_id: str, symbol: str, quantity: int, price: float) -> SellResult:
    symbol = normalize_symbol(symbol)
    _validate_trade(quantity, price)
    user = _get_user(db, user_id)
    position = _get_position(db, user_id, symbol)
    if not position:
        raise NotFoundError("No position found for this stock", {"symbol": symbol})
    if position.quantity < quantity:
        raise InsufficientSharesError(symbol, position.quantity, quantity)
    expected_version = user.version
    proceeds = quantity * price
    # Proportional cost basis; averagePrice is left alone on sells
    sold_investment = position.total_invested * quantity / position.quantity
    now = datetime.utcnow()
    closed = position.quantity == quantity
    try:
        if closed:
            db.delete(position)
        else:
            position.quantity -= quantity
            position.total_invested -= sold_investment
            position.last_updated = now
        txn = Transaction(
            transaction_id=str(uuid.uuid4()),
            user_id=user_id,
            symbol=symbol,
            type="SELL",
            quantity=quantity,
            price=price,
            total_amount=proceeds,
            timestamp=now,
            expires_at=_expiry(),
        )
        db.add(txn)
        swap_balance(db, user_id, expected_version, proceeds)
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Sell failed for user %s %s: %s", user_id, symbol, e)
        raise StorageError("Failed to sell stock", str(e))
    remaining = None
    if not closed:
        db.refresh(position)
        remaining = PositionOut.from_model(position)
    return SellResult(
        transactionId=txn.transaction_id,
        symbol=symbol,
        quantity=quantity,
        price=price,
        totalAmount=proceeds,
        balance=_get_user(db, user_id).virtual_balance,
        position=remaining,
        proceeds=proceeds,
        profitLoss=proceeds - sold_investment,
    )


def get_positions(db: Session, user_id: str) -> List[Position]:
    return db.query(Position).filter(Position.user_id == user_id).order_by(Position.symbol).all()


def value_position(position: Position, market_price: Optional[float]) -> PositionOut:
    """Mark a position at `market_price`, or at its average price when unknown."""
    out = PositionOut.from_model(position)
    if market_price is None:
        out.currentPrice = position.average_price
        out.currentValue = position.average_price * position.quantity
        out.profitLoss = 0.0
        out.profitLossPercent = 0.0
        return out
    out.currentPrice = market_price
    out.currentValue = market_price * position.quantity
    out.profitLoss = out.currentValue - position.total_invested
    out.profitLossPercent = (out.profitLoss / position.total_invested) * 100 if position.total_invested else 0.0
    return out


async def get_portfolio(db: Session, user_id: str, quotes) -> PortfolioSummary:
    user = _get_user(db, user_id)
    positions = get_positions(db, user_id)
    results = await asyncio.gather(*(quotes.get_quote(p.symbol) for p in positions), return_exceptions=True)
    valued: List[PositionOut] = []
    for position, quote in zip(positions, results):
        if isinstance(quote, BaseException):
            logger.warning("Failed to get price for %s: %s", position.symbol, quote)
            quote = None
        valued.append(value_position(position, quote.regularMarketPrice if quote else None))
    total_value = sum(p.currentValue or 0 for p in valued)
    total_invested = sum(p.totalInvested for p in valued)
    total_pl = total_value - total_invested
    return PortfolioSummary(
        totalValue=total_value,
        totalInvested=total_invested,
        totalProfitLoss=total_pl,
        totalProfitLossPercent=(total_pl / total_invested) * 100 if total_invested > 0 else 0.0,
        availableBalance=user.virtual_balance,
        positions=valued,
    )


def list_transactions(db: Session, user_id: str, limit: Optional[int] = None) -> List[TransactionOut]:
    """Most recent first; limit defaults to 50 and is capped at 100."""
    if limit is None:
        limit = settings.TRANSACTIONS_DEFAULT_LIMIT
    if limit <= 0:
        raise ValidationError("limit must be positive")
    limit = min(limit, settings.TRANSACTIONS_MAX_LIMIT)
    rows = (
        db.query(Transaction)
        .filter(Transaction.user_id == user_id)
        .order_by(Transaction.timestamp.desc())
        .limit(limit)
        .all()
    )
    return [TransactionOut.from_model(t) for t in rows]
