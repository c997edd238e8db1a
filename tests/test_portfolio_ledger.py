"""Ledger unit tests against the SQLite session: positions, balance and transactions."""

import asyncio
import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import services.portfolio as portfolio_service
from conftest import StubQuotes, make_user
from database import Base
from models.position import Position
from models.transaction import Transaction
from models.user import User
from services.errors import (
    ConcurrentUpdateError,
    InsufficientFundsError,
    InsufficientSharesError,
    NotFoundError,
    ValidationError,
)
from services.portfolio import buy, get_portfolio, list_transactions, sell, swap_balance


def _balance(db, user_id):
    db.expire_all()
    return db.query(User).filter(User.user_id == user_id).one().virtual_balance


def test_buy_opens_position_and_debits_balance(db_session):
    user = make_user(db_session, balance=1000.0)
    result = buy(db_session, user.user_id, "test", 10, 50.0)
    assert result.symbol == "TEST"
    assert result.totalAmount == 500.0
    assert result.balance == 500.0
    assert result.position.quantity == 10
    assert result.position.averagePrice == 50.0
    assert result.position.totalInvested == 500.0
    txn = db_session.query(Transaction).filter_by(transaction_id=result.transactionId).one()
    assert txn.type == "BUY"
    assert txn.total_amount == 500.0


def test_second_buy_recomputes_weighted_average(db_session):
    user = make_user(db_session, balance=1000.0)
    buy(db_session, user.user_id, "TEST", 10, 50.0)
    result = buy(db_session, user.user_id, "TEST", 5, 60.0)
    assert result.position.quantity == 15
    assert result.position.totalInvested == pytest.approx(800.0)
    assert result.position.averagePrice == pytest.approx(53.33, abs=0.01)
    assert result.balance == pytest.approx(200.0)


def test_full_sell_closes_position_and_reports_profit(db_session):
    user = make_user(db_session, balance=1000.0)
    buy(db_session, user.user_id, "TEST", 10, 50.0)
    buy(db_session, user.user_id, "TEST", 5, 60.0)
    result = sell(db_session, user.user_id, "TEST", 15, 70.0)
    assert result.position is None
    assert result.proceeds == pytest.approx(1050.0)
    assert result.profitLoss == pytest.approx(250.0)
    assert result.balance == pytest.approx(1250.0)
    assert db_session.query(Position).filter_by(user_id=user.user_id).count() == 0
    assert db_session.query(Transaction).filter_by(user_id=user.user_id).count() == 3


def test_partial_sell_keeps_average_price(db_session):
    user = make_user(db_session, balance=1000.0)
    buy(db_session, user.user_id, "TEST", 10, 50.0)
    result = sell(db_session, user.user_id, "TEST", 4, 80.0)
    assert result.position.quantity == 6
    assert result.position.averagePrice == 50.0
    assert result.position.totalInvested == pytest.approx(300.0)
    assert result.profitLoss == pytest.approx(120.0)
    assert result.balance == pytest.approx(820.0)


def test_buy_with_insufficient_balance_changes_nothing(db_session):
    user = make_user(db_session, balance=100.0)
    with pytest.raises(InsufficientFundsError) as exc:
        buy(db_session, user.user_id, "TEST", 10, 50.0)
    assert exc.value.needed == 500.0
    assert exc.value.available == 100.0
    assert _balance(db_session, user.user_id) == 100.0
    assert db_session.query(Position).count() == 0
    assert db_session.query(Transaction).count() == 0


def test_sell_more_than_held_changes_nothing(db_session):
    user = make_user(db_session, balance=1000.0)
    buy(db_session, user.user_id, "TEST", 5, 10.0)
    with pytest.raises(InsufficientSharesError):
        sell(db_session, user.user_id, "TEST", 6, 10.0)
    assert _balance(db_session, user.user_id) == 950.0
    assert db_session.query(Position).filter_by(symbol="TEST").one().quantity == 5
    assert db_session.query(Transaction).count() == 1


def test_sell_without_position_is_not_found(db_session):
    user = make_user(db_session)
    with pytest.raises(NotFoundError):
        sell(db_session, user.user_id, "TEST", 1, 10.0)


def test_trade_for_unknown_user_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        buy(db_session, "missing", "TEST", 1, 10.0)


@pytest.mark.parametrize("quantity,price", [(0, 10.0), (-1, 10.0), (1, 0.0), (1, -5.0)])
def test_trade_rejects_non_positive_values(db_session, quantity, price):
    user = make_user(db_session)
    with pytest.raises(ValidationError):
        buy(db_session, user.user_id, "TEST", quantity, price)


def test_each_trade_bumps_version(db_session):
    user = make_user(db_session, balance=1000.0)
    buy(db_session, user.user_id, "TEST", 1, 10.0)
    sell(db_session, user.user_id, "TEST", 1, 10.0)
    db_session.expire_all()
    assert db_session.query(User).filter_by(user_id=user.user_id).one().version == 2


def test_swap_balance_with_stale_version_conflicts(db_session):
    user = make_user(db_session, balance=1000.0)
    stale_version = user.version
    buy(db_session, user.user_id, "TEST", 1, 100.0)
    with pytest.raises(ConcurrentUpdateError):
        swap_balance(db_session, user.user_id, stale_version, -50.0, required=50.0)
    assert _balance(db_session, user.user_id) == 900.0


def test_swap_balance_reports_insufficient_funds(db_session):
    user = make_user(db_session, balance=1000.0)
    with pytest.raises(InsufficientFundsError):
        swap_balance(db_session, user.user_id, user.version, -2000.0, required=2000.0)
    assert _balance(db_session, user.user_id) == 1000.0


def test_swap_balance_applies_delta(db_session):
    user = make_user(db_session, balance=1000.0)
    swap_balance(db_session, user.user_id, 0, 250.0)
    db_session.commit()
    assert _balance(db_session, user.user_id) == 1250.0


def test_list_transactions_newest_first_with_limit(db_session):
    user = make_user(db_session)
    base = datetime(2026, 10, 1, 12, 0, 0)
    for i, symbol in enumerate(["AAA", "BBB", "CCC"]):
        db_session.add(Transaction(
            transaction_id=str(uuid.uuid4()), user_id=user.user_id, symbol=symbol, type="BUY",
            quantity=1, price=10.0, total_amount=10.0, timestamp=base + timedelta(minutes=i), expires_at=0,
        ))
    db_session.commit()
    rows = list_transactions(db_session, user.user_id, limit=2)
    assert [t.symbol for t in rows] == ["CCC", "BBB"]
    assert len(list_transactions(db_session, user.user_id, limit=1000)) == 3
    with pytest.raises(ValidationError):
        list_transactions(db_session, user.user_id, limit=0)


def test_portfolio_values_at_quotes_and_falls_back_to_average(db_session):
    user = make_user(db_session, balance=10000.0)
    buy(db_session, user.user_id, "AAPL", 10, 100.0)
    buy(db_session, user.user_id, "ZZZZ", 5, 20.0)
    summary = asyncio.run(get_portfolio(db_session, user.user_id, StubQuotes({"AAPL": 150.0})))
    by_symbol = {p.symbol: p for p in summary.positions}
    assert by_symbol["AAPL"].currentValue == 1500.0
    assert by_symbol["AAPL"].profitLoss == 500.0
    assert by_symbol["AAPL"].profitLossPercent == 50.0
    assert by_symbol["ZZZZ"].currentPrice == 20.0
    assert by_symbol["ZZZZ"].profitLoss == 0.0
    assert summary.totalValue == 1600.0
    assert summary.totalInvested == 1100.0
    assert summary.totalProfitLoss == 500.0
    assert summary.availableBalance == 8900.0


@pytest.fixture()
def two_sessions(tmp_path):
    """Two sessions on separate connections to one file database."""
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    Maker = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = Maker(), Maker()
    yield first, second
    first.close()
    second.close()
    engine.dispose()


def _interleave(monkeypatch, competing_trade):
    """Run `competing_trade` to completion right after the first trade has read the user."""
    original = portfolio_service._get_position
    fired = []

    def racing(db, user_id, symbol):
        if not fired:
            fired.append(True)
            competing_trade()
        return original(db, user_id, symbol)

    monkeypatch.setattr(portfolio_service, "_get_position", racing)


def _ledger_state(db, user_id):
    db.expire_all()
    position = db.query(Position).filter(Position.user_id == user_id, Position.symbol == "TEST").first()
    return (
        db.query(User).filter(User.user_id == user_id).one().virtual_balance,
        position.quantity if position else 0,
        db.query(Transaction).filter(Transaction.user_id == user_id).count(),
    )


def test_buy_losing_the_balance_race_leaves_only_competing_trade(two_sessions, monkeypatch):
    first, second = two_sessions
    user_id = make_user(first, balance=1000.0).user_id
    _interleave(monkeypatch, lambda: buy(second, user_id, "TEST", 1, 100.0))

    with pytest.raises(ConcurrentUpdateError):
        buy(first, user_id, "TEST", 5, 100.0)

    assert _ledger_state(first, user_id) == (900.0, 1, 1)
    assert _ledger_state(second, user_id) == (900.0, 1, 1)


def test_sell_losing_the_balance_race_leaves_only_competing_trade(two_sessions, monkeypatch):
    first, second = two_sessions
    user_id = make_user(first, balance=1000.0).user_id
    buy(first, user_id, "TEST", 10, 10.0)
    _interleave(monkeypatch, lambda: sell(second, user_id, "TEST", 4, 10.0))

    with pytest.raises(ConcurrentUpdateError):
        sell(first, user_id, "TEST", 3, 10.0)

    assert _ledger_state(first, user_id) == (940.0, 6, 2)
    types = sorted(t.type for t in first.query(Transaction).filter(Transaction.user_id == user_id))
    assert types == ["BUY", "SELL"]
