"""Daily portfolio snapshots and the history read."""

import time
from datetime import date, timedelta

import pytest

from conftest import make_user
from models.bar import DailyBar
from models.portfolio_snapshot import PortfolioSnapshot
from models.position import Position
from services.errors import NotFoundError, ValidationError
from services.snapshot import get_history, run_daily_snapshots


def add_position(db, user_id, symbol, quantity, avg):
    db.add(Position(user_id=user_id, symbol=symbol, quantity=quantity, average_price=avg, total_invested=quantity * avg))


def add_close(db, symbol, day, close):
    db.add(DailyBar(symbol=symbol, date=day, open=close, high=close, low=close, close=close, volume=0, expires_at=int(time.time()) + 3600))


def test_snapshot_values_positions_at_latest_close(db_session):
    user = make_user(db_session, balance=500.0)
    add_position(db_session, user.user_id, "AAPL", 10, 100.0)
    add_position(db_session, user.user_id, "ZZZZ", 2, 50.0)
    add_close(db_session, "AAPL", "2026-10-15", 110.0)
    add_close(db_session, "AAPL", "2026-10-16", 120.0)
    add_close(db_session, "AAPL", "2026-10-20", 999.0)
    db_session.commit()

    assert run_daily_snapshots(db_session, date(2026, 10, 17)) == 1
    snap = db_session.query(PortfolioSnapshot).one()
    assert snap.snapshot_date == date(2026, 10, 17)
    assert snap.total_value == 1300.0
    assert snap.total_invested == 1100.0
    assert snap.profit_loss == 200.0
    assert snap.profit_loss_percent == pytest.approx(18.18, abs=0.01)
    assert snap.cash_balance == 500.0
    by_symbol = {p["symbol"]: p for p in snap.positions}
    assert by_symbol["AAPL"]["marketPrice"] == 120.0
    assert by_symbol["ZZZZ"]["marketPrice"] == 50.0


def test_rerun_replaces_same_day_snapshot(db_session):
    user = make_user(db_session, balance=500.0)
    run_daily_snapshots(db_session, date(2026, 10, 17))
    add_position(db_session, user.user_id, "AAPL", 1, 10.0)
    db_session.commit()
    run_daily_snapshots(db_session, date(2026, 10, 17))
    snaps = db_session.query(PortfolioSnapshot).all()
    assert len(snaps) == 1
    assert snaps[0].total_value == 10.0


def test_history_newest_first_within_window(db_session):
    user = make_user(db_session)
    today = date.today()
    for offset in (0, 3, 40):
        run_daily_snapshots(db_session, today - timedelta(days=offset))
    history = get_history(db_session, user.user_id, days=30)
    assert [h.date for h in history] == [today, today - timedelta(days=3)]
    assert len(get_history(db_session, user.user_id, days=60)) == 3


def test_history_validation(db_session):
    user = make_user(db_session)
    for days in (0, -1, 367):
        with pytest.raises(ValidationError):
            get_history(db_session, user.user_id, days=days)
    with pytest.raises(NotFoundError):
        get_history(db_session, "missing")
