from datetime import datetime

from conftest import make_user
from models.bar import DailyBar, IntradayBar
from models.connection import Connection
from models.mover import Mover
from models.transaction import Transaction
from services.cleanup import purge_expired

NOW = 1_800_000_000


def test_purge_removes_only_expired_rows(db_session):
    user = make_user(db_session)
    for i, expires in enumerate((NOW - 1, NOW + 60)):
        db_session.add(Transaction(transaction_id=f"t{i}", user_id=user.user_id, symbol="A", type="BUY",
                                   quantity=1, price=1.0, total_amount=1.0, timestamp=datetime(2026, 10, 1), expires_at=expires))
        db_session.add(DailyBar(symbol="A", date=f"2026-10-0{i + 1}", open=1, high=1, low=1, close=1, volume=0, expires_at=expires))
        db_session.add(IntradayBar(symbol="A", timestamp=f"2026-10-01T10:0{i}:00+00:00", open=1, high=1, low=1, close=1, volume=0, expires_at=expires))
        db_session.add(Connection(connection_id=f"c{i}", subscriptions=[], expires_at=expires))
    db_session.add(Mover(pk="PERIOD#DAILY#EX#ASX", sk="RANK#0001#SYMB#A", symbol="A", exchange="ASX", sector="Other",
                         price=1.0, change=0.1, change_percent=10.0, volume=0, rank=1, timestamp="t", expires_at=NOW))
    db_session.commit()

    removed = purge_expired(db_session, now=NOW)
    assert removed == {"transactions": 1, "movers": 1, "bars_daily": 1, "bars_intraday": 1, "connections": 1}
    assert db_session.query(Transaction).one().transaction_id == "t1"
    assert db_session.query(Connection).one().connection_id == "c1"
    assert db_session.query(Mover).count() == 0
    assert purge_expired(db_session, now=NOW)["transactions"] == 0
