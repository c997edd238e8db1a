"""Ingestion run: intraday bars, today's daily bar, intraday movers and pushes."""

import asyncio
from datetime import datetime, timezone

from conftest import StubQuotes
from models.bar import DailyBar, IntradayBar
from models.mover import Mover
from schemas.quote import HistoricalSeries
from services import gateway
from services.market_data import ingest_market_data

NOW = datetime(2026, 10, 17, 5, 0, tzinfo=timezone.utc)


class HistoryQuotes(StubQuotes):
    async def get_historical_data(self, symbol, range_="1mo", interval="1d"):
        return HistoricalSeries(symbol=symbol, timestamp=[1], open=[185.0], high=[191.0], low=[184.0],
                                close=[190.0], volume=[5000])


def quotes():
    return StubQuotes(
        {"AAPL": 190.0, "CBA.AX": 120.0, "FLAT": 10.0},
        change_percent={"AAPL": 3.0, "CBA.AX": -4.0, "FLAT": 0.0},
    )


def run(db, source, transport=None, symbols=("AAPL", "CBA.AX", "FLAT", "GONE")):
    return asyncio.run(ingest_market_data(db, source, symbols=list(symbols), transport=transport, now=NOW, delay=0))


def test_ingest_writes_bars_and_movers(db_session):
    summary = run(db_session, quotes())
    assert summary["processed"] == 3
    assert summary["dailyBars"] == 3
    assert summary["exchanges"] == 2
    assert summary["timestamp"] == NOW.isoformat()

    assert db_session.query(IntradayBar).count() == 3
    daily = db_session.query(DailyBar).filter_by(symbol="AAPL", date="2026-10-17").one()
    assert (daily.open, daily.close, daily.exchange, daily.sector) == (190.0, 190.0, "NASDAQ", "Technology")

    pks = {m.pk for m in db_session.query(Mover).all()}
    assert pks == {"PERIOD#INTRADAY#EX#NASDAQ", "PERIOD#INTRADAY#EX#ASX", "PERIOD#INTRADAY#EX#ALL"}
    ranked_all = db_session.query(Mover).filter_by(pk="PERIOD#INTRADAY#EX#ALL").order_by(Mover.sk).all()
    assert [m.symbol for m in ranked_all] == ["CBA.AX", "AAPL"]
    assert db_session.query(Mover).filter_by(symbol="FLAT").count() == 0


def test_daily_bar_prefers_history_ohlc(db_session):
    run(db_session, HistoryQuotes({"AAPL": 190.0}), symbols=["AAPL"])
    daily = db_session.query(DailyBar).filter_by(symbol="AAPL").one()
    assert (daily.open, daily.high, daily.low, daily.close, daily.volume) == (185.0, 191.0, 184.0, 190.0, 5000)


def test_ingest_pushes_to_subscribers(db_session, transport):
    gateway.register(db_session, "c1")
    gateway.register(db_session, "c2")
    gateway.subscribe(db_session, "c1", "ticker:AAPL")
    gateway.subscribe(db_session, "c2", "movers")

    summary = run(db_session, quotes(), transport=transport)
    assert summary["pushed"] == 2
    ticker = transport.messages_for("c1")
    assert len(ticker) == 1
    assert ticker[0]["type"] == "ticker"
    assert ticker[0]["data"]["symbol"] == "AAPL"
    assert ticker[0]["data"]["price"] == 190.0
    movers = transport.messages_for("c2")
    assert [m["symbol"] for m in movers[0]["data"]] == ["CBA.AX", "AAPL"]


def test_no_quotes_writes_nothing(db_session):
    summary = run(db_session, StubQuotes({}))
    assert summary == {"processed": 0, "timestamp": NOW.isoformat()}
    assert db_session.query(IntradayBar).count() == 0
    assert db_session.query(Mover).count() == 0
