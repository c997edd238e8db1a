"""Test configuration and fixtures.

Provides an isolated in-memory SQLite database (one shared connection through
StaticPool) with tables created and dropped around every test, a stub quote
service in place of the live chart API, and a recording WebSocket transport.
"""

import os
from typing import Dict, Generator, List, Optional

# Set env flags BEFORE importing application modules
os.environ.setdefault("DEBUG", "1")
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FILE", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database import Base, engine, get_db
from main import app  # imports routers & models
from realtime import ConnectionGoneError
from schemas.quote import Quote
from services.quotes import get_quote_service
from services.reference_data import StaticReferenceData
from models.user import User

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class StubQuotes:
    """Quote service double: known symbols resolve from `prices`, the rest are None."""

    def __init__(self, prices: Optional[Dict[str, float]] = None, change_percent: Optional[Dict[str, float]] = None):
        self.prices = dict(prices or {})
        self.change_percent = dict(change_percent or {})
        self.reference = StaticReferenceData()

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        price = self.prices.get(symbol)
        if price is None:
            return None
        pct = self.change_percent.get(symbol, 2.0)
        return Quote(
            symbol=symbol,
            regularMarketPrice=price,
            regularMarketChange=price * pct / 100,
            regularMarketChangePercent=pct,
            regularMarketVolume=1000,
            regularMarketTime=1700000000,
            shortName=f"{symbol} Inc",
        )

    async def get_multiple_quotes(self, symbols: List[str]) -> List[Quote]:
        quotes = [await self.get_quote(s) for s in symbols]
        return [q for q in quotes if q is not None]

    async def get_trending_stocks(self) -> List[Quote]:
        return await self.get_multiple_quotes(sorted(self.prices))

    async def get_detailed_stock_data(self, symbol: str):
        return await self.get_quote(symbol)

    async def get_historical_data(self, symbol: str, range_: str = "1mo", interval: str = "1d"):
        return None


class FakeTransport:
    """Records sends; ids in `gone` behave like vanished peers."""

    def __init__(self):
        self.sent: List[tuple] = []
        self.gone: set = set()
        self.fail_with: Optional[Exception] = None

    async def send(self, connection_id: str, message: dict) -> None:
        if connection_id in self.gone:
            raise ConnectionGoneError(connection_id)
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((connection_id, message))

    def messages_for(self, connection_id: str) -> List[dict]:
        return [m for cid, m in self.sent if cid == connection_id]


@pytest.fixture(autouse=True)
def create_test_db() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session(create_test_db) -> Generator:  # type: ignore
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def quotes() -> StubQuotes:
    return StubQuotes({"AAPL": 190.0, "MSFT": 410.0, "CBA.AX": 120.0})


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def client(db_session, quotes) -> Generator[TestClient, None, None]:  # type: ignore
    """Override FastAPI dependencies to use the SQLite session and stub quotes."""
    def _get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_quote_service] = lambda: quotes
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_quote_service, None)


def make_user(db, email="u1@example.com", balance=100000.0) -> User:
    u = User(user_id=f"user-{email}", email=email, first_name="Test", last_name="User", virtual_balance=balance, version=0)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u
