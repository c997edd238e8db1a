"""Synthetic movers, bars and forecasts for local development.

Only reachable when settings.MOCK_DATA_ENABLED is on; responses built from these
rows carry dataStatus "mock" so they are never mistaken for ingested data.
"""
from __future__ import annotations
import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from schemas.market import BarOut, ForecastOut, MoverOut

DATA_OK = "ok"
DATA_NOT_AVAILABLE = "not_available"
DATA_MOCK = "mock"

HORIZON_DAYS = {"1d": 1, "7d": 7, "30d": 30, "90d": 90}
HORIZON_CONFIDENCE = {"1d": 0.95, "7d": 0.85, "30d": 0.75, "90d": 0.60}
_HORIZON_DRIFT = {"1d": 1.001, "7d": 1.02, "30d": 1.08, "90d": 1.15}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def mock_movers(
    exchange: str,
    period: str,
    limit: int,
    gainers_only: bool = False,
    losers_only: bool = False,
    sector: Optional[str] = None,
) -> List[MoverOut]:
    asx = exchange == "ASX"
    now = _now_iso()
    rows = [
        ("BHP.AX" if asx else "AAPL", "Materials", 45.20, 2.30, 5.36, 12_500_000),
        ("CBA.AX" if asx else "MSFT", "Financials", 102.50, 4.20, 4.27, 8_900_000),
        ("CSL.AX" if asx else "GOOGL", "Healthcare", 275.80, -8.50, -2.99, 1_200_000),
        ("WES.AX" if asx else "TSLA", "Consumer Staples", 58.45, -3.20, -5.19, 5_600_000),
    ]
    movers = [
        MoverOut(
            symbol=symbol,
            exchange=exchange,
            sector=sector or default_sector,
            price=price,
            change=change,
            changePercent=pct,
            volume=volume,
            rank=i + 1,
            period=period,
            timestamp=now,
        )
        for i, (symbol, default_sector, price, change, pct, volume) in enumerate(rows)
    ]
    if gainers_only:
        movers = [m for m in movers if m.changePercent > 0]
    elif losers_only:
        movers = [m for m in movers if m.changePercent < 0]
    return movers[:limit]


def mock_bars(symbol: str, timeframe: str, limit: int, rng: random.Random | None = None) -> List[BarOut]:
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)
    volatility = 0.02
    bars = []
    for i in range(min(limit, 10)):
        stamp = now - timedelta(days=i)
        base = 180 + (rng.random() - 0.5) * 20
        open_ = base * (1 + (rng.random() - 0.5) * volatility)
        bars.append(BarOut(
            symbol=symbol,
            timestamp=stamp.date().isoformat() if timeframe == "daily" else stamp.isoformat(),
            open=round(open_, 2),
            high=round(open_ * (1 + rng.random() * volatility), 2),
            low=round(open_ * (1 - rng.random() * volatility), 2),
            close=round(open_ * (1 + (rng.random() - 0.5) * volatility), 2),
            volume=rng.randint(10_000_000, 60_000_000),
        ))
    return bars


def mock_forecasts(symbol: str, horizons: List[str], rng: random.Random | None = None) -> List[ForecastOut]:
    rng = rng or random.Random()
    base = 180 + (rng.random() - 0.5) * 40
    now = _now_iso()
    return [
        ForecastOut(
            symbol=symbol,
            horizon=h,
            target=round(base * (_HORIZON_DRIFT[h] + (rng.random() - 0.5) * 0.1), 2),
            confidence=round(HORIZON_CONFIDENCE[h] + (rng.random() - 0.5) * 0.1, 2),
            timestamp=now,
        )
        for h in horizons
    ]
