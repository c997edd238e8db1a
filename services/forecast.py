"""Price forecasts: stored rows when present, otherwise a naive drift extrapolation.

The naive model takes the mean close-to-close return over the most recent
daily bars and compounds it over the horizon. It is a placeholder, not a
forecasting model.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from config import settings
from models.forecast import Forecast
from schemas.market import ForecastOut
from services.bars import recent_daily_closes
from services.errors import ValidationError
from services.mock_data import (
    DATA_MOCK, DATA_NOT_AVAILABLE, DATA_OK, HORIZON_CONFIDENCE, HORIZON_DAYS, mock_forecasts,
)
from services.reference_data import normalize_symbol

logger = logging.getLogger(__name__)

HORIZONS = list(HORIZON_DAYS)
LOOKBACK_BARS = 30


def naive_forecast(closes: List[float], horizon: str) -> Optional[Tuple[float, float]]:
    """(target, confidence) from a close series (oldest first), or None with < 2 closes."""
    returns = [
        (curr - prev) / prev
        for prev, curr in zip(closes, closes[1:])
        if prev
    ]
    if not returns:
        return None
    mean = sum(returns) / len(returns)
    target = closes[-1] * (1 + mean) ** HORIZON_DAYS[horizon]
    return round(target, 2), HORIZON_CONFIDENCE[horizon]


def _stored(db: Session, symbol: str, horizon: Optional[str]) -> List[ForecastOut]:
    q = db.query(Forecast).filter(Forecast.symbol == symbol)
    if horizon:
        q = q.filter(Forecast.horizon == horizon)
    rows = q.all()
    rows.sort(key=lambda r: HORIZON_DAYS.get(r.horizon, 0))
    return [
        ForecastOut(symbol=r.symbol, horizon=r.horizon, target=r.target, confidence=r.confidence, timestamp=r.timestamp)
        for r in rows
    ]


def get_forecast(
    db: Session, symbol: str, horizon: str = "30d", include_all: bool = False
) -> Tuple[Union[ForecastOut, List[ForecastOut], None], str]:
    symbol = normalize_symbol(symbol)
    horizon = (horizon or "30d").lower()
    if horizon not in HORIZON_DAYS:
        raise ValidationError(f"Unsupported horizon: {horizon}", {"allowed": HORIZONS})
    horizons = HORIZONS if include_all else [horizon]

    found = {f.horizon: f for f in _stored(db, symbol, None if include_all else horizon)}
    missing = [h for h in horizons if h not in found]
    if missing:
        # stored rows win; the naive forecast only fills horizons without one
        closes = recent_daily_closes(db, symbol, LOOKBACK_BARS)
        now = datetime.now(timezone.utc).isoformat()
        for h in missing:
            result = naive_forecast(closes, h)
            if result is None:
                break
            found[h] = ForecastOut(symbol=symbol, horizon=h, target=result[0], confidence=result[1], timestamp=now)
    forecasts = [found[h] for h in horizons if h in found]
    status = DATA_OK
    if not forecasts:
        if settings.MOCK_DATA_ENABLED:
            forecasts, status = mock_forecasts(symbol, horizons), DATA_MOCK
        else:
            status = DATA_NOT_AVAILABLE
    if include_all:
        return forecasts, status
    return (forecasts[0] if forecasts else None), status
