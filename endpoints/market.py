from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
from config import settings
from database import get_db
from endpoints.logs import log_request
from endpoints.responses import create_response
from services.bars import query_bars
from services.forecast import get_forecast
from services.movers import PERIOD_DAILY, query_movers

router = APIRouter(tags=["market"])


@router.get("/movers")
async def get_movers(
    request: Request,
    period: str = PERIOD_DAILY,
    exchange: Optional[str] = None,
    sector: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    gainers: bool = False,
    losers: bool = False,
    db: Session = Depends(get_db),
):
    await log_request(request, "Get movers", context={"period": period, "exchange": exchange, "sector": sector})
    exchange = (exchange or settings.DEFAULT_EXCHANGE).upper()
    movers, status = query_movers(db, period, exchange, sector, limit, gainers, losers)
    message = f"{period.upper()} movers for {exchange}{f' in {sector} sector' if sector else ''} retrieved successfully"
    return create_response(200, movers, message, status)


@router.get("/bars/{symbol}")
async def get_bars(
    request: Request,
    symbol: str,
    timeframe: str = "daily",
    limit: Optional[int] = Query(None, ge=1),
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    db: Session = Depends(get_db),
):
    await log_request(request, "Get bars", context={"symbol": symbol, "timeframe": timeframe})
    bars, status = query_bars(db, symbol, timeframe, limit, startDate, endDate)
    return create_response(200, bars, f"{timeframe} bars for {symbol.upper()} retrieved successfully", status)


@router.get("/forecast/{symbol}")
async def forecast(
    request: Request,
    symbol: str,
    horizon: str = "30d",
    all: bool = False,
    db: Session = Depends(get_db),
):
    await log_request(request, "Get forecast", context={"symbol": symbol, "horizon": horizon, "all": all})
    result, status = get_forecast(db, symbol, horizon, all)
    message = (
        f"All forecasts for {symbol.upper()} retrieved successfully"
        if all else f"{horizon} forecast for {symbol.upper()} retrieved successfully"
    )
    return create_response(200, result, message, status)
