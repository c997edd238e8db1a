from pydantic import BaseModel
from typing import Optional

class MoverOut(BaseModel):
    symbol: str
    exchange: str
    sector: str
    price: float
    change: float
    changePercent: float
    volume: int
    rank: int
    period: str
    timestamp: str
    date: Optional[str] = None

class BarOut(BaseModel):
    symbol: str
    timestamp: str
    open: float
    high: float
    low: float
    close: float
    volume: int
    exchange: Optional[str] = None
    sector: Optional[str] = None

class ForecastOut(BaseModel):
    symbol: str
    horizon: str
    target: float
    confidence: float
    timestamp: str
