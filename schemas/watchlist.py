from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

class WatchlistAdd(BaseModel):
    symbol: str = Field(..., min_length=1)
    notes: Optional[str] = None

class WatchlistNotes(BaseModel):
    notes: Optional[str] = None

class WatchlistItemOut(BaseModel):
    """Stored item plus best-effort live fields; quote fields are None when unknown."""
    symbol: str
    addedAt: datetime
    notes: Optional[str] = None
    name: Optional[str] = None
    currentPrice: Optional[float] = None
    change: Optional[float] = None
    changePercent: Optional[float] = None
    volume: Optional[int] = None
    marketCap: Optional[float] = None
