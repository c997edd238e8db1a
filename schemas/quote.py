from pydantic import BaseModel, ConfigDict
from typing import Optional, List

class Quote(BaseModel):
    symbol: str
    regularMarketPrice: float
    regularMarketChange: float
    regularMarketChangePercent: float
    regularMarketVolume: int = 0
    regularMarketTime: int
    shortName: str
    marketCap: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)

class FinancialData(BaseModel):
    totalCash: Optional[float] = None
    totalDebt: Optional[float] = None
    totalRevenue: Optional[float] = None
    grossProfits: Optional[float] = None
    operatingCashflow: Optional[float] = None
    freeCashflow: Optional[float] = None
    returnOnAssets: Optional[float] = None
    returnOnEquity: Optional[float] = None
    debtToEquity: Optional[float] = None
    currentRatio: Optional[float] = None
    quickRatio: Optional[float] = None
    revenueGrowth: Optional[float] = None
    earningsGrowth: Optional[float] = None

class SummaryDetail(BaseModel):
    previousClose: Optional[float] = None
    open: Optional[float] = None
    dayLow: Optional[float] = None
    dayHigh: Optional[float] = None
    fiftyTwoWeekLow: Optional[float] = None
    fiftyTwoWeekHigh: Optional[float] = None
    volume: Optional[int] = None
    averageVolume: Optional[float] = None
    marketCap: Optional[float] = None
    beta: Optional[float] = None
    trailingPE: Optional[float] = None
    forwardPE: Optional[float] = None
    dividendYield: Optional[float] = None
    dividendRate: Optional[float] = None
    payoutRatio: Optional[float] = None

class DetailedQuote(Quote):
    """Quote plus derived ratios.

    Ratios come from reference data when the symbol is known and from randomized
    plausible defaults otherwise; they are a stand-in, not real fundamentals.
    """
    longName: Optional[str] = None
    currency: str = "USD"
    sector: Optional[str] = None
    industry: Optional[str] = None
    fullExchangeName: Optional[str] = None
    fiftyTwoWeekLow: Optional[float] = None
    fiftyTwoWeekHigh: Optional[float] = None
    regularMarketDayHigh: Optional[float] = None
    regularMarketDayLow: Optional[float] = None
    regularMarketOpen: Optional[float] = None
    regularMarketPreviousClose: Optional[float] = None
    trailingPE: Optional[float] = None
    forwardPE: Optional[float] = None
    dividendYield: Optional[float] = None
    beta: Optional[float] = None
    bookValue: Optional[float] = None
    priceToBook: Optional[float] = None
    earningsPerShare: Optional[float] = None
    sharesOutstanding: Optional[float] = None
    averageVolume: Optional[float] = None
    financialData: Optional[FinancialData] = None
    summaryDetail: Optional[SummaryDetail] = None

class HistoricalSeries(BaseModel):
    symbol: str
    timestamp: List[int]
    open: List[Optional[float]]
    high: List[Optional[float]]
    low: List[Optional[float]]
    close: List[Optional[float]]
    volume: List[Optional[int]]
