"""Quote source adapter over the public chart API.

Functions never raise for upstream trouble: network, HTTP and parse failures are
logged and surface as None (single lookups) or are dropped (multi lookups).
Nothing is cached and nothing is retried.
"""
from __future__ import annotations
import asyncio
import logging
import random
import time
from typing import Any, Dict, List, Optional

import httpx

from config import settings
from schemas.quote import Quote, DetailedQuote, FinancialData, SummaryDetail, HistoricalSeries
from services.reference_data import ReferenceDataProvider, get_reference_data

logger = logging.getLogger(__name__)


def _last_valid(values: List[Any] | None) -> Optional[int]:
    """Index of the last non-null entry, or None."""
    if not values:
        return None
    for i in range(len(values) - 1, -1, -1):
        if values[i] is not None:
            return i
    return None


class QuoteService:
    def __init__(
        self,
        reference: ReferenceDataProvider | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.reference = reference or get_reference_data()
        self.base_url = (base_url or settings.QUOTE_API_BASE_URL).rstrip("/")
        # Injected in tests (httpx.MockTransport)
        self._transport = transport
        self._rng = rng or random.Random()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=settings.QUOTE_TIMEOUT_SECONDS,
            headers={"User-Agent": "Mozilla/5.0 (stock-buster)"},
        )

    async def _fetch_chart(self, symbol: str, params: Dict[str, str] | None = None) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/{symbol}"
        try:
            async with self._client() as client:
                response = await client.get(url, params=params)
            if response.status_code != 200:
                logger.error("Quote API error for %s: HTTP %s", symbol, response.status_code)
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Quote API request failed for %s: %s", symbol, e)
            return None
        results = ((data or {}).get("chart") or {}).get("result") or []
        if not results or not isinstance(results[0], dict):
            logger.error("No chart data returned for %s", symbol)
            return None
        return results[0]

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        result = await self._fetch_chart(symbol)
        if result is None:
            return None
        try:
            meta = result.get("meta") or {}
            quote = ((result.get("indicators") or {}).get("quote") or [None])[0]
            if not meta or not quote:
                logger.error("Invalid chart structure for %s", symbol)
                return None
            closes = quote.get("close") or []
            idx = _last_valid(closes)
            if idx is not None:
                price = float(closes[idx])
            elif meta.get("regularMarketPrice") is not None:
                price = float(meta["regularMarketPrice"])
            else:
                logger.error("No price in chart data for %s", symbol)
                return None
            previous_close = meta.get("previousClose") or meta.get("chartPreviousClose")
            change = price - previous_close if previous_close else 0.0
            change_percent = (change / previous_close) * 100 if previous_close else 0.0
            volumes = quote.get("volume") or []
            timestamps = result.get("timestamp") or []
            volume = volumes[idx] if idx is not None and idx < len(volumes) else None
            market_time = timestamps[idx] if idx is not None and idx < len(timestamps) else meta.get("regularMarketTime")
            return Quote(
                symbol=meta.get("symbol") or symbol,
                regularMarketPrice=price,
                regularMarketChange=change,
                regularMarketChangePercent=change_percent,
                regularMarketVolume=int(volume or meta.get("regularMarketVolume") or 0),
                regularMarketTime=int(market_time or time.time()),
                shortName=meta.get("shortName") or meta.get("symbol") or symbol,
                marketCap=meta.get("marketCap"),
            )
        except (TypeError, ValueError, KeyError, IndexError) as e:
            logger.error("Failed to parse quote for %s: %s", symbol, e)
            return None

    async def get_multiple_quotes(self, symbols: List[str]) -> List[Quote]:
        """Best-effort: failed lookups are dropped, order of the input is kept."""
        results = await asyncio.gather(*(self.get_quote(s) for s in symbols), return_exceptions=True)
        quotes: List[Quote] = []
        for symbol, result in zip(symbols, results):
            if isinstance(result, BaseException):
                logger.warning("Quote lookup raised for %s: %s", symbol, result)
                continue
            if result is not None:
                quotes.append(result)
        return quotes

    async def get_historical_data(self, symbol: str, range_: str = "1mo", interval: str = "1d") -> Optional[HistoricalSeries]:
        result = await self._fetch_chart(symbol, params={"range": range_, "interval": interval})
        if result is None:
            return None
        try:
            quote = ((result.get("indicators") or {}).get("quote") or [{}])[0] or {}
            timestamps = result.get("timestamp") or []
            return HistoricalSeries(
                symbol=(result.get("meta") or {}).get("symbol") or symbol,
                timestamp=timestamps,
                open=quote.get("open") or [],
                high=quote.get("high") or [],
                low=quote.get("low") or [],
                close=quote.get("close") or [],
                volume=quote.get("volume") or [],
            )
        except (TypeError, ValueError) as e:
            logger.error("Failed to parse historical data for %s: %s", symbol, e)
            return None

    async def get_trending_stocks(self) -> List[Quote]:
        return await self.get_multiple_quotes(list(settings.TRENDING_SYMBOLS))

    async def get_detailed_stock_data(self, symbol: str) -> Optional[DetailedQuote]:
        result = await self._fetch_chart(symbol)
        if result is None:
            return None
        meta = result.get("meta")
        if not meta:
            logger.error("Invalid chart structure for %s", symbol)
            return None
        try:
            price = float(meta.get("regularMarketPrice") or 0)
            previous_close = float(meta.get("previousClose") or meta.get("chartPreviousClose") or 0)
            change = price - previous_close
            change_percent = (change / previous_close) * 100 if previous_close else 0.0
            market_cap = meta.get("marketCap")
            metrics = self._metrics_for(symbol)
            return DetailedQuote(
                symbol=meta.get("symbol") or symbol,
                regularMarketPrice=price,
                regularMarketChange=change,
                regularMarketChangePercent=change_percent,
                regularMarketVolume=int(meta.get("regularMarketVolume") or 0),
                regularMarketTime=int(meta.get("regularMarketTime") or time.time()),
                shortName=meta.get("symbol") or symbol,
                longName=meta.get("longName") or meta.get("shortName") or meta.get("symbol") or symbol,
                currency=meta.get("currency") or "USD",
                sector=self.reference.get_sector(symbol),
                industry=self.reference.get_industry(symbol),
                fullExchangeName=meta.get("exchangeName") or self.reference.get_exchange(symbol),
                marketCap=market_cap,
                fiftyTwoWeekLow=meta.get("fiftyTwoWeekLow"),
                fiftyTwoWeekHigh=meta.get("fiftyTwoWeekHigh"),
                regularMarketDayHigh=meta.get("regularMarketDayHigh"),
                regularMarketDayLow=meta.get("regularMarketDayLow"),
                regularMarketOpen=meta.get("regularMarketOpen"),
                regularMarketPreviousClose=meta.get("previousClose"),
                **self._financial_metrics(metrics, market_cap, price),
                summaryDetail=SummaryDetail(
                    previousClose=meta.get("previousClose"),
                    open=meta.get("regularMarketOpen"),
                    dayLow=meta.get("regularMarketDayLow"),
                    dayHigh=meta.get("regularMarketDayHigh"),
                    fiftyTwoWeekLow=meta.get("fiftyTwoWeekLow"),
                    fiftyTwoWeekHigh=meta.get("fiftyTwoWeekHigh"),
                    volume=meta.get("regularMarketVolume"),
                    averageVolume=meta.get("averageVolume"),
                    marketCap=market_cap,
                    beta=metrics["beta"],
                    trailingPE=metrics["trailingPE"],
                    forwardPE=metrics["forwardPE"],
                    dividendYield=metrics["dividendYield"],
                    dividendRate=price * metrics["dividendYield"] if metrics["dividendYield"] and price else None,
                    payoutRatio=metrics["payoutRatio"],
                ),
            )
        except (TypeError, ValueError) as e:
            logger.error("Failed to parse detailed data for %s: %s", symbol, e)
            return None

    def _metrics_for(self, symbol: str) -> Dict[str, float]:
        known = self.reference.get_base_metrics(symbol)
        if known:
            return known
        r = self._rng.random
        return {
            "trailingPE": 20 + r() * 30,
            "forwardPE": 18 + r() * 25,
            "dividendYield": r() * 0.05,
            "beta": 0.8 + r() * 0.8,
            "priceToBook": 2 + r() * 15,
            "returnOnAssets": 0.05 + r() * 0.15,
            "returnOnEquity": 0.1 + r() * 0.3,
            "debtToEquity": r() * 1.5,
            "currentRatio": 1 + r() * 1.5,
            "quickRatio": 0.8 + r() * 1.2,
            "revenueGrowth": -0.1 + r() * 0.3,
            "earningsGrowth": -0.2 + r() * 0.4,
            "payoutRatio": r() * 0.6,
        }

    def _financial_metrics(self, metrics: Dict[str, float], market_cap: Optional[float], price: float) -> Dict[str, Any]:
        r = self._rng.random

        def scaled(low: float, spread: float) -> Optional[float]:
            return market_cap * (low + r() * spread) if market_cap else None

        return {
            "trailingPE": metrics["trailingPE"],
            "forwardPE": metrics["forwardPE"],
            "dividendYield": metrics["dividendYield"],
            "beta": metrics["beta"],
            "priceToBook": metrics["priceToBook"],
            "bookValue": price * (0.3 + r() * 0.4) if price else None,
            "earningsPerShare": price / (metrics["trailingPE"] or 20) if price else None,
            "sharesOutstanding": market_cap / price if market_cap and price else None,
            "averageVolume": 10_000_000 + r() * 50_000_000,
            "financialData": FinancialData(
                totalRevenue=scaled(0.5, 1.5),
                grossProfits=scaled(0.2, 0.3),
                operatingCashflow=scaled(0.15, 0.2),
                freeCashflow=scaled(0.1, 0.15),
                totalCash=scaled(0.1, 0.2),
                totalDebt=scaled(0.05, 0.15),
                returnOnAssets=metrics["returnOnAssets"],
                returnOnEquity=metrics["returnOnEquity"],
                debtToEquity=metrics["debtToEquity"],
                currentRatio=metrics["currentRatio"],
                quickRatio=metrics["quickRatio"],
                revenueGrowth=metrics["revenueGrowth"],
                earningsGrowth=metrics["earningsGrowth"],
            ),
        }


_quote_service: QuoteService | None = None

def get_quote_service() -> QuoteService:
    """FastAPI dependency; tests override it with a stub."""
    global _quote_service
    if _quote_service is None:
        _quote_service = QuoteService()
    return _quote_service
