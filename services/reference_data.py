"""Reference data: exchange, sector, industry and base financial ratios per symbol.

Callers depend on the ReferenceDataProvider protocol; get_reference_data() picks the
implementation named by settings.REFERENCE_DATA_PROVIDER. StaticReferenceData holds
hand-maintained tables plus deterministic fallback rules for unknown symbols.
"""
from __future__ import annotations
from typing import Optional, Protocol, Dict, Any
from config import settings
from services.errors import ValidationError

class ReferenceDataProvider(Protocol):
    def get_exchange(self, symbol: str) -> str: ...
    def get_sector(self, symbol: str) -> str: ...
    def get_industry(self, symbol: str) -> str: ...
    def get_base_metrics(self, symbol: str) -> Optional[Dict[str, Any]]: ...

SUFFIX_EXCHANGES = {
    "AX": "ASX",
    "L": "LSE",
    "TO": "TSE",
    "HK": "HKEX",
    "DE": "XETRA",
    "PA": "EPA",
    "MI": "BIT",
    "MC": "BME",
    "AS": "AEX",
    "SW": "SIX",
    "SS": "SSE",
    "SZ": "SZSE",
}

NASDAQ_SYMBOLS = {
    "AAPL", "GOOGL", "GOOG", "MSFT", "AMZN", "TSLA", "META", "NVDA", "NFLX", "ADBE",
    "CRM", "INTC", "AMD", "QCOM", "CSCO", "ORCL", "PYPL", "UBER", "LYFT", "ZOOM",
}

SECTORS = {
    "AAPL": "Technology",
    "GOOGL": "Technology",
    "MSFT": "Technology",
    "AMZN": "Consumer Discretionary",
    "TSLA": "Automotive",
    "META": "Technology",
    "NVDA": "Technology",
    "NFLX": "Entertainment",
    "BRK-B": "Financial",
    "JPM": "Financial",
    "JNJ": "Healthcare",
    "V": "Financial",
    "PG": "Consumer Staples",
    "UNH": "Healthcare",
    "HD": "Retail",
    "MA": "Financial",
    "CBA.AX": "Financial",
    "BHP.AX": "Materials",
    "CSL.AX": "Healthcare",
    "ANZ.AX": "Financial",
    "WBC.AX": "Financial",
    "NAB.AX": "Financial",
    "WES.AX": "Consumer Staples",
    "TLS.AX": "Telecommunications",
}

INDUSTRIES = {
    "AAPL": "Consumer Electronics",
    "GOOGL": "Internet Content & Information",
    "MSFT": "Software - Infrastructure",
    "AMZN": "Internet Retail",
    "TSLA": "Auto Manufacturers",
    "META": "Internet Content & Information",
    "NVDA": "Semiconductors",
    "NFLX": "Entertainment",
    "CBA.AX": "Banks - Regional",
    "BHP.AX": "Other Industrial Metals & Mining",
    "CSL.AX": "Drug Manufacturers - Specialty & Generic",
}

BASE_METRICS: Dict[str, Dict[str, float]] = {
    "AAPL": {
        "trailingPE": 35.2, "forwardPE": 30.1, "dividendYield": 0.0043, "beta": 1.29,
        "priceToBook": 39.4, "returnOnAssets": 0.236, "returnOnEquity": 1.567,
        "debtToEquity": 1.73, "currentRatio": 0.95, "quickRatio": 0.83,
        "revenueGrowth": 0.023, "earningsGrowth": -0.035, "payoutRatio": 0.15,
    },
    "GOOGL": {
        "trailingPE": 27.8, "forwardPE": 23.4, "dividendYield": 0.0, "beta": 1.05,
        "priceToBook": 6.8, "returnOnAssets": 0.156, "returnOnEquity": 0.267,
        "debtToEquity": 0.11, "currentRatio": 2.43, "quickRatio": 2.43,
        "revenueGrowth": 0.134, "earningsGrowth": 0.234, "payoutRatio": 0.0,
    },
    "MSFT": {
        "trailingPE": 36.1, "forwardPE": 31.2, "dividendYield": 0.0068, "beta": 0.89,
        "priceToBook": 15.2, "returnOnAssets": 0.198, "returnOnEquity": 0.389,
        "debtToEquity": 0.35, "currentRatio": 1.27, "quickRatio": 1.25,
        "revenueGrowth": 0.156, "earningsGrowth": 0.183, "payoutRatio": 0.25,
    },
    "NFLX": {
        "trailingPE": 44.2, "forwardPE": 33.8, "dividendYield": 0.0, "beta": 1.23,
        "priceToBook": 12.1, "returnOnAssets": 0.089, "returnOnEquity": 0.234,
        "debtToEquity": 0.89, "currentRatio": 1.12, "quickRatio": 1.12,
        "revenueGrowth": 0.067, "earningsGrowth": 0.156, "payoutRatio": 0.0,
    },
}

class StaticReferenceData:
    def get_exchange(self, symbol: str) -> str:
        symbol = symbol.upper()
        if "." in symbol:
            suffix = symbol.rsplit(".", 1)[1]
            return SUFFIX_EXCHANGES.get(suffix, suffix)
        if symbol in NASDAQ_SYMBOLS:
            return "NASDAQ"
        return "NYSE"

    def get_sector(self, symbol: str) -> str:
        return SECTORS.get(symbol.upper(), "Other")

    def get_industry(self, symbol: str) -> str:
        return INDUSTRIES.get(symbol.upper(), "Other")

    def get_base_metrics(self, symbol: str) -> Optional[Dict[str, Any]]:
        metrics = BASE_METRICS.get(symbol.upper())
        return dict(metrics) if metrics else None

def get_reference_data(name: str | None = None) -> ReferenceDataProvider:
    provider = (name or settings.REFERENCE_DATA_PROVIDER or "").lower()
    if provider == "static":
        return StaticReferenceData()
    raise ValueError(f"Unsupported reference data provider {provider}")


def normalize_symbol(symbol: str | None) -> str:
    """Upper-cased, stripped ticker; empty input is a validation error."""
    cleaned = (symbol or "").strip().upper()
    if not cleaned:
        raise ValidationError("symbol is required")
    return cleaned
