"""Quote adapter tests over httpx.MockTransport; no network access."""

import asyncio
import json
import random

import httpx
import pytest

from services.quotes import QuoteService


def chart(symbol, closes, previous_close=100.0, volumes=None, meta_extra=None):
    meta = {"symbol": symbol, "previousClose": previous_close, "regularMarketPrice": 999.0, "shortName": f"{symbol} Corp"}
    meta.update(meta_extra or {})
    return {
        "chart": {
            "result": [{
                "meta": meta,
                "timestamp": [1700000000 + 60 * i for i in range(len(closes))],
                "indicators": {"quote": [{
                    "open": closes, "high": closes, "low": closes, "close": closes,
                    "volume": volumes or [100 * (i + 1) for i in range(len(closes))],
                }]},
            }],
            "error": None,
        }
    }


def service(handler):
    return QuoteService(base_url="https://quotes.test/chart", transport=httpx.MockTransport(handler), rng=random.Random(7))


def test_quote_uses_last_non_null_close():
    def handler(request):
        return httpx.Response(200, json=chart("AAPL", [101.0, 110.0, None]))

    quote = asyncio.run(service(handler).get_quote("AAPL"))
    assert quote.regularMarketPrice == 110.0
    assert quote.regularMarketChange == pytest.approx(10.0)
    assert quote.regularMarketChangePercent == pytest.approx(10.0)
    assert quote.regularMarketVolume == 200
    assert quote.regularMarketTime == 1700000060
    assert quote.shortName == "AAPL Corp"


def test_quote_falls_back_to_meta_price_without_closes():
    def handler(request):
        return httpx.Response(200, json=chart("MSFT", [None, None]))

    quote = asyncio.run(service(handler).get_quote("MSFT"))
    assert quote.regularMarketPrice == 999.0


def test_quote_without_previous_close_has_zero_change():
    def handler(request):
        return httpx.Response(200, json=chart("NEW", [5.0], previous_close=None))

    quote = asyncio.run(service(handler).get_quote("NEW"))
    assert quote.regularMarketChange == 0.0
    assert quote.regularMarketChangePercent == 0.0


@pytest.mark.parametrize("response", [
    httpx.Response(404, json={"chart": {"result": None}}),
    httpx.Response(200, content=b"not json"),
    httpx.Response(200, json={"chart": {"result": []}}),
    httpx.Response(200, json={"chart": {"result": [{"meta": {}, "indicators": {}}]}}),
])
def test_quote_upstream_trouble_is_none(response):
    quote = asyncio.run(service(lambda request: response).get_quote("BAD"))
    assert quote is None


def test_quote_network_error_is_none():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    assert asyncio.run(service(handler).get_quote("AAPL")) is None


def test_multiple_quotes_drop_failures_and_keep_order():
    def handler(request):
        symbol = request.url.path.rsplit("/", 1)[-1]
        if symbol == "BAD":
            return httpx.Response(500)
        return httpx.Response(200, json=chart(symbol, [1.0]))

    quotes = asyncio.run(service(handler).get_multiple_quotes(["MSFT", "BAD", "AAPL"]))
    assert [q.symbol for q in quotes] == ["MSFT", "AAPL"]


def test_historical_data_passes_range_and_interval():
    seen = {}

    def handler(request):
        seen.update(dict(request.url.params))
        return httpx.Response(200, json=chart("AAPL", [1.0, 2.0, 3.0]))

    series = asyncio.run(service(handler).get_historical_data("AAPL", "5d", "1h"))
    assert seen == {"range": "5d", "interval": "1h"}
    assert series.close == [1.0, 2.0, 3.0]
    assert len(series.timestamp) == 3


def test_detailed_data_uses_reference_metrics():
    def handler(request):
        return httpx.Response(200, json=chart("AAPL", [190.0], meta_extra={"regularMarketPrice": 190.0, "marketCap": 3.0e12}))

    detail = asyncio.run(service(handler).get_detailed_stock_data("AAPL"))
    assert detail.trailingPE == 35.2
    assert detail.sector == "Technology"
    assert detail.fullExchangeName == "NASDAQ"
    assert detail.summaryDetail.beta == 1.29
    assert detail.sharesOutstanding == pytest.approx(3.0e12 / 190.0)
    assert detail.financialData.returnOnEquity == 1.567


def test_detailed_data_for_unknown_symbol_uses_plausible_defaults():
    def handler(request):
        return httpx.Response(200, json=chart("XYZ", [10.0], meta_extra={"regularMarketPrice": 10.0}))

    detail = asyncio.run(service(handler).get_detailed_stock_data("XYZ"))
    assert 20 <= detail.trailingPE <= 50
    assert detail.sector == "Other"
    assert detail.financialData.totalRevenue is None
