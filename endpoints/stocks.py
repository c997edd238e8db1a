from fastapi import APIRouter, Depends, Request
from endpoints.logs import log_request
from endpoints.responses import create_response
from services.errors import NotFoundError
from services.quotes import QuoteService, get_quote_service
from services.reference_data import normalize_symbol

router = APIRouter(tags=["stocks"])


@router.get("/stocks/trending")
async def trending_stocks(request: Request, quotes: QuoteService = Depends(get_quote_service)):
    await log_request(request, "Get trending stocks")
    stocks = await quotes.get_trending_stocks()
    return create_response(200, stocks, "Trending stocks retrieved successfully")


@router.get("/stock/{symbol}")
async def stock_details(request: Request, symbol: str, quotes: QuoteService = Depends(get_quote_service)):
    symbol = normalize_symbol(symbol)
    await log_request(request, "Get stock details", context={"symbol": symbol})
    details = await quotes.get_detailed_stock_data(symbol)
    if details is None:
        raise NotFoundError(f"Stock data not found for symbol: {symbol}")
    return create_response(200, details, f"Stock details for {symbol} retrieved successfully")
