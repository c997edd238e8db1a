from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
from database import get_db
from endpoints.logs import log_action, log_request
from endpoints.responses import create_response
from schemas.portfolio import TradeRequest
from services import portfolio as ledger
from services.quotes import QuoteService, get_quote_service
from services.snapshot import get_history

router = APIRouter(prefix="/users/{user_id}", tags=["portfolio"])


@router.get("/portfolio")
async def get_portfolio(
    request: Request,
    user_id: str,
    db: Session = Depends(get_db),
    quotes: QuoteService = Depends(get_quote_service),
):
    await log_request(request, "Get portfolio", user_id)
    summary = await ledger.get_portfolio(db, user_id, quotes)
    return create_response(200, summary, "Portfolio retrieved successfully")


@router.post("/portfolio/buy")
async def buy_stock(request: Request, user_id: str, body: TradeRequest, db: Session = Depends(get_db)):
    correlation_id = await log_request(request, "Buy stock", user_id, {"symbol": body.symbol, "quantity": body.quantity})
    result = ledger.buy(db, user_id, body.symbol, body.quantity, body.price)
    log_action("Stock purchased", user_id, correlation_id, {"transactionId": result.transactionId, "totalAmount": result.totalAmount})
    return create_response(200, result, "Stock purchased successfully")


@router.post("/portfolio/sell")
async def sell_stock(request: Request, user_id: str, body: TradeRequest, db: Session = Depends(get_db)):
    correlation_id = await log_request(request, "Sell stock", user_id, {"symbol": body.symbol, "quantity": body.quantity})
    result = ledger.sell(db, user_id, body.symbol, body.quantity, body.price)
    log_action("Stock sold", user_id, correlation_id, {"transactionId": result.transactionId, "profitLoss": result.profitLoss})
    return create_response(200, result, "Stock sold successfully")


@router.get("/transactions")
async def get_transactions(
    request: Request,
    user_id: str,
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    await log_request(request, "Get transactions", user_id)
    transactions = ledger.list_transactions(db, user_id, limit)
    return create_response(200, transactions, "Transactions retrieved successfully")


@router.get("/portfolio/history")
async def portfolio_history(request: Request, user_id: str, days: int = 30, db: Session = Depends(get_db)):
    await log_request(request, "Get portfolio history", user_id, {"days": days})
    history = get_history(db, user_id, days)
    return create_response(200, history, "Portfolio history retrieved successfully")
