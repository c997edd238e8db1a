from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from database import get_db
from endpoints.logs import log_request
from endpoints.responses import create_response
from schemas.watchlist import WatchlistAdd, WatchlistNotes
from services import watchlist as watchlist_service
from services.quotes import QuoteService, get_quote_service

router = APIRouter(prefix="/users/{user_id}/watchlist", tags=["watchlist"])


@router.get("")
async def get_watchlist(
    request: Request,
    user_id: str,
    db: Session = Depends(get_db),
    quotes: QuoteService = Depends(get_quote_service),
):
    await log_request(request, "Get watchlist", user_id)
    items = await watchlist_service.get_watchlist(db, user_id, quotes)
    return create_response(200, items, "Watchlist retrieved successfully")


@router.post("")
async def add_to_watchlist(
    request: Request,
    user_id: str,
    body: WatchlistAdd,
    db: Session = Depends(get_db),
    quotes: QuoteService = Depends(get_quote_service),
):
    await log_request(request, "Add to watchlist", user_id, {"symbol": body.symbol})
    item = await watchlist_service.add_to_watchlist(db, user_id, body.symbol, quotes, body.notes)
    return create_response(201, item, "Stock added to watchlist successfully")


@router.delete("/{symbol}")
async def remove_from_watchlist(request: Request, user_id: str, symbol: str, db: Session = Depends(get_db)):
    await log_request(request, "Remove from watchlist", user_id, {"symbol": symbol})
    removed = watchlist_service.remove_from_watchlist(db, user_id, symbol)
    return create_response(200, {"symbol": removed}, "Stock removed from watchlist successfully")


@router.put("/{symbol}")
async def update_watchlist_item(
    request: Request,
    user_id: str,
    symbol: str,
    body: WatchlistNotes,
    db: Session = Depends(get_db),
):
    await log_request(request, "Update watchlist item", user_id, {"symbol": symbol})
    item = watchlist_service.update_notes(db, user_id, symbol, body.notes)
    return create_response(200, item, "Watchlist item updated successfully")
