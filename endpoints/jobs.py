"""Manual triggers for the scheduled batch jobs (the scheduler calls jobs/tasks.py)."""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from datetime import date
from typing import Optional
from database import get_db
from endpoints.logs import log_request
from endpoints.responses import create_response
from realtime import manager
from services.cleanup import purge_expired
from services.market_data import ingest_market_data
from services.movers import calculate_daily_movers
from services.quotes import QuoteService, get_quote_service
from services.snapshot import run_daily_snapshots

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("/market-data")
async def run_market_data(
    request: Request,
    db: Session = Depends(get_db),
    quotes: QuoteService = Depends(get_quote_service),
):
    await log_request(request, "Run market data fetch")
    result = await ingest_market_data(db, quotes, transport=manager)
    return create_response(200, result, f"Successfully processed {result['processed']} quotes")


@router.post("/movers/daily")
async def run_daily_movers(
    request: Request,
    run_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    await log_request(request, "Run daily movers", context={"date": run_date})
    # batch delays use time.sleep; keep them off the event loop
    result = await run_in_threadpool(calculate_daily_movers, db, run_date)
    return create_response(200, result, f"Calculated daily movers for {result['exchanges']} exchanges")


@router.post("/snapshots")
async def run_snapshots(
    request: Request,
    run_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    await log_request(request, "Run portfolio snapshots", context={"date": run_date})
    d = run_date or date.today()
    count = run_daily_snapshots(db, d)
    return create_response(200, {"snapshotsCreated": count, "date": d.isoformat()}, "Portfolio snapshots stored")


@router.post("/cleanup")
async def run_cleanup(request: Request, db: Session = Depends(get_db)):
    await log_request(request, "Run TTL cleanup")
    removed = purge_expired(db)
    return create_response(200, removed, "Expired rows removed")
