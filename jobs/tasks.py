"""Celery tasks for the batch jobs, plus the beat schedule that triggers them.

Each task opens its own session; async jobs run under asyncio.run. Run with:
    celery -A jobs.tasks worker --beat
"""
import asyncio
from datetime import date
from celery import Celery
from celery.schedules import crontab

from config import settings
from database import SessionLocal
from services.cleanup import purge_expired
from services.market_data import ingest_market_data
from services.movers import calculate_daily_movers
from services.quotes import QuoteService
from services.snapshot import run_daily_snapshots

celery_app = Celery('stock_buster', broker=settings.CELERY_BROKER_URL)
celery_app.conf.beat_schedule = {
    'fetch-market-data': {'task': 'jobs.tasks.fetch_market_data', 'schedule': crontab(minute='*/5')},
    'calculate-daily-movers': {'task': 'jobs.tasks.calculate_movers_daily', 'schedule': crontab(hour=22, minute=0)},
    'portfolio-snapshots': {'task': 'jobs.tasks.portfolio_snapshots', 'schedule': crontab(hour=23, minute=0)},
    'purge-expired': {'task': 'jobs.tasks.purge_expired_rows', 'schedule': crontab(minute=15)},
}

@celery_app.task
def fetch_market_data():
    db = SessionLocal()
    try:
        # Pushes only reach sockets held by the API process, so the worker skips them
        return asyncio.run(ingest_market_data(db, QuoteService()))
    finally:
        db.close()

@celery_app.task
def calculate_movers_daily(run_date: str | None = None):
    db = SessionLocal()
    try:
        return calculate_daily_movers(db, date.fromisoformat(run_date) if run_date else None)
    finally:
        db.close()

@celery_app.task
def portfolio_snapshots(run_date: str | None = None):
    db = SessionLocal()
    try:
        d = date.fromisoformat(run_date) if run_date else date.today()
        return {"snapshotsCreated": run_daily_snapshots(db, d), "date": d.isoformat()}
    finally:
        db.close()

@celery_app.task
def purge_expired_rows():
    db = SessionLocal()
    try:
        return purge_expired(db)
    finally:
        db.close()
