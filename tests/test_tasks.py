"""Scheduled tasks called in-process; they open their own sessions on the test engine."""

from conftest import make_user
from jobs import tasks
from models.connection import Connection
from models.portfolio_snapshot import PortfolioSnapshot


def test_beat_schedule_targets_registered_tasks():
    registered = set(tasks.celery_app.tasks)
    for entry in tasks.celery_app.conf.beat_schedule.values():
        assert entry["task"] in registered


def test_snapshot_task(db_session):
    make_user(db_session)
    db_session.commit()
    result = tasks.portfolio_snapshots("2026-10-17")
    assert result == {"snapshotsCreated": 1, "date": "2026-10-17"}
    assert db_session.query(PortfolioSnapshot).count() == 1


def test_purge_task(db_session):
    db_session.add(Connection(connection_id="old", subscriptions=[], expires_at=1))
    db_session.commit()
    result = tasks.purge_expired_rows()
    assert result["connections"] == 1
    assert db_session.query(Connection).count() == 0


def test_daily_movers_task_without_bars(db_session):
    assert tasks.calculate_movers_daily("2026-10-17") == {"processed": 0, "exchanges": 0, "date": "2026-10-17"}
