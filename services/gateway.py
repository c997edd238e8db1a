"""WebSocket gateway: connection records, topic subscriptions and push fan-out.

A connection is registered with an empty subscription list, gains and loses
topics ("movers" or "ticker:<SYMBOL>") through subscribe/unsubscribe, and is
deleted on disconnect. A push that finds the peer gone deletes the record so
later fan-outs skip it; any other send failure propagates.

The transport is anything with `async send(connection_id, message)` that
raises realtime.ConnectionGoneError for a vanished peer (realtime.manager in
the app, a recording fake in tests).
"""
from __future__ import annotations
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.connection import Connection
from realtime import ConnectionGoneError
from schemas.realtime import ClientMessage
from services.bars import latest_intraday_bar
from services.errors import NotFoundError, StorageError, ValidationError
from services.movers import PERIOD_DAILY, query_movers

logger = logging.getLogger(__name__)

MOVERS_TOPIC = "movers"


class Transport(Protocol):
    async def send(self, connection_id: str, message: Dict[str, Any]) -> None: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _expiry() -> int:
    return int(time.time()) + settings.CONNECTION_TTL_HOURS * 60 * 60


def ticker_topic(symbol: str) -> str:
    return f"ticker:{symbol.upper()}"


def topic_for(type_: Optional[str], symbol: Optional[str]) -> str:
    if type_ == MOVERS_TOPIC:
        return MOVERS_TOPIC
    if not symbol or not symbol.strip():
        raise ValidationError("symbol is required for ticker subscriptions")
    return ticker_topic(symbol.strip())


def register(db: Session, connection_id: str) -> Connection:
    conn = Connection(
        connection_id=connection_id,
        created_at=datetime.utcnow(),
        subscriptions=[],
        expires_at=_expiry(),
    )
    try:
        db.merge(conn)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Failed to connect", str(e))
    logger.info("Connected %s", connection_id)
    return conn


def remove(db: Session, connection_id: str) -> bool:
    try:
        deleted = db.query(Connection).filter(Connection.connection_id == connection_id).delete()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Failed to disconnect", str(e))
    return bool(deleted)


def _get(db: Session, connection_id: str) -> Connection:
    conn = db.query(Connection).filter(Connection.connection_id == connection_id).first()
    if conn is None:
        raise NotFoundError("Connection not found", {"connectionId": connection_id})
    return conn


def _save_subscriptions(db: Session, conn: Connection, subscriptions: List[str], action: str) -> None:
    # Reassign so the JSON column is flagged dirty
    conn.subscriptions = subscriptions
    conn.expires_at = _expiry()
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Failed to {action}", str(e))


def subscribe(db: Session, connection_id: str, topic: str) -> List[str]:
    conn = _get(db, connection_id)
    current = list(conn.subscriptions or [])
    if topic not in current:
        current.append(topic)
    _save_subscriptions(db, conn, current, "subscribe")
    return current


def unsubscribe(db: Session, connection_id: str, topic: str) -> List[str]:
    conn = _get(db, connection_id)
    current = [s for s in (conn.subscriptions or []) if s != topic]
    _save_subscriptions(db, conn, current, "unsubscribe")
    return current


async def push(db: Session, transport: Transport, connection_id: str, message: Dict[str, Any]) -> bool:
    """Send once. Returns False (and drops the record) when the peer is gone."""
    try:
        await transport.send(connection_id, message)
    except ConnectionGoneError:
        logger.info("Connection %s is stale, removing", connection_id)
        remove(db, connection_id)
        return False
    return True


def subscribers(db: Session, topic: str) -> List[str]:
    now = int(time.time())
    rows = db.query(Connection).filter(Connection.expires_at > now).all()
    return [c.connection_id for c in rows if topic in (c.subscriptions or [])]


async def broadcast(db: Session, transport: Transport, topic: str, message: Dict[str, Any]) -> int:
    delivered = 0
    for connection_id in subscribers(db, topic):
        if await push(db, transport, connection_id, message):
            delivered += 1
    return delivered


async def _send_initial_data(db: Session, transport: Transport, connection_id: str, msg: ClientMessage, topic: str):
    if topic == MOVERS_TOPIC:
        movers, _ = query_movers(db, PERIOD_DAILY, msg.exchange or settings.DEFAULT_EXCHANGE)
        payload = {"type": "movers", "data": [m.model_dump() for m in movers], "timestamp": _now_iso()}
    else:
        bar = latest_intraday_bar(db, topic.split(":", 1)[1])
        payload = {"type": "ticker", "data": bar.model_dump() if bar else None, "timestamp": _now_iso()}
    await push(db, transport, connection_id, payload)


async def handle_message(db: Session, transport: Transport, connection_id: str, raw: str) -> None:
    """Dispatch one inbound frame; every outcome is answered on the same connection."""
    try:
        msg = ClientMessage.model_validate(json.loads(raw))
    except (ValueError, TypeError):
        await push(db, transport, connection_id, {"error": "Invalid JSON message"})
        return

    if msg.action == "ping":
        await push(db, transport, connection_id, {"type": "pong", "timestamp": _now_iso()})
        return
    if msg.action not in ("subscribe", "unsubscribe"):
        await push(db, transport, connection_id, {"error": f"Unknown action: {msg.action}"})
        return

    try:
        topic = topic_for(msg.type, msg.symbol)
        if msg.action == "subscribe":
            subscribe(db, connection_id, topic)
        else:
            unsubscribe(db, connection_id, topic)
    except (ValidationError, NotFoundError) as e:
        await push(db, transport, connection_id, {"error": e.message})
        return
    except StorageError as e:
        logger.error("%s failed for %s: %s", msg.action, connection_id, e.details)
        await push(db, transport, connection_id, {"error": e.message})
        return

    reply = "subscribed" if msg.action == "subscribe" else "unsubscribed"
    if not await push(db, transport, connection_id, {"type": reply, "subscription": topic, "timestamp": _now_iso()}):
        return
    if msg.action == "subscribe":
        await _send_initial_data(db, transport, connection_id, msg, topic)
