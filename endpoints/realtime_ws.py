from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, status
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from database import get_db
from realtime import manager
from services import gateway
from services.errors import StorageError
import logging
import uuid

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def market_ws(websocket: WebSocket, db: Session = Depends(get_db)):
    connection_id = str(uuid.uuid4())
    await manager.connect(connection_id, websocket)
    try:
        gateway.register(db, connection_id)
    except StorageError as e:
        logger.error("Connect failed for %s: %s", connection_id, e.details)
        await manager.disconnect(connection_id)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    await gateway.push(db, manager, connection_id, {
        "type": "connected",
        "connectionId": connection_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })
    try:
        while True:
            raw = await websocket.receive_text()
            await gateway.handle_message(db, manager, connection_id, raw)
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(connection_id)
        try:
            gateway.remove(db, connection_id)
        except StorageError as e:
            # The TTL sweeper removes it later
            logger.error("Disconnect cleanup failed for %s: %s", connection_id, e.details)
