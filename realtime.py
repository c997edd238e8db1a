"""WebSocket connection registry and per-connection sends.

In-process only: the durable record of each connection (subscriptions, expiry)
lives in the connections table, this manager only maps ids to open sockets.
"""
from __future__ import annotations
from typing import Dict, Any
from fastapi import WebSocket, WebSocketDisconnect
import asyncio


class ConnectionGoneError(Exception):
    """The peer is no longer reachable; the caller should drop its record."""

    def __init__(self, connection_id: str):
        super().__init__(f"Connection {connection_id} is gone")
        self.connection_id = connection_id


class ConnectionManager:
    def __init__(self) -> None:
        self._conns: Dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()

    async def connect(self, connection_id: str, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._conns[connection_id] = websocket

    async def disconnect(self, connection_id: str):
        async with self._lock:
            self._conns.pop(connection_id, None)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._conns

    async def send(self, connection_id: str, message: Dict[str, Any]):
        async with self._lock:
            ws = self._conns.get(connection_id)
        if ws is None:
            raise ConnectionGoneError(connection_id)
        try:
            await ws.send_json(message)
        except (WebSocketDisconnect, ConnectionError) as e:
            await self.disconnect(connection_id)
            raise ConnectionGoneError(connection_id) from e
        except RuntimeError as e:
            # Starlette refuses sends after the close frame
            await self.disconnect(connection_id)
            raise ConnectionGoneError(connection_id) from e


manager = ConnectionManager()
