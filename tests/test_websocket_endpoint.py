from models.connection import Connection
from realtime import manager

WS = "/api/v1/ws"


def test_connect_ping_and_subscribe(client, db_session):
    with client.websocket_connect(WS) as ws:
        hello = ws.receive_json()
        assert hello["type"] == "connected"
        connection_id = hello["connectionId"]
        assert manager.is_connected(connection_id)
        assert db_session.query(Connection).filter_by(connection_id=connection_id).count() == 1

        ws.send_text('{"action": "ping"}')
        assert ws.receive_json()["type"] == "pong"

        ws.send_json({"action": "subscribe", "type": "ticker", "symbol": "aapl"})
        subscribed = ws.receive_json()
        assert subscribed["type"] == "subscribed"
        assert subscribed["subscription"] == "ticker:AAPL"
        initial = ws.receive_json()
        assert initial == {"type": "ticker", "data": None, "timestamp": initial["timestamp"]}


def test_bad_frame_keeps_connection_open(client):
    with client.websocket_connect(WS) as ws:
        ws.receive_json()
        ws.send_text("hello")
        assert ws.receive_json() == {"error": "Invalid JSON message"}
        ws.send_json({"action": "ping"})
        assert ws.receive_json()["type"] == "pong"
