from pydantic import BaseModel
from typing import Optional

class ClientMessage(BaseModel):
    """Inbound WebSocket frame; type "movers" selects the movers topic, anything else a ticker."""
    action: str
    symbol: Optional[str] = None
    type: Optional[str] = None
    exchange: Optional[str] = None
