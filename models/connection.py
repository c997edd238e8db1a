from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.types import JSON
from database import Base


class Connection(Base):
    __tablename__ = "connections"

    connection_id = Column(String(64), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    # "movers" or "ticker:<SYMBOL>", de-duplicated
    subscriptions = Column(JSON, nullable=False, default=list)
    expires_at = Column(Integer, nullable=False, index=True)
