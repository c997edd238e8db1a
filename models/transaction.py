from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, Index
from database import Base


class Transaction(Base):
    """Append-only ledger entry for a single buy or sell."""
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_user_timestamp", "user_id", "timestamp"),
    )

    transaction_id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False)
    symbol = Column(String, nullable=False)
    type = Column(String(4), nullable=False)  # 'BUY' or 'SELL'
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    # Epoch seconds; removed by the TTL sweeper only
    expires_at = Column(Integer, nullable=False, index=True)
