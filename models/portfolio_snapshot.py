from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Float, UniqueConstraint
from sqlalchemy.types import JSON as GenericJSON
from database import Base

class PortfolioSnapshot(Base):
    __tablename__ = 'portfolio_snapshots'
    __table_args__ = (
        UniqueConstraint('user_id', 'snapshot_date', name='uq_snapshot_user_date'),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), ForeignKey('users.user_id', ondelete='CASCADE'), index=True, nullable=False)
    snapshot_date = Column(Date, nullable=False)
    total_value = Column(Float, nullable=False, default=0)
    total_invested = Column(Float, nullable=False, default=0)
    profit_loss = Column(Float, nullable=False, default=0)
    profit_loss_percent = Column(Float, nullable=False, default=0)
    cash_balance = Column(Float, nullable=False, default=0)
    positions = Column(GenericJSON, nullable=False)  # [{symbol, quantity, averagePrice, marketPrice, currentValue}]
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
