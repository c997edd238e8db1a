from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List

class TradeRequest(BaseModel):
    symbol: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    price: float = Field(..., gt=0)

class PositionOut(BaseModel):
    symbol: str
    quantity: int
    averagePrice: float
    totalInvested: float
    lastUpdated: datetime
    currentPrice: Optional[float] = None
    currentValue: Optional[float] = None
    profitLoss: Optional[float] = None
    profitLossPercent: Optional[float] = None

    @classmethod
    def from_model(cls, position) -> "PositionOut":
        return cls(
            symbol=position.symbol,
            quantity=position.quantity,
            averagePrice=position.average_price,
            totalInvested=position.total_invested,
            lastUpdated=position.last_updated,
        )

class PortfolioSummary(BaseModel):
    totalValue: float
    totalInvested: float
    totalProfitLoss: float
    totalProfitLossPercent: float
    availableBalance: float
    positions: List[PositionOut]

class BuyResult(BaseModel):
    transactionId: str
    symbol: str
    quantity: int
    price: float
    totalAmount: float
    balance: float
    position: Optional[PositionOut]

class SellResult(BuyResult):
    proceeds: float
    profitLoss: float

class TransactionOut(BaseModel):
    transactionId: str
    userId: str
    symbol: str
    type: str
    quantity: int
    price: float
    totalAmount: float
    timestamp: datetime

    @classmethod
    def from_model(cls, txn) -> "TransactionOut":
        return cls(
            transactionId=txn.transaction_id,
            userId=txn.user_id,
            symbol=txn.symbol,
            type=txn.type,
            quantity=txn.quantity,
            price=txn.price,
            totalAmount=txn.total_amount,
            timestamp=txn.timestamp,
        )

class SnapshotOut(BaseModel):
    date: date
    totalValue: float
    totalInvested: float
    profitLoss: float
    profitLossPercent: float
    cashBalance: float
    positions: list

    @classmethod
    def from_model(cls, snap) -> "SnapshotOut":
        return cls(
            date=snap.snapshot_date,
            totalValue=snap.total_value,
            totalInvested=snap.total_invested,
            profitLoss=snap.profit_loss,
            profitLossPercent=snap.profit_loss_percent,
            cashBalance=snap.cash_balance,
            positions=snap.positions or [],
        )
