from sqlalchemy import Column, Integer, String, Float, BigInteger
from database import Base


class DailyBar(Base):
    __tablename__ = "bars_daily"

    symbol = Column(String, primary_key=True)
    date = Column(String(10), primary_key=True)  # YYYY-MM-DD
    open = Column(Float, nullable=False)
    high = Column(Float, nullable=False)
    low = Column(Float, nullable=False)
    close = Column(Float, nullable=False)
    volume = Column(BigInteger, nullable=False, default=0)
    # Tagged at write time from reference data
    exchange = Column(String, nullable=True)
    sector = Column(String, nullable=True)
    expires_at = Column(Integer, nullable=False, index=True)


class IntradayBar(Base):
    __tablename__ = "bars_intraday"

    symbol = Column(String, primary_key=True)
    timestamp = Column(String(32), primary_key=True)  # ISO-8601 UTC
    open = Column(Float, nullable=False)
    high = Column(Float, nullable=False)
    low = Column(Float, nullable=False)
    close = Column(Float, nullable=False)
    volume = Column(BigInteger, nullable=False, default=0)
    expires_at = Column(Integer, nullable=False, index=True)
