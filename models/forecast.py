from sqlalchemy import Column, String, Float
from database import Base


class Forecast(Base):
    __tablename__ = "forecasts"

    symbol = Column(String, primary_key=True)
    horizon = Column(String(8), primary_key=True)  # 1d, 7d, 30d, 90d
    target = Column(Float, nullable=False)
    confidence = Column(Float, nullable=False)
    timestamp = Column(String(32), nullable=False)
