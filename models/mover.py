from sqlalchemy import Column, Integer, String, Float, BigInteger
from database import Base


class Mover(Base):
    """Ranked mover row; the whole (period, exchange) set is replaced on every run."""
    __tablename__ = "movers"

    pk = Column(String, primary_key=True)  # PERIOD#<period>#EX#<exchange>
    sk = Column(String, primary_key=True)  # RANK#<0001>#SYMB#<symbol>
    symbol = Column(String, nullable=False)
    exchange = Column(String, nullable=False)
    sector = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    change = Column(Float, nullable=False)
    change_percent = Column(Float, nullable=False)
    volume = Column(BigInteger, nullable=False, default=0)
    rank = Column(Integer, nullable=False)
    date = Column(String(10), nullable=True)
    timestamp = Column(String(32), nullable=False)
    expires_at = Column(Integer, nullable=False, index=True)
