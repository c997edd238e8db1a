from sqlalchemy import Column, Integer, String, DateTime, Float
from database import Base
from datetime import datetime

class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    # Subject issued by the hosted OAuth provider; identity itself lives there
    identity_id = Column(String, unique=True, nullable=True, index=True)
    # Mutated only by the portfolio ledger
    virtual_balance = Column(Float, nullable=False, default=0.0)
    # Compare-and-swap token bumped on every ledger commit for this user
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
