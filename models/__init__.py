"""Import every model so Base.metadata sees all tables."""
from models.user import User
from models.position import Position
from models.transaction import Transaction
from models.watchlist import WatchlistItem
from models.bar import DailyBar, IntradayBar
from models.mover import Mover
from models.forecast import Forecast
from models.connection import Connection
from models.portfolio_snapshot import PortfolioSnapshot

__all__ = [
    "User",
    "Position",
    "Transaction",
    "WatchlistItem",
    "DailyBar",
    "IntradayBar",
    "Mover",
    "Forecast",
    "Connection",
    "PortfolioSnapshot",
]
