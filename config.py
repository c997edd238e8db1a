from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application Settings
    PROJECT_NAME: str = "Stock Buster API"
    DEBUG: bool = True
    API_V1_STR: str = "/api/v1"
    # Value of the `source` field on every response envelope
    API_SOURCE: str = "stock-buster-api"
    CORS_ORIGINS: List[str] = ["*"]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./stock_buster.sqlite"

    LOG_LEVEL: str = "INFO"
    # Empty string disables the rotating file handler
    LOG_FILE: str = "logs/app.log"

    # Quote source (public chart API)
    QUOTE_API_BASE_URL: str = "https://query1.finance.yahoo.com/v8/finance/chart"
    QUOTE_TIMEOUT_SECONDS: float = 10.0
    REFERENCE_DATA_PROVIDER: str = "static"
    TRENDING_SYMBOLS: List[str] = [
        "AAPL", "GOOGL", "MSFT", "AMZN", "TSLA", "META", "NVDA", "NFLX",
        "BRK-B", "JPM", "JNJ", "V", "PG", "UNH", "HD", "MA",
        "CBA.AX", "BHP.AX", "CSL.AX", "ANZ.AX", "WBC.AX", "NAB.AX", "WES.AX", "TLS.AX",
    ]
    TRACKED_SYMBOLS: List[str] = [
        # US tech
        "AAPL", "GOOGL", "MSFT", "AMZN", "TSLA", "META", "NVDA", "NFLX",
        # US finance
        "JPM", "BAC", "WFC", "GS", "MS", "V", "MA", "AXP",
        # US others
        "BRK-B", "JNJ", "UNH", "HD", "DIS", "PG", "KO", "PEP",
        # ASX
        "CBA.AX", "BHP.AX", "CSL.AX", "ANZ.AX", "WBC.AX", "NAB.AX",
        "WES.AX", "TLS.AX", "WOW.AX", "MQG.AX", "RIO.AX", "FMG.AX",
        "TCL.AX", "ALL.AX", "WDS.AX", "GMG.AX", "REA.AX", "COH.AX",
    ]

    # Portfolio ledger
    STARTING_BALANCE: float = 100000.0
    TRANSACTION_TTL_DAYS: int = 30
    TRANSACTIONS_DEFAULT_LIMIT: int = 50
    TRANSACTIONS_MAX_LIMIT: int = 100

    # Market data
    DEFAULT_EXCHANGE: str = "ASX"
    MOVERS_MIN_CHANGE_PERCENT: float = 1.0
    MOVERS_TOP_N: int = 100
    INTRADAY_MOVERS_TOP_N: int = 50
    INTRADAY_MOVERS_ALL_TOP_N: int = 100
    MOVERS_TTL_DAYS: int = 7
    MOVERS_DEFAULT_LIMIT: int = 20
    MOVERS_MAX_LIMIT: int = 100
    DAILY_BAR_TTL_DAYS: int = 365
    INTRADAY_BAR_TTL_DAYS: int = 30
    BARS_DEFAULT_LIMIT: int = 30
    BARS_MAX_LIMIT: int = 1000
    # Throttling between upstream/store batches, not backpressure
    BATCH_SIZE: int = 25
    BATCH_DELAY_SECONDS: float = 0.1
    # Development aid: synthesize rows when nothing has been ingested yet
    MOCK_DATA_ENABLED: bool = False

    # WebSocket gateway
    CONNECTION_TTL_HOURS: int = 2

    # Scheduler
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    def _post_init(self):
        if self.MOVERS_MIN_CHANGE_PERCENT < 0:
            raise ValueError("MOVERS_MIN_CHANGE_PERCENT must not be negative")
        if self.BATCH_SIZE <= 0:
            raise ValueError("BATCH_SIZE must be positive")
        if not self.DEBUG and self.MOCK_DATA_ENABLED:
            raise ValueError("MOCK_DATA_ENABLED is a development aid and must be off in non-debug mode")

settings = Settings()
settings._post_init()
