"""Constants for the multibagger screener pipeline."""

MAX_SCORE: int = 110

FRESHNESS_HOURS: float = 24.0
PRICE_LOOKBACK_DAYS: int = 180
PRICE_HISTORY_PERIOD: str = "1y"
GROWTH_YEARS: int = 3
MIN_GROWTH_PERIODS: int = 4
STATEMENT_LIMIT: int = 5

FMP_MAX_CONCURRENCY: int = 5
FMP_MIN_INTERVAL_S: float = 0.24
GEMINI_MAX_CONCURRENCY: int = 2
GEMINI_MIN_INTERVAL_S: float = 1.0
YAHOO_MAX_CONCURRENCY: int = 2
YAHOO_MIN_INTERVAL_S: float = 0.5
EDGAR_MAX_CONCURRENCY: int = 2
EDGAR_MIN_INTERVAL_S: float = 0.15
ALPHAVANTAGE_MAX_CONCURRENCY: int = 1
ALPHAVANTAGE_MIN_INTERVAL_S: float = 12.0
ALPHAVANTAGE_DAILY_BUDGET: int = 25
ALPHAVANTAGE_BUDGET_MARGIN: int = 5

EDGAR_MAX_RETRIES: int = 3
EDGAR_INITIAL_BACKOFF_S: float = 1.0
HTTP_TIMEOUT_S: float = 30.0

DEFAULT_BULK_LIMIT: int = 25
MAX_BULK_LIMIT: int = 50
DEFAULT_TOP_LIMIT: int = 50
DEFAULT_TOP_MIN_PERCENTAGE: float = 40.0
DEFAULT_HISTORY_LIMIT: int = 10
PRESCREEN_MIN_SCORE: float = 6.0

DATA_DIR_NAME: str = "data"
CACHE_DIR_NAME: str = "cache"
EDGAR_DIR_NAME: str = "edgar"
HISTORY_DIR_NAME: str = "history"
UNIVERSE_DIR_NAME: str = "universe"
