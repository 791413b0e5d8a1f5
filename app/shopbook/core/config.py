from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "SHOPBOOK-REPORTS"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./shopbook.db"
    REPORTS_BUSINESS_TIMEZONE: str = "Asia/Dhaka"
    REPORTS_MAX_DATE_RANGE_DAYS: int = 90
    REPORTS_DEFAULT_FALLBACK_DAYS: int = 30
    REPORTS_PROFIT_FALLBACK_DAYS: int = 3650
    REPORTS_CACHE_TTL_SECONDS: int = 30
    REPORTS_CACHE_MAX_ENTRIES: int = 2000
    REPORTS_PAGE_DEFAULT_LIMIT: int = 20
    REPORTS_PAGE_MAX_LIMIT: int = 100
    REPORTS_CURSOR_HISTORY_MAX: int = 10
    REPORTS_TOP_PRODUCTS_MAX_LIMIT: int = 20
    REPORTS_LOW_STOCK_DEFAULT_THRESHOLD: int = 10
    REPORTS_FANOUT_WORKERS: int = 4
    REPORTS_COGS_BUSINESS_TYPES: list[str] = [
        "mini_grocery",
        "pharmacy",
        "clothing",
        "cosmetics_gift",
        "mini_wholesale",
    ]
    REPORTS_DEFAULT_PAYMENT_METHOD: str = "cash"
    METRICS_ENABLED: bool = True

settings = Settings()
