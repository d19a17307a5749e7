import os
from dotenv import load_dotenv

load_dotenv()


def _bool_env(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    APP_NAME = "Pump Limit Order Bot"
    ENV = os.getenv("ENV", "development")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./orders.db")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Monitor cadence and external call bounds (seconds)
    MONITOR_INTERVAL_SECONDS = float(os.getenv("MONITOR_INTERVAL_SECONDS", "5"))
    PRICE_TIMEOUT_SECONDS = float(os.getenv("PRICE_TIMEOUT_SECONDS", "5"))
    TRADE_TIMEOUT_SECONDS = float(os.getenv("TRADE_TIMEOUT_SECONDS", "30"))

    # Order defaults (percent)
    DEFAULT_SLIPPAGE = float(os.getenv("DEFAULT_SLIPPAGE", "10"))
    MAX_SLIPPAGE = float(os.getenv("MAX_SLIPPAGE", "50"))

    # Reference SOL/USD price for legacy fiat-denominated buy orders
    SOL_PRICE_USD = float(os.getenv("SOL_PRICE_USD", "150"))
    COINGECKO_PRICE_URL = os.getenv(
        "COINGECKO_PRICE_URL",
        "https://api.coingecko.com/api/v3/simple/price?ids=solana&vs_currencies=usd",
    )

    # Trade venue
    PUMPPORTAL_API_KEY = os.getenv("PUMPPORTAL_API_KEY", "")
    PUMPPORTAL_BASE_URL = os.getenv("PUMPPORTAL_BASE_URL", "https://pumpportal.fun/api")
    PRIORITY_FEE = float(os.getenv("PRIORITY_FEE", "0.00005"))
    TRADE_POOL = os.getenv("TRADE_POOL", "auto")
    DRY_RUN = _bool_env("DRY_RUN")

    # Price data
    DEXSCREENER_URL = os.getenv("DEXSCREENER_URL", "https://api.dexscreener.com/latest/dex/tokens")


settings = Settings()
