"""Construct the order engine once at process start and hand it to consumers."""

import logging
from dataclasses import dataclass

from limitbot.config import settings
from limitbot.database import SessionLocal
from limitbot.services.executor import DryRunExecutor, PumpPortalExecutor
from limitbot.services.monitor import PriceMonitor
from limitbot.services.order_store import OrderStore
from limitbot.services.price_oracle import DexScreenerOracle, NativePriceFeed

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: OrderStore
    oracle: object
    executor: object
    native_price: NativePriceFeed
    monitor: PriceMonitor


def build_executor(cfg=settings):
    if cfg.DRY_RUN:
        logger.warning("DRY_RUN enabled: trades are simulated and nothing is submitted")
        return DryRunExecutor()
    if not cfg.PUMPPORTAL_API_KEY:
        logger.warning("PUMPPORTAL_API_KEY is not set; triggered orders will fail until it is configured")
    return PumpPortalExecutor(
        api_key=cfg.PUMPPORTAL_API_KEY,
        base_url=cfg.PUMPPORTAL_BASE_URL,
        timeout=cfg.TRADE_TIMEOUT_SECONDS,
        priority_fee=cfg.PRIORITY_FEE,
        pool=cfg.TRADE_POOL,
    )


def build_services(session_factory=None, cfg=settings, oracle=None, executor=None) -> Services:
    store = OrderStore(session_factory or SessionLocal, max_slippage=cfg.MAX_SLIPPAGE)
    oracle = oracle or DexScreenerOracle(base_url=cfg.DEXSCREENER_URL, timeout=cfg.PRICE_TIMEOUT_SECONDS)
    executor = executor or build_executor(cfg)
    native_price = NativePriceFeed(initial_price=cfg.SOL_PRICE_USD, url=cfg.COINGECKO_PRICE_URL,
                                   timeout=cfg.PRICE_TIMEOUT_SECONDS)
    monitor = PriceMonitor(
        store,
        oracle,
        executor,
        interval_seconds=cfg.MONITOR_INTERVAL_SECONDS,
        price_timeout=cfg.PRICE_TIMEOUT_SECONDS,
        trade_timeout=cfg.TRADE_TIMEOUT_SECONDS,
        default_slippage=cfg.DEFAULT_SLIPPAGE,
        native_price=native_price.current,
    )
    return Services(store=store, oracle=oracle, executor=executor, native_price=native_price, monitor=monitor)
