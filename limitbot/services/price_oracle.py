"""
Price data boundary.

The monitor only needs `get_price(token_address)`, answering a price or None when
the token is unavailable. `DexScreenerOracle` is the default implementation; it
also exposes token metadata used to place orders by market cap.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from limitbot.config import settings
from limitbot.errors import TransientExternalError, ValidationError

logger = logging.getLogger(__name__)


class PriceOracle(Protocol):
    def get_price(self, token_address: str) -> Optional[float]: ...


@dataclass(frozen=True)
class TokenInfo:
    token_address: str
    symbol: str
    name: str
    price: float
    market_cap: float


def price_from_market_cap(target_market_cap: float, current_market_cap: float, current_price: float) -> float:
    """Price the token would trade at if its market cap moved to `target_market_cap`."""
    if not current_market_cap or current_market_cap <= 0:
        raise ValidationError("current market cap is unknown; set a target price instead")
    if target_market_cap <= 0:
        raise ValidationError("target market cap must be a positive number")
    return (target_market_cap / current_market_cap) * current_price


def market_cap_from_price(target_price: float, current_price: float, current_market_cap: float) -> float:
    if not current_price or current_price <= 0:
        raise ValidationError("current price is unknown")
    return (target_price / current_price) * current_market_cap


class DexScreenerOracle:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None, session=None):
        self.base_url = (base_url or settings.DEXSCREENER_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.PRICE_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _first_pair(self, token_address: str) -> Optional[dict]:
        try:
            resp = self.session.get(
                f"{self.base_url}/{token_address}",
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise TransientExternalError(f"DexScreener lookup failed for {token_address}: {e}") from e

        try:
            data = resp.json() or {}
        except ValueError:
            logger.warning("DexScreener returned a non-JSON body for %s", token_address)
            return None
        pairs = data.get("pairs") or []
        return pairs[0] if pairs else None

    def get_price(self, token_address: str) -> Optional[float]:
        pair = self._first_pair(token_address)
        if not pair or not pair.get("priceUsd"):
            logger.info("No DexScreener price for %s", token_address)
            return None
        try:
            price = float(pair["priceUsd"])
        except (TypeError, ValueError):
            logger.warning("Unparseable DexScreener price for %s: %r", token_address, pair.get("priceUsd"))
            return None
        return price if price > 0 else None

    def get_token_info(self, token_address: str) -> Optional[TokenInfo]:
        pair = self._first_pair(token_address)
        if not pair or not pair.get("priceUsd"):
            return None
        base = pair.get("baseToken") or {}
        info = TokenInfo(
            token_address=token_address,
            symbol=base.get("symbol") or token_address[:8],
            name=base.get("name") or "",
            price=float(pair["priceUsd"]),
            market_cap=float(pair.get("marketCap") or pair.get("fdv") or 0),
        )
        logger.info("Found %s: price $%s, market cap $%s", info.symbol, info.price, f"{info.market_cap:,.0f}")
        return info


class NativePriceFeed:
    """SOL/USD reference price used to convert legacy USD buy amounts.

    Starts from the configured price; `refresh()` pulls a fresh quote from
    CoinGecko and keeps the previous value when that fails.
    """

    def __init__(self, initial_price: Optional[float] = None, url: Optional[str] = None,
                 timeout: Optional[float] = None, session=None):
        self._price = float(initial_price if initial_price is not None else settings.SOL_PRICE_USD)
        self.url = url or settings.COINGECKO_PRICE_URL
        self.timeout = timeout if timeout is not None else settings.PRICE_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self._lock = threading.Lock()

    def current(self) -> float:
        with self._lock:
            return self._price

    def refresh(self) -> float:
        try:
            resp = self.session.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
            value = float(resp.json()["solana"]["usd"])
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.info("Using existing SOL price $%.2f (refresh failed: %s)", self.current(), e)
            return self.current()

        if value > 0:
            with self._lock:
                self._price = value
            logger.info("Updated SOL price: $%.2f", value)
        return self.current()
