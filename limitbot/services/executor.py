# limitbot/services/executor.py
import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from limitbot.config import settings
from limitbot.errors import TransientExternalError
from limitbot.services.amounts import Denomination, resolve_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TradeRequest:
    side: str
    token_address: str
    amount: float
    denomination: Denomination
    slippage: float

    @classmethod
    def from_order(cls, order, native_price_usd: float, default_slippage: float) -> "TradeRequest":
        resolved = resolve_amount(order, native_price_usd)
        return cls(
            side=order.side,
            token_address=order.token_address,
            amount=resolved.value,
            denomination=resolved.denomination,
            slippage=float(order.slippage or default_slippage),
        )


@dataclass(frozen=True)
class TradeResult:
    success: bool
    signature: Optional[str] = None
    error: Optional[str] = None


class TradeExecutor(Protocol):
    def execute(self, request: TradeRequest) -> TradeResult: ...


def _friendly_error(message: str) -> str:
    lowered = message.lower()
    if "insufficient" in lowered:
        return f"Insufficient balance: {message}"
    if "slippage" in lowered:
        return "Slippage too high. Try increasing slippage tolerance."
    return message


class PumpPortalExecutor:
    """Submit trades to the PumpPortal trade endpoint.

    One call is one irreversible trade. Timeouts and connection errors raise
    TransientExternalError; venue rejections come back as a failed TradeResult.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, priority_fee: Optional[float] = None,
                 pool: Optional[str] = None, session=None):
        self.api_key = api_key if api_key is not None else settings.PUMPPORTAL_API_KEY
        self.base_url = (base_url or settings.PUMPPORTAL_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.TRADE_TIMEOUT_SECONDS
        self.priority_fee = priority_fee if priority_fee is not None else settings.PRIORITY_FEE
        self.pool = pool or settings.TRADE_POOL
        self.session = session or requests.Session()

    def build_payload(self, request: TradeRequest) -> dict:
        return {
            "action": request.side,
            "mint": request.token_address,
            "amount": request.amount,
            "denominatedInSol": "true" if request.denomination == Denomination.NATIVE else "false",
            "slippage": request.slippage,
            "priorityFee": self.priority_fee,
            "pool": self.pool,
        }

    def execute(self, request: TradeRequest) -> TradeResult:
        if not self.api_key:
            return TradeResult(success=False, error="PumpPortal API key is not configured")

        payload = self.build_payload(request)
        unit = "SOL" if request.denomination == Denomination.NATIVE else "tokens"
        logger.info(
            "Sending %s trade to PumpPortal: mint=%s amount=%s %s slippage=%s%% pool=%s",
            payload["action"], payload["mint"], payload["amount"], unit, payload["slippage"], payload["pool"],
        )

        try:
            resp = self.session.post(
                f"{self.base_url}/trade",
                params={"api-key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as e:
            raise TransientExternalError(f"trade submission failed: {e}") from e
        except requests.RequestException as e:
            logger.error("Trade request could not be sent: %s", e)
            return TradeResult(success=False, error=str(e) or "Failed to execute trade")

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.status_code != 200:
            message = body.get("error") or resp.reason or f"HTTP {resp.status_code}"
            logger.error("PumpPortal rejected trade (status=%s): %s", resp.status_code, message)
            return TradeResult(success=False, error=_friendly_error(str(message)))

        errors = body.get("errors") or []
        if errors:
            message = "; ".join(str(e) for e in errors)
            logger.error("PumpPortal reported errors: %s", message)
            return TradeResult(success=False, error=_friendly_error(message))

        signature = body.get("signature") or body.get("tx")
        if not signature:
            logger.error("PumpPortal accepted the trade but returned no signature: %s", body)
            return TradeResult(success=False, error="no transaction signature returned")

        logger.info("Trade request successful: %s", signature)
        return TradeResult(success=True, signature=signature)


class DryRunExecutor:
    """Paper executor: logs the request and reports a synthetic fill."""

    def execute(self, request: TradeRequest) -> TradeResult:
        signature = f"dryrun-{uuid.uuid4().hex}"
        logger.info(
            "[dry run] %s %s %s of %s (slippage %s%%) -> %s",
            request.side, request.amount, request.denomination.value, request.token_address,
            request.slippage, signature,
        )
        return TradeResult(success=True, signature=signature)
