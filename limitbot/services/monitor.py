"""
Price monitor.

Every cycle reads pending orders from the store, prices each distinct token once,
and executes the orders whose trigger fires. An order is moved to `executing`
before the executor is called and always finalized to `executed` or `failed`
afterwards.
"""

import enum
import logging
import math
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from limitbot.config import settings
from limitbot.errors import InvalidStateError, NotFoundError, OrderBotError, PersistenceError
from limitbot.models.order import OrderStatus
from limitbot.services.executor import TradeRequest, TradeResult
from limitbot.services.timeout import call_with_timeout
from limitbot.services.trigger import should_execute

logger = logging.getLogger(__name__)

# Attempts at recording an order's final status before giving up
FINALIZE_ATTEMPTS = 3
FINALIZE_RETRY_SECONDS = 0.5


class MonitorState(str, enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class CycleReport:
    started_at: datetime
    orders_seen: int = 0
    tokens_priced: int = 0
    unavailable_tokens: List[str] = field(default_factory=list)
    executed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


class PriceMonitor:
    def __init__(self, store, oracle, executor, interval_seconds: Optional[float] = None,
                 price_timeout: Optional[float] = None, trade_timeout: Optional[float] = None,
                 default_slippage: Optional[float] = None,
                 native_price: Optional[Callable[[], float]] = None):
        self.store = store
        self.oracle = oracle
        self.executor = executor
        self.interval = interval_seconds if interval_seconds is not None else settings.MONITOR_INTERVAL_SECONDS
        self.price_timeout = price_timeout if price_timeout is not None else settings.PRICE_TIMEOUT_SECONDS
        self.trade_timeout = trade_timeout if trade_timeout is not None else settings.TRADE_TIMEOUT_SECONDS
        self.default_slippage = default_slippage if default_slippage is not None else settings.DEFAULT_SLIPPAGE
        self.native_price = native_price or (lambda: settings.SOL_PRICE_USD)

        self._state = MonitorState.STOPPED
        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_check: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Start monitoring. Returns False when already running.

        Raises PersistenceError, leaving the monitor stopped, if the store is
        unreachable.
        """
        with self._state_lock:
            if self._state is MonitorState.RUNNING:
                logger.info("Monitor is already running")
                return False
            self.store.ping()
            self._state = MonitorState.RUNNING
            self._stop_event = threading.Event()
            stop_event = self._stop_event

        logger.info("Price monitor started, checking prices every %ss", self.interval)
        try:
            self.run_cycle()
        except Exception:
            logger.exception("Error in first monitor cycle")

        with self._state_lock:
            # stop() may have been called while the first cycle ran
            if self._state is MonitorState.RUNNING and self._thread is None and not stop_event.is_set():
                self._thread = threading.Thread(
                    target=self._run_loop, args=(stop_event,), name="price-monitor", daemon=True
                )
                self._thread.start()
        return True

    def stop(self) -> bool:
        """Stop monitoring. A cycle already in flight is allowed to finish."""
        with self._state_lock:
            if self._state is MonitorState.STOPPED:
                logger.info("Monitor is not running")
                return False
            self._state = MonitorState.STOPPED
            self._stop_event.set()
            self._thread = None
        logger.info("Price monitor stopped")
        return True

    def _run_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval):
            try:
                self.run_cycle()
            except Exception:
                logger.exception("Error in monitor loop")

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    @property
    def state(self) -> MonitorState:
        return self._state

    def is_running(self) -> bool:
        return self._state is MonitorState.RUNNING

    def get_last_check_time(self) -> Optional[datetime]:
        return self._last_check

    def get_monitored_tokens(self) -> List[str]:
        return list(dict.fromkeys(o.token_address for o in self.store.list_active()))

    # ------------------------------------------------------------------
    # Check cycle
    # ------------------------------------------------------------------
    def run_cycle(self) -> Optional[CycleReport]:
        """Run one check cycle. Returns None if another cycle is still running."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous check cycle still running, skipping")
            return None
        try:
            return self._check_orders()
        finally:
            self._cycle_lock.release()

    def _check_orders(self) -> CycleReport:
        self._last_check = datetime.now(timezone.utc)
        report = CycleReport(started_at=self._last_check)

        try:
            orders = self.store.list_active()
        except PersistenceError as e:
            logger.error("Could not read active orders: %s", e)
            report.errors.append(str(e))
            return report

        report.orders_seen = len(orders)
        if not orders:
            return report

        tokens = list(dict.fromkeys(o.token_address for o in orders))
        prices = self._fetch_prices(tokens, report)

        for order in orders:
            price = prices.get(order.token_address)
            if price is None:
                logger.warning("Could not fetch price for %s, order %s stays pending", order.token, order.id)
                report.skipped.append(order.id)
                continue
            try:
                triggered = should_execute(order, price)
            except Exception as e:
                logger.exception("Trigger evaluation failed for order %s", order.id)
                report.errors.append(f"{order.id}: {e}")
                continue
            if triggered:
                self._execute_order(order, price, report)
        return report

    def _fetch_prices(self, tokens: List[str], report: CycleReport) -> Dict[str, float]:
        prices = {}
        for address in tokens:
            price = None
            try:
                raw = call_with_timeout(self.oracle.get_price, self.price_timeout, address)
                if raw is not None:
                    price = float(raw)
            except Exception as e:
                logger.warning("Price lookup failed for %s: %s", address, e)

            if price is None or not math.isfinite(price) or price <= 0:
                report.unavailable_tokens.append(address)
                continue
            prices[address] = price
            report.tokens_priced += 1
        return prices

    def _execute_order(self, order, current_price: float, report: CycleReport) -> None:
        logger.info(
            "Executing %s order %s for %s (target $%s, current $%s)",
            order.side, order.id, order.token, order.target_price, current_price,
        )
        try:
            self.store.update_status(order.id, OrderStatus.EXECUTING)
        except (InvalidStateError, NotFoundError) as e:
            logger.info("Order %s is no longer pending, skipping: %s", order.id, e)
            report.skipped.append(order.id)
            return
        except PersistenceError as e:
            logger.error("Could not mark order %s executing, leaving it pending: %s", order.id, e)
            report.errors.append(f"{order.id}: {e}")
            return

        result = TradeResult(success=False, error="execution interrupted")
        try:
            request = TradeRequest.from_order(order, self.native_price(), self.default_slippage)
            result = call_with_timeout(self.executor.execute, self.trade_timeout, request)
        except Exception as e:
            logger.error("Order %s execution error: %s", order.id, e)
            result = TradeResult(success=False, error=str(e))
        finally:
            self._finalize(order, result, report)

    def _finalize(self, order, result: TradeResult, report: CycleReport) -> None:
        success = isinstance(result, TradeResult) and result.success
        if success and not result.signature:
            # An execution is never recorded without its transaction signature
            result = TradeResult(success=False, error="no transaction signature returned")
            success = False
        for attempt in range(1, FINALIZE_ATTEMPTS + 1):
            try:
                if success:
                    self.store.update_status(order.id, OrderStatus.EXECUTED, result.signature)
                    report.executed.append(order.id)
                    logger.info("Order %s executed successfully, transaction %s", order.id, result.signature)
                else:
                    self.store.update_status(order.id, OrderStatus.FAILED)
                    report.failed.append(order.id)
                    logger.error("Order %s execution failed: %s", order.id, getattr(result, "error", result))
                return
            except PersistenceError as e:
                logger.error("Recording final status of order %s failed (attempt %d): %s", order.id, attempt, e)
                if attempt < FINALIZE_ATTEMPTS:
                    time.sleep(FINALIZE_RETRY_SECONDS)
            except OrderBotError as e:
                logger.error("Order %s could not be finalized: %s", order.id, e)
                report.errors.append(f"{order.id}: {e}")
                return
        report.errors.append(f"{order.id}: final status not recorded")
