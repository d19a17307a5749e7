import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, String, Float, DateTime
from limitbot.database import Base


class OrderSide(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    EXECUTED = "executed"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({OrderStatus.EXECUTED, OrderStatus.CANCELLED, OrderStatus.FAILED})

# target status -> statuses it may be entered from
ALLOWED_PREDECESSORS = {
    OrderStatus.EXECUTING: (OrderStatus.PENDING,),
    OrderStatus.CANCELLED: (OrderStatus.PENDING,),
    OrderStatus.EXECUTED: (OrderStatus.EXECUTING,),
    OrderStatus.FAILED: (OrderStatus.EXECUTING,),
}

# Buy order spend variants
BUY_NATIVE = "native"
BUY_FIAT = "fiat"


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite stores datetimes without tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Order(Base):
    """Price-triggered trade intent. Rows are never deleted."""
    __tablename__ = "orders"

    id = Column(String, primary_key=True, index=True)
    token = Column(String, nullable=False)
    token_address = Column(String, nullable=False, index=True)
    side = Column(String, nullable=False)  # buy or sell
    amount = Column(Float, nullable=False, default=0.0, doc="Token quantity to dispose of (sell orders)")
    usd_amount = Column(Float, nullable=True, doc="Legacy USD spend (buy orders)")
    sol_amount = Column(Float, nullable=True, doc="SOL spend (buy orders), wins over usd_amount")
    target_price = Column(Float, nullable=False)
    slippage = Column(Float, nullable=True, doc="Tolerance percent; default applied when empty")
    status = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    executed_at = Column(DateTime, nullable=True, doc="Set only when the order is executed")
    tx_signature = Column(String, nullable=True, doc="Set only when the order is executed")

    @property
    def buy_denomination(self) -> Optional[str]:
        """Which spend field is authoritative for a buy order (native wins)."""
        if self.side != OrderSide.BUY.value:
            return None
        if self.sol_amount:
            return BUY_NATIVE
        if self.usd_amount:
            return BUY_FIAT
        return None

    @property
    def is_terminal(self) -> bool:
        return self.status in {s.value for s in TERMINAL_STATUSES}

    def __repr__(self) -> str:
        return f"<Order {self.id} {self.side} {self.token} @ {self.target_price} [{self.status}]>"
