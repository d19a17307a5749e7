from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class OrderCreate(BaseModel):
    """Incoming order spec. Sell orders use `amount` (tokens); buy orders use
    `sol_amount`, or the legacy `usd_amount`."""
    token: str = ""
    token_address: str
    side: str
    amount: float = 0.0
    usd_amount: Optional[float] = None
    sol_amount: Optional[float] = None
    target_price: float
    slippage: Optional[float] = None


class MarketCapOrderCreate(BaseModel):
    token_address: str
    side: str
    target_market_cap: float
    amount: float = 0.0
    usd_amount: Optional[float] = None
    sol_amount: Optional[float] = None
    slippage: Optional[float] = None


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    token: str
    token_address: str
    side: str
    amount: float
    usd_amount: Optional[float] = None
    sol_amount: Optional[float] = None
    target_price: float
    slippage: Optional[float] = None
    status: str
    created_at: datetime
    executed_at: Optional[datetime] = None
    tx_signature: Optional[str] = None


class MarketCapOrderOut(BaseModel):
    order: OrderOut
    current_price: float
    current_market_cap: float
    target_market_cap: float


class TokenOrdersOut(BaseModel):
    token_address: str
    orders: List[OrderOut]
    committed_sell_amount: float


class OrderStats(BaseModel):
    pending: int = 0
    executing: int = 0
    executed: int = 0
    cancelled: int = 0
    failed: int = 0
    total: int = 0
