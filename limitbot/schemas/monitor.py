from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class MonitorStatus(BaseModel):
    running: bool
    state: str
    interval_seconds: float
    last_check_time: Optional[datetime] = None
    monitored_tokens: List[str]
    active_orders: int
    buy_orders: int
    sell_orders: int
