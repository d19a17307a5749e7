import logging
import math
import uuid
from functools import wraps
from typing import Dict, List, Optional, Union

from pydantic import ValidationError as SchemaError
from sqlalchemy import func, select, text, update
from sqlalchemy.exc import SQLAlchemyError

from limitbot.config import settings
from limitbot.errors import InvalidStateError, NotFoundError, PersistenceError, ValidationError
from limitbot.models.order import ALLOWED_PREDECESSORS, Order, OrderSide, OrderStatus, utcnow
from limitbot.schemas.order import OrderCreate

logger = logging.getLogger(__name__)


def _persistence_guard(func):
    """Surface any database failure as PersistenceError."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("Order store failure in %s: %s", func.__name__, e)
            raise PersistenceError(f"order store unavailable: {e}") from e
    return wrapper


def _is_positive(value) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and value > 0


class OrderStore:
    """Durable record of every order and the only writer of status transitions.

    Each transition is a single conditional UPDATE guarded by the expected
    previous status, so two concurrent writers can never both move the same
    order out of a given status.
    """

    def __init__(self, session_factory, max_slippage: Optional[float] = None):
        self._session_factory = session_factory
        self.max_slippage = max_slippage if max_slippage is not None else settings.MAX_SLIPPAGE

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def _validate(self, spec: OrderCreate) -> str:
        side = (spec.side or "").strip().lower()
        if side not in (OrderSide.BUY.value, OrderSide.SELL.value):
            raise ValidationError(f"side must be 'buy' or 'sell', got {spec.side!r}")
        if not (spec.token_address or "").strip():
            raise ValidationError("token_address is required")
        if not _is_positive(spec.target_price):
            raise ValidationError("target_price must be a positive number")

        if side == OrderSide.SELL.value:
            if not _is_positive(spec.amount):
                raise ValidationError("amount must be a positive token quantity for sell orders")
        else:
            if spec.sol_amount is None and spec.usd_amount is None:
                raise ValidationError("buy orders need sol_amount or usd_amount")
            for name, value in (("sol_amount", spec.sol_amount), ("usd_amount", spec.usd_amount)):
                if value is not None and not _is_positive(value):
                    raise ValidationError(f"{name} must be a positive number")

        if spec.slippage is not None:
            if not (_is_positive(spec.slippage) and spec.slippage <= self.max_slippage):
                raise ValidationError(f"slippage must be between 0 and {self.max_slippage:g} percent")
        return side

    @_persistence_guard
    def create_order(self, spec: Union[OrderCreate, dict]) -> Order:
        if not isinstance(spec, OrderCreate):
            try:
                spec = OrderCreate.model_validate(spec)
            except SchemaError as e:
                raise ValidationError(str(e)) from e

        side = self._validate(spec)
        token_address = spec.token_address.strip()
        is_sell = side == OrderSide.SELL.value

        # Only one amount representation is written per side
        order = Order(
            id=str(uuid.uuid4()),
            token=(spec.token or "").strip() or token_address[:8],
            token_address=token_address,
            side=side,
            amount=float(spec.amount) if is_sell else 0.0,
            usd_amount=None if is_sell else spec.usd_amount,
            sol_amount=None if is_sell else spec.sol_amount,
            target_price=float(spec.target_price),
            slippage=spec.slippage,
            status=OrderStatus.PENDING.value,
            created_at=utcnow(),
        )
        with self._session_factory() as db:
            db.add(order)
            db.commit()
        logger.info("Created %s order %s for %s at target %s", side, order.id, order.token, order.target_price)
        return order

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @_persistence_guard
    def get_order(self, order_id: str) -> Optional[Order]:
        with self._session_factory() as db:
            return db.get(Order, order_id)

    @_persistence_guard
    def list_active(self) -> List[Order]:
        """Pending orders, most recently created first."""
        with self._session_factory() as db:
            stmt = (
                select(Order)
                .where(Order.status == OrderStatus.PENDING.value)
                .order_by(Order.created_at.desc())
            )
            return list(db.scalars(stmt).all())

    @_persistence_guard
    def list_by_token(self, token_address: str) -> List[Order]:
        with self._session_factory() as db:
            stmt = (
                select(Order)
                .where(Order.token_address == token_address, Order.status == OrderStatus.PENDING.value)
                .order_by(Order.created_at.desc())
            )
            return list(db.scalars(stmt).all())

    @_persistence_guard
    def committed_sell_amount(self, token_address: str) -> float:
        """Token quantity already promised to pending sell orders."""
        with self._session_factory() as db:
            total = db.execute(
                select(func.coalesce(func.sum(Order.amount), 0.0)).where(
                    Order.token_address == token_address,
                    Order.side == OrderSide.SELL.value,
                    Order.status == OrderStatus.PENDING.value,
                )
            ).scalar()
        return float(total or 0.0)

    @_persistence_guard
    def get_stats(self) -> Dict[str, int]:
        stats = {status.value: 0 for status in OrderStatus}
        with self._session_factory() as db:
            rows = db.execute(select(Order.status, func.count()).group_by(Order.status)).all()
        for status, count in rows:
            stats[status] = stats.get(status, 0) + count
        stats["total"] = sum(count for _, count in rows)
        return stats

    @_persistence_guard
    def ping(self) -> None:
        with self._session_factory() as db:
            db.execute(text("SELECT 1"))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _transition(self, order_id: str, new_status: OrderStatus, values: dict, refusal: str) -> Order:
        predecessors = [s.value for s in ALLOWED_PREDECESSORS[new_status]]
        with self._session_factory() as db:
            result = db.execute(
                update(Order)
                .where(Order.id == order_id, Order.status.in_(predecessors))
                .values(status=new_status.value, **values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                current = db.get(Order, order_id)
                if current is None:
                    raise NotFoundError(f"order {order_id} not found")
                raise InvalidStateError(f"{refusal} (order {order_id} is {current.status})")
            db.commit()
            order = db.get(Order, order_id)
        logger.info("Order %s -> %s", order_id, new_status.value)
        return order

    @_persistence_guard
    def update_status(self, order_id: str, new_status: Union[OrderStatus, str], signature: Optional[str] = None) -> Order:
        """Apply one state-machine transition. `executed_at` and `tx_signature`
        are written only when moving to executed."""
        try:
            new_status = OrderStatus(new_status)
        except ValueError as e:
            raise ValidationError(f"unknown order status {new_status!r}") from e
        if new_status not in ALLOWED_PREDECESSORS:
            raise InvalidStateError(f"orders cannot be moved back to {new_status.value}")

        values = {}
        if new_status is OrderStatus.EXECUTED:
            values = {"executed_at": utcnow(), "tx_signature": signature}
        return self._transition(
            order_id,
            new_status,
            values,
            refusal=f"cannot move order to {new_status.value}",
        )

    @_persistence_guard
    def cancel_order(self, order_id: str) -> Order:
        order = self._transition(order_id, OrderStatus.CANCELLED, {}, refusal="can only cancel pending orders")
        logger.info("Cancelled order %s (%s %s)", order.id, order.side, order.token)
        return order
