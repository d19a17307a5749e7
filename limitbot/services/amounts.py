import enum
from dataclasses import dataclass

from limitbot.errors import ValidationError
from limitbot.models.order import BUY_FIAT, BUY_NATIVE, OrderSide


class Denomination(str, enum.Enum):
    NATIVE = "native"  # SOL
    TOKEN = "token"


@dataclass(frozen=True)
class ResolvedAmount:
    value: float
    denomination: Denomination


def resolve_amount(order, native_price_usd: float) -> ResolvedAmount:
    """Collapse an order's amount fields into the single amount that is traded.

    Sell orders trade their token quantity. Buy orders spend SOL: the SOL amount
    when present, otherwise the legacy USD amount converted at `native_price_usd`.
    """
    if order.side == OrderSide.SELL.value:
        return ResolvedAmount(float(order.amount), Denomination.TOKEN)

    kind = order.buy_denomination
    if kind == BUY_NATIVE:
        return ResolvedAmount(float(order.sol_amount), Denomination.NATIVE)
    if kind == BUY_FIAT:
        if not native_price_usd or native_price_usd <= 0:
            raise ValidationError("a positive SOL price is needed to convert a USD buy amount")
        return ResolvedAmount(float(order.usd_amount) / native_price_usd, Denomination.NATIVE)
    raise ValidationError(f"buy order {order.id} is missing amount information")
