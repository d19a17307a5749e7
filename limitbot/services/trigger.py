from limitbot.models.order import OrderSide


def should_execute(order, current_price: float) -> bool:
    """Buy fires at or below the target price, sell at or above it."""
    if order.side == OrderSide.BUY.value:
        return current_price <= order.target_price
    if order.side == OrderSide.SELL.value:
        return current_price >= order.target_price
    raise ValueError(f"unknown order side: {order.side!r}")
