# limitbot/routes/orders.py
import logging
from typing import List

from fastapi import APIRouter, Depends, Request

from limitbot.errors import NotFoundError, TransientExternalError
from limitbot.schemas.order import (
    MarketCapOrderCreate,
    MarketCapOrderOut,
    OrderCreate,
    OrderOut,
    OrderStats,
    TokenOrdersOut,
)
from limitbot.services.order_store import OrderStore
from limitbot.services.price_oracle import price_from_market_cap

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def get_store(request: Request) -> OrderStore:
    return request.app.state.services.store


def get_oracle(request: Request):
    return request.app.state.services.oracle


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(payload: OrderCreate, store: OrderStore = Depends(get_store)):
    """Register a limit order. It stays pending until the monitor sees its target price."""
    return store.create_order(payload)


@router.post("/market-cap", response_model=MarketCapOrderOut, status_code=201)
def create_order_by_market_cap(payload: MarketCapOrderCreate, store: OrderStore = Depends(get_store),
                               oracle=Depends(get_oracle)):
    """
    Register a limit order whose trigger is a target market cap.

    The market cap is converted to a target price using the token's current
    price/market-cap ratio; the stored order is an ordinary price order.
    """
    info = oracle.get_token_info(payload.token_address)
    if info is None:
        raise TransientExternalError(f"could not fetch token information for {payload.token_address}")

    target_price = price_from_market_cap(payload.target_market_cap, info.market_cap, info.price)
    logger.info(
        "Market cap $%s for %s maps to target price $%s",
        payload.target_market_cap, info.symbol, target_price,
    )
    order = store.create_order(OrderCreate(
        token=info.symbol,
        token_address=payload.token_address,
        side=payload.side,
        amount=payload.amount,
        usd_amount=payload.usd_amount,
        sol_amount=payload.sol_amount,
        target_price=target_price,
        slippage=payload.slippage,
    ))
    return {
        "order": order,
        "current_price": info.price,
        "current_market_cap": info.market_cap,
        "target_market_cap": payload.target_market_cap,
    }


@router.get("/", response_model=List[OrderOut])
def list_active_orders(store: OrderStore = Depends(get_store)):
    return store.list_active()


@router.get("/stats", response_model=OrderStats)
def order_stats(store: OrderStore = Depends(get_store)):
    return store.get_stats()


@router.get("/token/{token_address}", response_model=TokenOrdersOut)
def orders_for_token(token_address: str, store: OrderStore = Depends(get_store)):
    return {
        "token_address": token_address,
        "orders": store.list_by_token(token_address),
        "committed_sell_amount": store.committed_sell_amount(token_address),
    }


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, store: OrderStore = Depends(get_store)):
    order = store.get_order(order_id)
    if order is None:
        raise NotFoundError(f"order {order_id} not found")
    return order


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(order_id: str, store: OrderStore = Depends(get_store)):
    return store.cancel_order(order_id)
