from fastapi import APIRouter, Depends, Request

from limitbot.models.order import OrderSide
from limitbot.schemas.monitor import MonitorStatus
from limitbot.services.monitor import PriceMonitor

router = APIRouter(prefix="/monitor", tags=["Monitor"])


def get_monitor(request: Request) -> PriceMonitor:
    return request.app.state.services.monitor


@router.post("/start")
def start_monitor(monitor: PriceMonitor = Depends(get_monitor)):
    started = monitor.start()
    return {"status": "started" if started else "already_running", "running": monitor.is_running()}


@router.post("/stop")
def stop_monitor(monitor: PriceMonitor = Depends(get_monitor)):
    stopped = monitor.stop()
    return {"status": "stopped" if stopped else "not_running", "running": monitor.is_running()}


@router.get("/status", response_model=MonitorStatus)
def monitor_status(monitor: PriceMonitor = Depends(get_monitor)):
    active = monitor.store.list_active()
    buys = sum(1 for o in active if o.side == OrderSide.BUY.value)
    return MonitorStatus(
        running=monitor.is_running(),
        state=monitor.state.value,
        interval_seconds=monitor.interval,
        last_check_time=monitor.get_last_check_time(),
        monitored_tokens=monitor.get_monitored_tokens(),
        active_orders=len(active),
        buy_orders=buys,
        sell_orders=len(active) - buys,
    )
