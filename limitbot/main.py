import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from limitbot.config import settings
from limitbot.database import init_db
from limitbot.errors import (
    InvalidStateError,
    NotFoundError,
    OrderBotError,
    PersistenceError,
    TransientExternalError,
    ValidationError,
)
from limitbot.routes import monitor, orders
from limitbot.wiring import Services, build_services

logger = logging.getLogger(__name__)

_ERROR_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (TransientExternalError, 502),
    (PersistenceError, 503),
)


def order_error_handler(request: Request, exc: OrderBotError):
    status_code = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500)
    return JSONResponse(status_code=status_code, content={"status": "error", "reason": str(exc)})


def create_app(services: Services = None) -> FastAPI:
    logging.basicConfig(level=settings.LOG_LEVEL)
    if services is None:
        init_db()
        services = build_services()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if services.monitor.is_running():
            services.monitor.stop()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.services = services
    app.add_exception_handler(OrderBotError, order_error_handler)

    app.include_router(orders.router)
    app.include_router(monitor.router)

    @app.get("/")
    def root():
        return {"message": f"{settings.APP_NAME} API is running"}

    return app


app = create_app()
