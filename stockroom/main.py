# stockroom/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from stockroom.core.config import get_settings
from stockroom.core.error_handlers import setup_error_handlers
from stockroom.core.logging_config import configure_logging
from stockroom.core.rate_limit import limiter, rate_limit_exceeded_handler
from stockroom.database import engine
from stockroom.routes import auth, health, products, websockets as websocket_router
from stockroom.scheduler import create_scheduler, start_scheduler, stop_scheduler
from stockroom.services.change_feed import ChangeFeedListener
from stockroom.services.websockets.manager import ConnectionManager

configure_logging(get_settings().LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    manager: ConnectionManager = app.state.connection_manager

    scheduler = create_scheduler(manager, settings.HEARTBEAT_INTERVAL_SECONDS)
    await start_scheduler(scheduler)
    app.state.scheduler = scheduler

    listener = None
    if settings.CHANGE_FEED_ENABLED:
        listener = ChangeFeedListener(
            dsn=settings.listener_dsn,
            manager=manager,
            channel=settings.CHANGE_FEED_CHANNEL,
            table=settings.CHANGE_FEED_TABLE,
            initial_delay=settings.FEED_RECONNECT_INITIAL_DELAY,
            max_delay=settings.FEED_RECONNECT_MAX_DELAY,
        )
        await listener.start()
    else:
        logger.info("Change feed is disabled. Set CHANGE_FEED_ENABLED=true to relay inventory changes")
    app.state.change_feed = listener

    try:
        yield
    finally:
        if listener:
            await listener.stop()
        await stop_scheduler(scheduler)
        await manager.close_all()
        await engine.dispose()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Stockroom Inventory API",
        description="Products, inventory entries and realtime inventory change notifications",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Owned by the process; the change feed and the /ws route share it
    app.state.connection_manager = ConnectionManager(
        max_missed_probes=settings.HEARTBEAT_MAX_MISSED,
        send_timeout=settings.BROADCAST_SEND_TIMEOUT_SECONDS,
    )
    app.state.change_feed = None

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    setup_error_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(products.router)
    app.include_router(websocket_router.router)

    return app


app = create_app()
