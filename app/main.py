import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Import routes
from routes import admin, billing, menu_management, order_management, table_management, users, websocket

# Import database, config and error handling
from utils.config import settings
from utils.database import engine, Base
from utils.exceptions import register_exception_handlers
from services.events import EventBus
from services.realtime import BroadcastHub, RealtimeNotifier, run_heartbeat

import models  # noqa: F401  registers every table on Base.metadata

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)
    heartbeat = asyncio.create_task(run_heartbeat(app.state.hub, settings.HEARTBEAT_INTERVAL))
    logger.info("Restaurant POS API started")
    try:
        yield
    finally:
        heartbeat.cancel()
        try:
            await heartbeat
        except asyncio.CancelledError:
            pass
        logger.info("Restaurant POS API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Restaurant POS API",
        description="Orders, billing, tables and live updates for a single restaurant",
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "orders", "description": "Order lifecycle and kitchen tickets"},
            {"name": "billing", "description": "Bill generation and settlement"},
            {"name": "table_management", "description": "Tables and QR codes"},
            {"name": "menu_management", "description": "Menu items"},
            {"name": "users", "description": "Staff accounts and login"},
            {"name": "admin", "description": "Dashboard and connection statistics"},
        ],
        swagger_ui_parameters={
            "persistAuthorization": True,
            "defaultModelsExpandDepth": -1
        }
    )

    # Realtime wiring: managers publish on the bus, the notifier pushes through the hub
    app.state.hub = BroadcastHub()
    app.state.event_bus = EventBus()
    app.state.notifier = RealtimeNotifier(app.state.hub)
    app.state.event_bus.subscribe(app.state.notifier.handle)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(users.router)
    app.include_router(menu_management.router)
    app.include_router(table_management.router)
    app.include_router(order_management.router)
    app.include_router(billing.router)
    app.include_router(admin.router)
    app.include_router(websocket.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "connections": app.state.hub.stats()["total"]}

    return app


app = create_app()

# Main run block
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
