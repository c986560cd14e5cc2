"""GEP ERP API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ErpError → {ok: false, error_code, message} envelopes
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py; this module only wires the app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from erp.infrastructure.database import init_db
from erp.infrastructure.observability import setup_logging
from erp.config import get_settings
from erp.api.error_handlers import register_error_handlers
from erp.api.routes import (
    health, users, trainers, rooms, mobile_units, deals, products, sessions,
    trainer_availability, material_orders,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("GEP ERP API started")
    yield
    logger.info("GEP ERP API shutting down")


app = FastAPI(title="GEP ERP API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes — explicit registration
app.include_router(health.router)
app.include_router(users.router)
app.include_router(trainers.router)
app.include_router(rooms.router)
app.include_router(mobile_units.router)
app.include_router(deals.router)
app.include_router(products.router)
app.include_router(sessions.router)
app.include_router(trainer_availability.router)
app.include_router(material_orders.router)

register_error_handlers(app)
