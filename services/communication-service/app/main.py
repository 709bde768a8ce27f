# services/communication-service/app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from app.api.errors import register_error_handlers
from app.api.routers import field_routes, health_routes, letter_routes, template_routes
from app.clients.blob_storage import close_artifact_publisher
from app.clients.http_utils import close_http_clients
from app.config import settings
from app.db.mongodb import close_client as close_mongo_client, init_indexes
from app.events.rabbit import RabbitBus, get_bus
from app.events.user_consumer import UserEventsConsumer
from app.infra.logging import bind_correlation_id, reset_correlation_id, setup_logging
from app.seeds import run_all_seeds

logger = logging.getLogger("app.main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    App lifespan:
      - configure logging
      - init Mongo indexes + seeds
      - connect event bus (RabbitMQ) and start the CRM user consumer; the
        service keeps running without messaging if that fails
      - graceful shutdown: consumer, bus, HTTP clients, Mongo client
    """
    setup_logging(settings.service_name, settings.log_level)
    logger.info("%s starting up (env=%s)", settings.service_name, settings.environment)

    # 1) Mongo indexes + seeds
    await init_indexes()
    logger.info("Mongo indexes ensured (db=%s)", settings.mongo_db)
    await run_all_seeds()

    # 2) RabbitMQ
    bus: RabbitBus = get_bus()
    consumer: Optional[UserEventsConsumer] = None
    if not bus.enabled:
        logger.warning("RABBITMQ_URI not configured, skipping RabbitMQ initialization")
    else:
        try:
            await bus.connect()
            consumer = UserEventsConsumer(bus.connection)  # type: ignore[arg-type]
            await consumer.start()
        except Exception:
            logger.warning("Event system initialization failed, continuing without messaging", exc_info=True)
            consumer = None

    try:
        yield
    finally:
        # a) Consumer + bus
        if consumer is not None:
            try:
                await consumer.stop()
            except Exception:
                logger.warning("Error stopping CRM user consumer", exc_info=True)
        try:
            await bus.close()
        except Exception:
            logger.warning("Error closing RabbitMQ", exc_info=True)

        # b) Outbound HTTP pools + blob storage
        try:
            await close_http_clients()
            await close_artifact_publisher()
        except Exception:
            logger.warning("Error closing outbound clients", exc_info=True)

        # c) Mongo client
        try:
            await close_mongo_client()
            logger.info("Mongo client closed")
        except Exception:
            logger.warning("Error closing Mongo client", exc_info=True)

        logger.info("%s shutdown complete", settings.service_name)


app = FastAPI(
    title="Communication Service",
    description="Template registry and personalised letter generation",
    version=settings.service_version,
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Reuse the caller's X-Correlation-Id or mint one; it is echoed on the response."""
    correlation_id = (request.headers.get("x-correlation-id") or "").strip()[:128] or uuid4().hex
    token = bind_correlation_id(correlation_id)
    try:
        response = await call_next(request)
    finally:
        reset_correlation_id(token)
    response.headers["X-Correlation-Id"] = correlation_id
    return response


register_error_handlers(app)

app.include_router(health_routes.router)
app.include_router(template_routes.router)
app.include_router(letter_routes.router)
app.include_router(field_routes.router)
