from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from campus_events.api.dev import router as dev_router
from campus_events.api.errors import service_error_handler
from campus_events.api.v1.router import router as v1_router
from campus_events.core.config import settings
from campus_events.core.logging import configure_logging
from campus_events.db import create_all
from campus_events.gateway import create_gateway
from campus_events.middleware.request_id import RequestIdMiddleware
from campus_events.services.exceptions import ServiceError

configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    gateway = create_gateway()
    if settings.env == "local" and gateway.engine is not None:
        # Local runs have no migration step; build the schema in place
        await create_all(gateway.engine)
    await gateway.feed.start()
    app.state.gateway = gateway
    logger.info("gateway_started", feed=settings.change_feed_backend)
    try:
        yield
    finally:
        await gateway.close()
        logger.info("gateway_closed")


app = FastAPI(title="Campus Events API", lifespan=lifespan)

# Starlette runs the last added middleware first, so the request id wraps CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(ServiceError, service_error_handler)

Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/")
def root():
    return {"name": "Campus Events API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(v1_router, prefix="/v1")

if settings.dev_routes_enabled:
    app.include_router(dev_router)
