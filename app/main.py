"""
FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from app.api.router import api_router
from app.core.config import settings
from app.core.deps import build_relationship_service
from app.core.errors import (
    AppError,
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.core.logging import RequestIDMiddleware, RequestLoggingMiddleware, get_logger, setup_logging
from app.infra.db import close_db_connection
from app.infra.redis import close_redis_pool, init_redis_pool

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    service = build_relationship_service()
    app.state.relationship_service = service
    if service.rate_limiter is not None:
        await init_redis_pool()
    logger.info(
        "app.started",
        edge_store=settings.edge_store_backend,
        notifications=settings.notification_backend,
    )

    yield

    # Shutdown: let committed actions finish their side effects first
    await service.coordinator.dispatcher.close()
    await service.coordinator.store.close()
    await close_redis_pool()
    await close_db_connection()


tags_metadata = [
    {
        "name": "relationships",
        "description": "Friend requests, friendships and blocks between two users.",
    },
    {
        "name": "health",
        "description": "System health check.",
    },
]


def create_app() -> FastAPI:
    app = FastAPI(
        title="Relationship Engine",
        description="""
Relationship Engine keeps one consistent record per pair of users.

## Features
* **Friend requests**: send, accept, reject and cancel.
* **Friendships**: remove with counters kept in step.
* **Blocking**: block and unblock, hiding the blocker from the blocked user.
* **Lists**: friends, pending requests and blocks with stable cursors.
""",
        version="0.1.0",
        openapi_tags=tags_metadata,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        swagger_ui_parameters={
            "persistAuthorization": True,
            "displayRequestDuration": True
        },
        lifespan=lifespan,
    )

    # Middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods,
        allow_headers=settings.cors_headers,
    )

    @app.get("/", tags=["health"], include_in_schema=False)
    async def root():
        return {
            "message": "Welcome to Relationship Engine API",
            "docs": "/docs",
            "status": "operational"
        }

    # Routes
    app.include_router(api_router, prefix=settings.api_prefix)

    # Exception Handlers
    app.add_exception_handler(AppError, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    return app


app = create_app()
