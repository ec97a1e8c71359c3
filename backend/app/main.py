from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PydanticValidationError
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.api.routes import auth, health, routines
from app.api.routes import auto_logger as auto_logger_routes
from app.config import get_settings
from app.core.error_handlers import (
    app_exception_handler,
    generic_exception_handler,
    pydantic_validation_handler,
)
from app.core.exceptions import ModularHealthException
from app.core.logging import get_logger, setup_logging
from app.core.middleware import RequestLoggingMiddleware
from app.core.rate_limit import limiter, rate_limit_exceeded_handler
from app.database import init_db

settings = get_settings()

# Initialize structured logging
setup_logging(debug=settings.debug, log_level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("application_startup", app_name=settings.app_name)
    init_db()
    logger.info("database_initialized")

    try:
        from app.services.routines.background_tasks import start_background_tasks

        await start_background_tasks()
    except Exception as e:
        logger.warning("routine_auto_logger_startup_failed", error=str(e))

    yield

    # Shutdown
    try:
        from app.services.routines.background_tasks import stop_background_tasks

        await stop_background_tasks()
    except Exception as e:
        logger.warning("routine_auto_logger_shutdown_failed", error=str(e))

    logger.info("application_shutdown")


app = FastAPI(
    title=settings.app_name,
    description="Personal health data aggregation: routines and automatic logging",
    version=health.VERSION,
    root_path="",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
)

# CORS middleware - restrict to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# Rate limiting
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Register exception handlers
app.add_exception_handler(ModularHealthException, app_exception_handler)
app.add_exception_handler(RequestValidationError, pydantic_validation_handler)
app.add_exception_handler(PydanticValidationError, pydantic_validation_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(routines.router, prefix="/api/routines", tags=["routines"])
app.include_router(auto_logger_routes.router, prefix="/api/auto-logger", tags=["auto-logger"])


@app.get("/")
async def root():
    return {"message": f"{settings.app_name} API", "version": health.VERSION}
