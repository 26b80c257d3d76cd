"""
Main FastAPI application entry point.
"""
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from rule_console.core.config import settings
from rule_console.core.errors import ResolutionNotAllowed, ScreenNotFound
from rule_console.core.logging_config import setup_logging
from rule_console.core.registry import create_registry
from rule_console.api.v1.router import api_router
from rule_console.middleware.request_logging import RequestLoggingMiddleware

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    logger.info("Starting up Rule Console API...")
    logger.info(f"Rule service: {settings.RULE_SERVICE_URL}")
    registry = create_registry()
    app.state.registry = registry

    if not await registry.client.ping():
        # Don't fail startup - the health endpoint reports it
        logger.warning(
            "Rule service did not answer its health check. "
            "Check RULE_SERVICE_URL and ensure the service is running."
        )

    yield
    # Shutdown
    logger.info("Shutting down Rule Console API...")
    registry.close_all()
    await registry.client.aclose()


app = FastAPI(
    title="Rule Console API",
    description="List synchronization and conflict resolution for IP, ASN and other filter rule lists",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

# Request logging middleware (must be added before other middleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(ScreenNotFound)
async def screen_not_found_handler(request: Request, exc: ScreenNotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


@app.exception_handler(ResolutionNotAllowed)
async def resolution_not_allowed_handler(request: Request, exc: ResolutionNotAllowed):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": exc.message})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors with trace_id."""
    # Get trace_id from request state (set by middleware)
    trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))

    # Log full exception with trace_id
    logger.error(
        f"[{trace_id}] Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True
    )

    if isinstance(exc, HTTPException):
        # Re-raise HTTPException as-is (FastAPI handles these)
        raise exc

    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc) if settings.DEBUG else "Internal Server Error",
            "trace_id": trace_id,
            "error": type(exc).__name__,
            "message": str(exc) if settings.DEBUG else "An unexpected error occurred",
        },
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Rule Console API",
        "version": "1.0.0",
        "docs": "/docs",
    }
