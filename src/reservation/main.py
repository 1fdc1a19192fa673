"""
FastAPI application entry point for the bus seat reservation service
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from reservation.api import admin, bookings, trips
from reservation.core.config import settings
from reservation.core.database import engine
from reservation.core.logging_config import setup_logging
from reservation.core.metrics import get_metrics
from reservation.middleware.rate_limiter import limiter, rate_limit_exceeded_handler
from reservation.middleware.tracing import TracingMiddleware
from reservation.services import start_expiry_worker, stop_expiry_worker

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    # Startup
    logger.info("🚀 Starting up Bus Seat Reservation...")
    logger.info(f"📊 Database: {settings.DATABASE_URL.split('@')[-1]}")

    # Test database connection
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("✅ Database connection successful")
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        raise

    if settings.EXPIRY_WORKER_ENABLED:
        logger.info("⏰ Starting expiry worker...")
        await start_expiry_worker()

    yield

    # Shutdown
    logger.info("🛑 Shutting down...")
    await stop_expiry_worker()
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Seat reservation for scheduled bus trips with payment grace periods",
    lifespan=lifespan,
)

# Add rate limiter state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed requests answer 400 in the same shape as service errors"""
    return JSONResponse(
        status_code=400,
        content={
            "detail": {
                "error": "ValidationError",
                "message": "Invalid request",
                "errors": jsonable_encoder(exc.errors()),
            }
        },
    )


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TracingMiddleware)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/metrics", tags=["Monitoring"])
async def metrics():
    """Prometheus scrape endpoint"""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "message": "Welcome to Bus Seat Reservation API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }


# Include routers
app.include_router(trips.router, prefix="/api/v1", tags=["Trips"])
app.include_router(bookings.router, prefix="/api/v1", tags=["Bookings"])
app.include_router(admin.router, prefix="/api/v1", tags=["Admin"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "reservation.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
