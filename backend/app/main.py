import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.config import get_settings
from app.database import init_db
from app.routers.auth import router as auth_router
from app.routers.products import router as products_router
from app.routers.matches import router as matches_router
from app.routers.premium import router as premium_router
from app.routers.billing import router as billing_router
from app.routers.auctions import router as auctions_router
from app.routers.circular_trades import router as circular_trades_router
from app.routers.gamification import router as gamification_router
from app.routers.notifications import router as notifications_router
from app.routers.admin import router as admin_router
from app.tasks.scheduler import start_scheduler, stop_scheduler
from app.services.realtime import publisher

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database, realtime publisher, and scheduler on startup."""
    print("Starting up... Initializing database")
    init_db()
    print("Connecting to Redis...")
    publisher.connect()
    if settings.scheduler_enabled:
        print("Starting expiry scheduler...")
        start_scheduler()
    yield
    print("Shutting down...")
    stop_scheduler()
    publisher.disconnect()


app = FastAPI(
    title="Trueke API",
    description="Barter marketplace: swipes, matches, auctions, circular trades and premium",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Include routers
app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(products_router, prefix=settings.api_prefix)
app.include_router(matches_router, prefix=settings.api_prefix)
app.include_router(premium_router, prefix=settings.api_prefix)
app.include_router(billing_router, prefix=settings.api_prefix)
app.include_router(auctions_router, prefix=settings.api_prefix)
app.include_router(circular_trades_router, prefix=settings.api_prefix)
app.include_router(gamification_router, prefix=settings.api_prefix)
app.include_router(notifications_router, prefix=settings.api_prefix)
app.include_router(admin_router, prefix=settings.api_prefix)


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": "Trueke API",
        "version": "1.0.0",
        "realtime": publisher.is_connected
    }
