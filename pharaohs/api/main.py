"""
Pharaohs API Server

FastAPI server that provides the REST endpoints for players, scouts and
admins of the football scouting platform.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import logging
import uvicorn
from slowapi import _rate_limit_exceeded_handler  # type: ignore
from slowapi.errors import RateLimitExceeded  # type: ignore

from pharaohs.api.error_handlers import register_exception_handlers
from pharaohs.api.routes import router, limiter as routes_limiter
from pharaohs.config import get_settings
from pharaohs.database import db

settings = get_settings()

# Set up logging
# Log level is configured via the LOG_LEVEL environment variable (default: INFO)
numeric_level = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(
    level=numeric_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup and shutdown events."""
    logger.info("Starting up Pharaohs API...")

    # Create tables that migrations haven't created yet
    try:
        await db.init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        # Don't raise - allow app to start even if initialization fails

    yield  # App is running

    logger.info("Shutting down Pharaohs API...")
    await db.engine.dispose()


app = FastAPI(
    title="Pharaohs API",
    description="API for football player profiles, media, tryouts and scouting",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup rate limiter
app.state.limiter = routes_limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

register_exception_handlers(app)

# Add CORS middleware - origins configured via ALLOWED_ORIGINS env var
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.debug(f"Incoming request: {request.method} {request.url.path}")
    return await call_next(request)


# Include API routes
app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint for health checks."""
    return {"status": "ok", "message": "Pharaohs API is running"}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
