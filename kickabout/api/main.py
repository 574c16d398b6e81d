"""
Kickabout API Server

FastAPI server exposing the friend/block social graph and player ratings.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
import uvicorn
from slowapi import _rate_limit_exceeded_handler  # type: ignore
from slowapi.errors import RateLimitExceeded  # type: ignore

from kickabout.api.routes import router, limiter as routes_limiter
from kickabout.database import db
from kickabout.services.aggregation_queue import get_aggregation_queue

# Set up logging
# Allow log level to be configured via environment variable (default: INFO)
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
numeric_level = getattr(logging, log_level, logging.INFO)
logging.basicConfig(
    level=numeric_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup and shutdown events."""
    logger.info("Starting up Kickabout API...")

    # Create any tables missing from migrations
    try:
        await db.init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    queue = get_aggregation_queue()
    queue.start()
    logger.info("Aggregation queue started")

    yield  # App is running

    logger.info("Shutting down Kickabout API...")

    # Let in-flight aggregate recomputes finish before the engine goes away
    try:
        await queue.stop()
        logger.info("Aggregation queue stopped")
    except Exception as e:
        logger.error(f"Error stopping aggregation queue: {e}", exc_info=True)

    await db.engine.dispose()


app = FastAPI(
    title="Kickabout API",
    description="Friends, blocks and peer ratings for pickup matches",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup rate limiter
app.state.limiter = routes_limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware - origins configured via ALLOWED_ORIGINS env var
allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/api/health")
async def health():
    """Health check with aggregation queue status."""
    return {"status": "ok", "aggregation_queue": get_aggregation_queue().get_queue_status()}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
