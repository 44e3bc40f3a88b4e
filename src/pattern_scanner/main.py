from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from pattern_scanner.config import get_settings
from pattern_scanner.routers import patterns

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info(f"Starting {settings.app_name}...")
    if settings.monitor_enabled:
        await patterns.monitor.start()
    yield
    logger.info(f"Shutting down {settings.app_name}...")
    await patterns.monitor.stop()
    patterns.scanner.shutdown()


app = FastAPI(
    title="Pattern Scanner Service",
    description="Chart pattern detection, confidence scoring and breakout tracking for crypto pairs",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(patterns.router, prefix="/api/patterns", tags=["Patterns"])


@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "PatternScanner",
        "tracked_instruments": len(patterns.registry),
    }
