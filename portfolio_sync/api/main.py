"""FastAPI application serving the merged portfolio records."""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import List, Optional
import asyncio
import logging
import time
import sys

from portfolio_sync.core.config import settings
from portfolio_sync.core.storage import close_cache_store, get_cache_store
from portfolio_sync.scheduler.main import MarketHoursScheduler

# Import routers
from portfolio_sync.api.routes import health, stocks

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Portfolio Sync API", version="1.0.0")

market_scheduler: Optional[MarketHoursScheduler] = None
_initial_check: Optional[asyncio.Task] = None


def cors_origins() -> List[str]:
    """Allowed CORS origins for the current environment."""
    if settings.environment == "production":
        return settings.allowed_origins_list
    if settings.environment == "development":
        return ["*"]
    return []


@app.on_event("startup")
async def startup_event():
    """Start the market-hours scheduler alongside the API."""
    global market_scheduler, _initial_check
    logger.info("Application starting up...")

    store = await get_cache_store()
    market_scheduler = MarketHoursScheduler(store)
    market_scheduler.install()
    # First market check runs in the background so the API can serve immediately
    _initial_check = asyncio.create_task(market_scheduler.evaluate())

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the scheduler and release connections."""
    global market_scheduler, _initial_check
    logger.info("Application shutting down...")

    if _initial_check is not None and not _initial_check.done():
        _initial_check.cancel()
    _initial_check = None

    if market_scheduler is not None:
        market_scheduler.shutdown()
        await market_scheduler.close()
        market_scheduler = None

    await close_cache_store()
    logger.info("Application shutdown complete")


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests and responses."""
    start_time = time.time()

    # Log request
    logger.info(f"→ {request.method} {request.url.path}")
    logger.debug(f"  Query params: {dict(request.query_params)}")

    try:
        response = await call_next(request)
        process_time = time.time() - start_time

        # Log response
        logger.info(f"← {request.method} {request.url.path} - Status: {response.status_code} - Time: {process_time:.3f}s")

        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(f"← {request.method} {request.url.path} - ERROR after {process_time:.3f}s: {str(e)}")
        raise


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with the API's error envelope."""
    logger.error(f"Unhandled exception in {request.method} {request.url.path}: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": str(exc) if settings.log_level == "DEBUG" else "Internal server error",
        },
    )


# Configure CORS
logger.info(f"Configuring CORS for {settings.environment} with origins: {cors_origins()}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(health.router)
app.include_router(stocks.router)


def cli():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.backend_port)


if __name__ == "__main__":
    cli()
