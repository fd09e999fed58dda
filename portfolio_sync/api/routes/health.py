"""Health check endpoint."""
import logging

from fastapi import APIRouter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    logger.debug("is alive.")
    return {"status": "healthy", "service": "portfolio-sync"}
