"""Health check endpoints."""

from fastapi import APIRouter

from smartfx import __version__
from smartfx.config import get_settings
from smartfx.signing.factory import get_signer_info

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "smartfx"}


@router.get("/health/detailed")
async def detailed_health():
    """Detailed health check with configuration and signer status."""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": "smartfx",
        "version": __version__,
        "config": settings.get_safe_dict(),
        "signer": await get_signer_info(),
    }
