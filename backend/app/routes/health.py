"""
Health check and API info endpoints.
"""
import time
from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter()

VERSION = "1.0.0"
_started = time.monotonic()


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _started, 3),
    }


@router.get("/api")
async def api_info():
    return {
        "message": "Welcome to Nylas Attachment Backend API",
        "version": VERSION,
    }
