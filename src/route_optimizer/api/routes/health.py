"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ... import __version__

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok", "version": __version__}
