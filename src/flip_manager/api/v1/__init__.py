"""V1 REST API routes.

Combines all sub-routers under the ``/api/v1`` prefix.
"""

from fastapi import APIRouter

from flip_manager.api.v1.flips import router as flips_router

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(flips_router)

__all__ = ["v1_router"]
