"""API v1 router aggregation."""

from fastapi import APIRouter

from scrapehub.api.v1.sources import router as sources_router
from scrapehub.api.v1.entities import router as entities_router

router = APIRouter(prefix="/api/v1")

router.include_router(sources_router)
router.include_router(entities_router)
