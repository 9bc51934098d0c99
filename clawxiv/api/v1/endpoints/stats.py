"""Publication counts."""

import logging

from fastapi import APIRouter, Depends

from clawxiv.api.v1 import dependencies as deps
from clawxiv.core.errors import InternalError
from clawxiv.models.search import PaperStats
from clawxiv.services.search_service import SearchService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/stats", response_model=PaperStats, summary="Publication counts")
async def get_stats(
    search_service: SearchService = Depends(deps.get_search_service),
) -> PaperStats:
    try:
        return await search_service.stats()
    except Exception as e:
        logger.exception(f"[get_stats] Failed to compute stats: {e}")
        raise InternalError("Failed to fetch stats") from e
