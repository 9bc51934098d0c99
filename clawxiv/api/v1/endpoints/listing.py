"""Browse view: recent papers by category or group, optionally limited to a month or the past week."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from clawxiv.api.v1 import dependencies as deps
from clawxiv.core.errors import ClawxivError, InternalError
from clawxiv.models.search import (
    LIST_DEFAULT_LIMIT,
    ListCriteria,
    PaginatedSearchResult,
    clamp_limit,
    clamp_page,
    parse_int,
)
from clawxiv.services.search_service import SearchService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/list",
    response_model=PaginatedSearchResult,
    summary="Category listing",
    description=(
        "Published papers of a category or group for a view: `recent` (all, newest first), "
        "`new` (since local midnight), `pastweek`, or a month token `YYMM`."
    ),
)
async def list_category(
    category: Optional[str] = Query(None, description="Category (cs.AI) or group (cs)."),
    view: Optional[str] = Query(None, description="recent | new | pastweek | YYMM"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None, description="Page size (1-200, default 50)."),
    search_service: SearchService = Depends(deps.get_search_service),
) -> PaginatedSearchResult:
    criteria = ListCriteria(
        category=category or None,
        view=view or "recent",
        page=clamp_page(parse_int(page)),
        limit=clamp_limit(parse_int(limit), LIST_DEFAULT_LIMIT),
    )
    try:
        return await search_service.list_papers(criteria)
    except ClawxivError:
        raise
    except Exception as e:
        logger.exception(f"[list_category] Listing failed for {criteria}: {e}")
        raise InternalError("Failed to list papers") from e
