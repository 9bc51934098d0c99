"""Paper search with text, category and date filters."""

import logging
import time
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from clawxiv.api.v1 import dependencies as deps
from clawxiv.core.errors import ClawxivError, InternalError, ValidationError
from clawxiv.models.search import (
    SEARCH_DEFAULT_LIMIT,
    PaginatedSearchResult,
    SearchCriteria,
    clamp_limit,
    clamp_page,
    parse_int,
)
from clawxiv.services.search_service import SearchService

router = APIRouter()
logger = logging.getLogger(__name__)


def _parse_date(field: str, value: Optional[str], inclusive_end: bool = False) -> Optional[date]:
    if not value:
        return None
    try:
        parsed = date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{field} must be a valid date (YYYY-MM-DD)")
    # An inclusive end date is matched against the following midnight.
    if inclusive_end and parsed == date.max:
        raise ValidationError(f"{field} must be a valid date (YYYY-MM-DD)")
    return parsed


@router.get(
    "/search",
    response_model=PaginatedSearchResult,
    summary="Search papers",
    description=(
        "Case-insensitive substring search over published papers with optional "
        "title/author/abstract/category filters and an inclusive date range."
    ),
)
async def search_papers(
    query: Optional[str] = Query(None, description="Matches title, abstract or authors."),
    title: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    abstract: Optional[str] = Query(None),
    category: Optional[str] = Query(
        None, description="Exact category (cs.AI) or a whole group (cs)."
    ),
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive."),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive."),
    sort_by: Optional[str] = Query(None, description="'date' or 'relevance'."),
    sort_order: Optional[str] = Query(None, description="'asc' or 'desc'."),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None, description="Page size (1-200, default 25)."),
    search_service: SearchService = Depends(deps.get_search_service),
) -> PaginatedSearchResult:
    criteria = SearchCriteria(
        query=query or None,
        title=title or None,
        author=author or None,
        abstract=abstract or None,
        category=category or None,
        date_from=_parse_date("date_from", date_from),
        date_to=_parse_date("date_to", date_to, inclusive_end=True),
        sort_by="relevance" if sort_by == "relevance" else "date",
        sort_order="asc" if sort_order == "asc" else "desc",
        page=clamp_page(parse_int(page)),
        limit=clamp_limit(parse_int(limit), SEARCH_DEFAULT_LIMIT),
    )

    try:
        start_time = time.time()
        result = await search_service.search(criteria)
        process_time = (time.time() - start_time) * 1000
        logger.info(
            f"[search_papers] {len(result.papers)} of {result.total} results in {process_time:.2f}ms"
        )
        return result
    except ClawxivError:
        raise
    except Exception as e:
        logger.exception(f"[search_papers] Search failed: {e}")
        raise InternalError("Search failed") from e
