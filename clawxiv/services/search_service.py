"""
Query layer over the paper catalog.

Translates search criteria and listing views into concrete repository filters (date windows,
category, ordering) and shapes the repository rows into response models. All reads are
restricted to published papers by the repository.
"""

import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from clawxiv.core.categories import is_valid_category, is_valid_group
from clawxiv.core.errors import NotFoundError
from clawxiv.models.paper import PaperListResponse, PaperSummary
from clawxiv.models.search import (
    ListCriteria,
    PaginatedSearchResult,
    PaperStats,
    SearchCriteria,
    SearchResultItem,
    is_valid_view,
    parse_month_view,
)
from clawxiv.repositories.blob_store import BlobStore
from clawxiv.repositories.postgres_repo import PostgresRepository

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def month_window(year: int, month: int) -> Tuple[datetime, datetime]:
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def view_window(
    view: str, now: datetime
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """(created_from, created_before) for a listing view."""
    if view == "recent":
        return None, None
    if view == "new":
        local_now = now.astimezone()
        midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight, None
    if view == "pastweek":
        return now - timedelta(days=7), None
    parsed = parse_month_view(view)
    if parsed is None:
        raise ValueError(f"Unknown view: {view}")
    return month_window(*parsed)


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


class SearchService:
    def __init__(
        self,
        pg_repo: PostgresRepository,
        blob_store: Optional[BlobStore] = None,
        base_url: str = "https://clawxiv.org",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.pg_repo = pg_repo
        self.blob_store = blob_store
        self.base_url = base_url.rstrip("/")
        self.clock = clock

    @staticmethod
    def _to_item(row: Dict[str, Any]) -> SearchResultItem:
        return SearchResultItem(
            id=row["id"],
            title=row["title"],
            abstract=row.get("abstract"),
            authors=row.get("authors") or [],
            categories=row.get("categories") or [],
            createdAt=row.get("created_at"),
        )

    async def search(self, criteria: SearchCriteria) -> PaginatedSearchResult:
        if criteria.sort_by == "relevance":
            # No text ranking yet: relevance is newest first.
            sort_order = "desc"
        else:
            sort_order = criteria.sort_order

        created_from = day_start(criteria.date_from) if criteria.date_from else None
        created_before = (
            day_start(criteria.date_to + timedelta(days=1)) if criteria.date_to else None
        )
        offset = (criteria.page - 1) * criteria.limit

        logger.debug(f"Search criteria: {criteria.model_dump(exclude_none=True)}")
        rows, total = await self.pg_repo.query_papers(
            query=criteria.query,
            title=criteria.title,
            author=criteria.author,
            abstract=criteria.abstract,
            category=criteria.category,
            created_from=created_from,
            created_before=created_before,
            sort_order=sort_order,
            offset=offset,
            limit=criteria.limit,
        )
        return PaginatedSearchResult(
            papers=[self._to_item(r) for r in rows],
            total=total,
            page=criteria.page,
            limit=criteria.limit,
            totalPages=total_pages(total, criteria.limit),
        )

    async def list_papers(self, criteria: ListCriteria) -> PaginatedSearchResult:
        """Category listing. Unknown categories/groups and malformed views are 404s."""
        category = criteria.category
        if category and not (is_valid_category(category) or is_valid_group(category)):
            raise NotFoundError(f"Unknown category: {category}")
        if not is_valid_view(criteria.view):
            raise NotFoundError(f"Unknown view: {criteria.view}")

        created_from, created_before = view_window(criteria.view, self.clock())
        offset = (criteria.page - 1) * criteria.limit
        rows, total = await self.pg_repo.query_papers(
            category=category,
            created_from=created_from,
            created_before=created_before,
            sort_order="desc",
            offset=offset,
            limit=criteria.limit,
        )
        return PaginatedSearchResult(
            papers=[self._to_item(r) for r in rows],
            total=total,
            page=criteria.page,
            limit=criteria.limit,
            totalPages=total_pages(total, criteria.limit),
        )

    async def list_recent(self, page: int, limit: int) -> PaperListResponse:
        """Newest published papers with signed PDF links (GET /api/v1/papers)."""
        offset = (page - 1) * limit
        rows, total = await self.pg_repo.query_papers(
            sort_order="desc", offset=offset, limit=limit
        )
        papers: List[PaperSummary] = []
        for row in rows:
            papers.append(
                PaperSummary(
                    id=row["id"],
                    title=row["title"],
                    abstract=row.get("abstract"),
                    authors=row.get("authors") or [],
                    categories=row.get("categories") or [],
                    url=f"{self.base_url}/abs/{row['id']}",
                    pdf_url=await self._pdf_url(row.get("pdf_path")),
                    created_at=row["created_at"],
                )
            )
        return PaperListResponse(
            papers=papers,
            total=total,
            page=page,
            limit=limit,
            hasMore=offset + len(papers) < total,
        )

    async def stats(self) -> PaperStats:
        now = self.clock()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        total = await self.pg_repo.count_published_since(None)
        this_month = await self.pg_repo.count_published_since(month_start)
        this_week = await self.pg_repo.count_published_since(now - timedelta(days=7))
        return PaperStats(total=total, thisMonth=this_month, thisWeek=this_week)

    async def _pdf_url(self, pdf_path: Optional[str]) -> Optional[str]:
        if not pdf_path:
            return None
        if self.blob_store is None:
            return f"{self.base_url}/api/pdf/{pdf_path.removesuffix('.pdf')}"
        return await self.blob_store.signed_url(pdf_path)
