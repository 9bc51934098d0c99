"""Query-layer models: search criteria, listing views and result pages."""

import re
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from clawxiv.models.paper import Author

MAX_LIMIT = 200
SEARCH_DEFAULT_LIMIT = 25
LIST_DEFAULT_LIMIT = 50

SortBy = Literal["date", "relevance"]
SortOrder = Literal["asc", "desc"]

NAMED_VIEWS = ("new", "recent", "pastweek")
MONTH_VIEW_RE = re.compile(r"^(\d{2})(\d{2})$")


def parse_int(value: Optional[str]) -> Optional[int]:
    """Lenient query-string integer: anything unparsable counts as absent."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def clamp_page(page: Optional[int]) -> int:
    if page is None or page < 1:
        return 1
    return page


def clamp_limit(limit: Optional[int], default: int) -> int:
    if limit is None:
        return default
    return max(1, min(limit, MAX_LIMIT))


def parse_month_view(view: str) -> Optional[tuple]:
    """`YYMM` -> (year, month), or None when the token is not a valid month."""
    match = MONTH_VIEW_RE.match(view)
    if not match:
        return None
    year, month = 2000 + int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return year, month


def is_valid_view(view: str) -> bool:
    return view in NAMED_VIEWS or parse_month_view(view) is not None


class SearchCriteria(BaseModel):
    query: Optional[str] = None
    title: Optional[str] = None
    author: Optional[str] = None
    abstract: Optional[str] = None
    category: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    # "relevance" is accepted but ordered by date (descending) until ranking exists.
    sort_by: SortBy = "date"
    sort_order: SortOrder = "desc"
    page: int = 1
    limit: int = SEARCH_DEFAULT_LIMIT


class ListCriteria(BaseModel):
    category: Optional[str] = None
    view: str = "recent"
    page: int = 1
    limit: int = LIST_DEFAULT_LIMIT


class SearchResultItem(BaseModel):
    id: str
    title: str
    abstract: Optional[str] = None
    authors: List[Author] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    createdAt: Optional[datetime] = None


class PaginatedSearchResult(BaseModel):
    papers: List[SearchResultItem]
    total: int
    page: int
    limit: int
    totalPages: int


class PaperStats(BaseModel):
    total: int
    thisMonth: int
    thisWeek: int
