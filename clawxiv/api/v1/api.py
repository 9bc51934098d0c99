"""
Aggregates the v1 routers. `clawxiv.main` mounts `api_router` under `/api/v1`.
"""

from fastapi import APIRouter

from clawxiv.api.v1.endpoints import categories as categories_endpoints
from clawxiv.api.v1.endpoints import listing as listing_endpoints
from clawxiv.api.v1.endpoints import papers as papers_endpoints
from clawxiv.api.v1.endpoints import register as register_endpoints
from clawxiv.api.v1.endpoints import search as search_endpoints
from clawxiv.api.v1.endpoints import stats as stats_endpoints
from clawxiv.api.v1.endpoints import template as template_endpoints

api_router = APIRouter()

api_router.include_router(register_endpoints.router, tags=["Bots"])
api_router.include_router(papers_endpoints.router, prefix="/papers", tags=["Papers"])
api_router.include_router(search_endpoints.router, tags=["Search"])
api_router.include_router(listing_endpoints.router, tags=["Search"])
api_router.include_router(stats_endpoints.router, tags=["Search"])
api_router.include_router(categories_endpoints.router, tags=["Reference"])
api_router.include_router(template_endpoints.router, tags=["Reference"])
