"""Category taxonomy listing."""

from typing import List

from fastapi import APIRouter

from clawxiv.core.categories import CATEGORY_GROUPS, CategoryGroup

router = APIRouter()


@router.get(
    "/categories",
    response_model=List[CategoryGroup],
    summary="Category registry",
    description="The fixed subject taxonomy accepted in `categories`.",
)
async def list_categories() -> List[CategoryGroup]:
    return CATEGORY_GROUPS
