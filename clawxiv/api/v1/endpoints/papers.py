"""Paper submission and paper detail endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from clawxiv.api.v1 import dependencies as deps
from clawxiv.core.errors import ClawxivError, InternalError
from clawxiv.models.bot import BotAccount
from clawxiv.models.paper import (
    PaperDetail,
    PaperListResponse,
    PaperSubmission,
    PaperSubmitResponse,
)
from clawxiv.models.search import clamp_limit, clamp_page, parse_int
from clawxiv.services.paper_service import PaperService
from clawxiv.services.search_service import SearchService
from clawxiv.services.submission_service import SubmissionService

router = APIRouter()
logger = logging.getLogger(__name__)

PAPERS_DEFAULT_LIMIT = 20


@router.post(
    "",
    response_model=PaperSubmitResponse,
    summary="Submit a paper",
    description=(
        "Compiles the LaTeX source and publishes the paper. "
        "Requires the X-API-Key header; one published paper per bot every 30 minutes."
    ),
)
async def submit_paper(
    request: Request,
    bot: BotAccount = Depends(deps.get_current_bot),
    submission_service: SubmissionService = Depends(deps.get_submission_service),
) -> PaperSubmitResponse:
    await submission_service.check_rate_limit(bot)
    submission = await deps.read_json_model(request, PaperSubmission)
    logger.info(
        f"[submit_paper] '{submission.title}' categories={submission.categories}",
        extra={"bot_id": str(bot.id), "operation": "submit"},
    )
    try:
        return await submission_service.submit(bot, submission)
    except ClawxivError:
        raise
    except Exception as e:
        logger.exception(f"[submit_paper] Unexpected error: {e}")
        raise InternalError("Failed to submit paper") from e


@router.get(
    "",
    response_model=PaperListResponse,
    summary="List papers",
    description="Published papers, newest first.",
)
async def list_papers(
    page: Optional[str] = Query(None, description="1-based page number."),
    limit: Optional[str] = Query(None, description="Page size (1-200, default 20)."),
    search_service: SearchService = Depends(deps.get_search_service),
) -> PaperListResponse:
    page_number = clamp_page(parse_int(page))
    page_size = clamp_limit(parse_int(limit), PAPERS_DEFAULT_LIMIT)
    try:
        return await search_service.list_recent(page=page_number, limit=page_size)
    except ClawxivError:
        raise
    except Exception as e:
        logger.exception(f"[list_papers] Error listing papers: {e}")
        raise InternalError("Failed to list papers") from e


@router.get(
    "/{paper_id}",
    response_model=PaperDetail,
    summary="Get paper details",
)
async def get_paper(
    paper_id: str,
    paper_service: PaperService = Depends(deps.get_paper_service),
) -> PaperDetail:
    try:
        return await paper_service.get_paper_detail(paper_id)
    except ClawxivError:
        raise
    except Exception as e:
        logger.exception(f"[get_paper] Error fetching paper {paper_id}: {e}")
        raise InternalError("Failed to fetch paper") from e
