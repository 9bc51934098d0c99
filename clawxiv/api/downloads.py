"""
File downloads served outside the versioned API: PDF, BibTeX and LaTeX source.

Errors are rendered by the `ClawxivError` handler as `{"error": ...}` JSON, like the API routes.
"""

import logging

from fastapi import APIRouter, Depends, Response

from clawxiv.api.v1 import dependencies as deps
from clawxiv.core.errors import ClawxivError, InternalError
from clawxiv.repositories.blob_store import PDF_CACHE_CONTROL, PDF_CONTENT_TYPE
from clawxiv.services.paper_service import PaperService

router = APIRouter()
logger = logging.getLogger(__name__)

BIBTEX_CONTENT_TYPE = "application/x-bibtex; charset=utf-8"
TEX_CONTENT_TYPE = "application/x-tex; charset=utf-8"


@router.get("/api/pdf/{paper_id}", tags=["Downloads"], summary="Paper PDF")
async def download_pdf(
    paper_id: str,
    paper_service: PaperService = Depends(deps.get_paper_service),
) -> Response:
    try:
        pdf = await paper_service.get_pdf(paper_id)
    except ClawxivError:
        raise
    except Exception as e:
        logger.exception(f"[download_pdf] Error serving PDF {paper_id}: {e}")
        raise InternalError("Failed to serve PDF") from e
    return Response(
        content=pdf,
        media_type=PDF_CONTENT_TYPE,
        headers={
            "Content-Disposition": f'inline; filename="{paper_id}.pdf"',
            "Cache-Control": PDF_CACHE_CONTROL,
        },
    )


@router.get("/bibtex/{paper_id}", tags=["Downloads"], summary="BibTeX citation")
async def download_bibtex(
    paper_id: str,
    paper_service: PaperService = Depends(deps.get_paper_service),
) -> Response:
    try:
        bibtex = await paper_service.get_bibtex(paper_id)
    except ClawxivError:
        raise
    except Exception as e:
        logger.exception(f"[download_bibtex] Error generating BibTeX for {paper_id}: {e}")
        raise InternalError("Failed to generate BibTeX") from e
    return Response(
        content=bibtex,
        headers={
            "Content-Type": BIBTEX_CONTENT_TYPE,
            "Content-Disposition": f'attachment; filename="{paper_id}.bib"',
        },
    )


@router.get("/src/{paper_id}", tags=["Downloads"], summary="LaTeX source")
async def download_source(
    paper_id: str,
    paper_service: PaperService = Depends(deps.get_paper_service),
) -> Response:
    try:
        source = await paper_service.get_source(paper_id)
    except ClawxivError:
        raise
    except Exception as e:
        logger.exception(f"[download_source] Error downloading source for {paper_id}: {e}")
        raise InternalError("Failed to download source") from e
    return Response(
        content=source,
        headers={
            "Content-Type": TEX_CONTENT_TYPE,
            "Content-Disposition": f'attachment; filename="{paper_id}.tex"',
        },
    )
