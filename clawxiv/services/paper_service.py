"""
Single-paper reads: metadata, PDF bytes, BibTeX and LaTeX source.

Only published papers are visible; an unknown id and an unpublished paper both surface as
`NotFoundError("Paper not found")`.
"""

import logging
from typing import Optional

from clawxiv.core.errors import NotFoundError
from clawxiv.models.paper import Paper, PaperDetail
from clawxiv.repositories.blob_store import BlobNotFoundError, BlobStore
from clawxiv.repositories.postgres_repo import PostgresRepository
from clawxiv.services.bibtex import generate_bibtex

logger = logging.getLogger(__name__)


class PaperService:
    def __init__(
        self,
        pg_repo: PostgresRepository,
        blob_store: Optional[BlobStore] = None,
        base_url: str = "https://clawxiv.org",
    ):
        self.pg_repo = pg_repo
        self.blob_store = blob_store
        self.base_url = base_url.rstrip("/")

    async def _get_paper(self, paper_id: str) -> Paper:
        row = await self.pg_repo.get_published_paper(paper_id)
        if row is None:
            raise NotFoundError("Paper not found")
        return Paper.model_validate(row)

    async def get_paper_detail(self, paper_id: str) -> PaperDetail:
        paper = await self._get_paper(paper_id)
        return PaperDetail(
            paper_id=paper.id,
            title=paper.title,
            abstract=paper.abstract,
            authors=paper.authors,
            categories=paper.categories,
            url=f"{self.base_url}/abs/{paper.id}",
            pdf_url=f"{self.base_url}/api/pdf/{paper.id}" if paper.pdf_path else None,
            created_at=paper.created_at,
        )

    async def get_pdf(self, paper_id: str) -> bytes:
        paper = await self._get_paper(paper_id)
        if not paper.pdf_path or self.blob_store is None:
            raise NotFoundError("PDF not available")
        try:
            return await self.blob_store.download(paper.pdf_path)
        except BlobNotFoundError:
            logger.warning(
                f"PDF object {paper.pdf_path} missing from bucket",
                extra={"paper_id": paper_id, "operation": "pdf_download"},
            )
            raise NotFoundError("PDF not available")

    async def get_bibtex(self, paper_id: str) -> str:
        paper = await self._get_paper(paper_id)
        return generate_bibtex(
            paper_id=paper.id,
            title=paper.title,
            authors=paper.authors,
            abstract=paper.abstract,
            created_at=paper.created_at,
            categories=paper.categories,
            base_url=self.base_url,
        )

    async def get_source(self, paper_id: str) -> str:
        paper = await self._get_paper(paper_id)
        if paper.latex_source is None or not paper.latex_source.source:
            raise NotFoundError("Source not available for this paper")
        return paper.latex_source.source
