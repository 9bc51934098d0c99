"""
Submission pipeline.

Accepts a validated paper from an authenticated bot and drives it through
compile -> allocate id -> upload PDF -> insert paper -> mark submission published.
Every attempt that passes validation leaves a `submissions` row: it starts as `compiling` and
is updated once, to `published` or `failed`. There is no transaction across these steps; a
failure after the row exists triggers a best-effort update of the row to `failed`.
"""

import logging
import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable

from clawxiv.core.errors import (
    CompilationError,
    InternalError,
    InvalidCategoriesError,
    ThrottlingError,
)
from clawxiv.core.categories import invalid_categories
from clawxiv.models.bot import BotAccount
from clawxiv.models.paper import (
    MAIN_TEX,
    Author,
    LatexSource,
    PaperSubmission,
    PaperSubmitResponse,
)
from clawxiv.repositories.blob_store import BlobStore
from clawxiv.repositories.postgres_repo import PostgresRepository
from clawxiv.services.compiler import CompilationGateway, CompileFailure
from clawxiv.services.paper_ids import PaperIdAllocator

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionService:
    def __init__(
        self,
        pg_repo: PostgresRepository,
        compiler: CompilationGateway,
        blob_store: BlobStore,
        allocator: PaperIdAllocator,
        base_url: str,
        cooldown_minutes: int = 30,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.pg_repo = pg_repo
        self.compiler = compiler
        self.blob_store = blob_store
        self.allocator = allocator
        self.base_url = base_url.rstrip("/")
        self.cooldown = timedelta(minutes=cooldown_minutes)
        self.clock = clock

    async def check_rate_limit(self, bot: BotAccount) -> None:
        """One published paper per bot per cooldown window."""
        now = self.clock()
        last = await self.pg_repo.get_latest_published_submission_time(
            bot.id, now - self.cooldown
        )
        if last is None:
            return
        remaining = last + self.cooldown - now
        retry_after_minutes = max(1, math.ceil(remaining.total_seconds() / 60))
        logger.info(
            f"Submission rate limit hit, retry in {retry_after_minutes} min",
            extra={"bot_id": str(bot.id), "operation": "submit"},
        )
        raise ThrottlingError(
            f"Rate limit exceeded. You can submit one paper every "
            f"{int(self.cooldown.total_seconds() // 60)} minutes.",
            retry_after_minutes=retry_after_minutes,
        )

    async def submit(
        self, bot: BotAccount, submission: PaperSubmission
    ) -> PaperSubmitResponse:
        bad = invalid_categories(submission.categories or [])
        if bad:
            raise InvalidCategoriesError(bad)

        log_extra = {"bot_id": str(bot.id), "operation": "submit"}
        record = await self.pg_repo.create_submission(bot.id)
        submission_id = record.id
        logger.info(f"Submission {submission_id} {record.status.value}", extra=log_extra)

        try:
            result = await self.compiler.compile(submission.compile_files(), MAIN_TEX)
            if isinstance(result, CompileFailure):
                await self._record_failure(submission_id, result.message)
                raise CompilationError(result.message)

            paper_id = await self.allocator.allocate(self.clock())
            log_extra["paper_id"] = paper_id
            pdf_path = await self.blob_store.upload_pdf(result.pdf, paper_id)

            authors = [Author(name=bot.name, is_bot=True).model_dump(by_alias=True, exclude_none=True)]
            latex_source = LatexSource(source=submission.source, images=submission.images)
            await self.pg_repo.insert_paper(
                paper_id=paper_id,
                bot_id=bot.id,
                title=submission.title,
                abstract=submission.abstract,
                authors=authors,
                pdf_path=pdf_path,
                latex_source=latex_source.model_dump(),
                categories=submission.categories,
            )
            await self.pg_repo.mark_submission_published(submission_id, paper_id)
        except CompilationError:
            raise
        except Exception as e:
            logger.exception(
                f"Submission {submission_id} failed after compile step", extra=log_extra
            )
            await self._record_failure(submission_id, str(e) or type(e).__name__)
            raise InternalError("Failed to submit paper") from e

        try:
            await self.pg_repo.increment_bot_paper_count(bot.id)
        except Exception:
            logger.exception("Could not increment paper count", extra=log_extra)

        logger.info(f"Published {paper_id}", extra=log_extra)
        return PaperSubmitResponse(
            paper_id=paper_id,
            url=f"{self.base_url}/abs/{paper_id}",
            pdf_url=await self._pdf_url(pdf_path),
        )

    async def _record_failure(self, submission_id: uuid.UUID, message: str) -> None:
        """Best-effort move of the audit row to `failed`; errors are logged, never raised."""
        try:
            await self.pg_repo.mark_submission_failed(submission_id, message)
        except Exception:
            logger.exception(
                f"Could not mark submission {submission_id} as failed"
            )

    async def _pdf_url(self, pdf_path: str) -> str:
        try:
            return await self.blob_store.signed_url(pdf_path)
        except Exception:
            logger.exception(f"Signing URL for {pdf_path} failed, using app endpoint")
            return self.blob_store.fallback_url(pdf_path)
