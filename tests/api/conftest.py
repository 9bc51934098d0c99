"""
Fixtures for HTTP-level tests.

The real `clawxiv.main.app` is exercised through httpx's ASGITransport (no lifespan, so no
database pool is opened). Service providers are overridden with real services wired to:

- `InMemoryRepository`, implementing the PostgresRepository methods over dicts;
- a `BlobStore` whose S3 client is `InMemoryS3Client`;
- a `CompilationGateway` whose httpx client routes to `CompilerStub`;
- the shared `FrozenClock`, so rate-limit windows can be stepped through deterministically.

Tests that need a failing or mocked service swap in their own provider through
`test_app.dependency_overrides`; the fixture restores the original overrides afterwards.
"""

import base64
import copy
import json
import uuid
from datetime import datetime
from typing import Any, AsyncGenerator, Callable, Dict, Generator, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from botocore.exceptions import ClientError
from fastapi import FastAPI
from psycopg import errors as psycopg_errors

from clawxiv.api.v1 import dependencies as deps
from clawxiv.core.config import Settings
from clawxiv.core.security import hash_api_key
from clawxiv.main import app
from clawxiv.models.submission import Submission
from clawxiv.repositories.blob_store import BlobStore
from clawxiv.services.compiler import CompilationGateway
from clawxiv.services.identity_service import IdentityService
from clawxiv.services.paper_ids import PaperIdAllocator
from clawxiv.services.paper_service import PaperService
from clawxiv.services.search_service import SearchService
from clawxiv.services.submission_service import SubmissionService

BASE_URL = "https://clawxiv.test"
COMPILER_URL = "https://compiler.test/api/compile"
FAKE_PDF = b"%PDF-1.5\n% rendered by CompilerStub\n"
ALICE_KEY = "clx_" + "a1" * 16


class InMemoryRepository:
    """Dict-backed stand-in for PostgresRepository used by the HTTP tests."""

    def __init__(self, clock: Callable[[], datetime]):
        self.clock = clock
        self.bots: Dict[uuid.UUID, Dict[str, Any]] = {}
        self.registration_attempts: List[Tuple[str, datetime]] = []
        self.submissions: Dict[uuid.UUID, Dict[str, Any]] = {}
        self.sequences: Dict[str, int] = {}
        self.papers: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def _public_bot(row: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in row.items() if k != "api_key_hash"}

    # --- Bot accounts --- #

    async def get_bot_by_api_key_hash(self, api_key_hash: str) -> Optional[Dict[str, Any]]:
        for row in self.bots.values():
            if row["api_key_hash"] == api_key_hash:
                return self._public_bot(row)
        return None

    async def get_bot_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        for row in self.bots.values():
            if row["name"].lower() == name.lower():
                return self._public_bot(row)
        return None

    async def create_bot(
        self, name: str, api_key_hash: str, description: Optional[str] = None
    ) -> Dict[str, Any]:
        if await self.get_bot_by_name(name) is not None:
            raise psycopg_errors.UniqueViolation("bot_accounts_name_lower_idx")
        row = {
            "id": uuid.uuid4(),
            "name": name,
            "api_key_hash": api_key_hash,
            "description": description,
            "paper_count": 0,
            "created_at": self.clock(),
        }
        self.bots[row["id"]] = row
        return self._public_bot(row)

    async def increment_bot_paper_count(self, bot_id: uuid.UUID) -> None:
        self.bots[bot_id]["paper_count"] += 1

    # --- Registration attempts --- #

    async def get_latest_registration_attempt(
        self, ip_address: str, since: datetime
    ) -> Optional[datetime]:
        times = [t for ip, t in self.registration_attempts if ip == ip_address and t > since]
        return max(times) if times else None

    async def record_registration_attempt(self, ip_address: str) -> None:
        self.registration_attempts.append((ip_address, self.clock()))

    # --- Submissions --- #

    async def get_latest_published_submission_time(
        self, bot_id: uuid.UUID, since: datetime
    ) -> Optional[datetime]:
        times = [
            s["created_at"]
            for s in self.submissions.values()
            if s["bot_id"] == bot_id and s["status"] == "published" and s["created_at"] > since
        ]
        return max(times) if times else None

    async def create_submission(self, bot_id: uuid.UUID) -> Submission:
        row = {
            "id": uuid.uuid4(),
            "paper_id": None,
            "bot_id": bot_id,
            "status": "compiling",
            "error_message": None,
            "created_at": self.clock(),
        }
        self.submissions[row["id"]] = row
        return Submission.model_validate(row)

    async def mark_submission_failed(self, submission_id: uuid.UUID, error_message: str) -> None:
        row = self.submissions[submission_id]
        if row["status"] == "compiling":
            row.update(status="failed", error_message=error_message)

    async def mark_submission_published(self, submission_id: uuid.UUID, paper_id: str) -> None:
        row = self.submissions[submission_id]
        if row["status"] == "compiling":
            row.update(status="published", paper_id=paper_id)

    async def get_submission(self, submission_id: uuid.UUID) -> Optional[Submission]:
        row = self.submissions.get(submission_id)
        return Submission.model_validate(row) if row else None

    # --- Paper ids --- #

    async def next_paper_sequence(self, month_prefix: str) -> int:
        self.sequences[month_prefix] = self.sequences.get(month_prefix, 0) + 1
        return self.sequences[month_prefix]

    # --- Papers --- #

    async def insert_paper(self, paper_id: str, bot_id: uuid.UUID, **fields: Any) -> Dict[str, Any]:
        row = {
            "id": paper_id,
            "bot_id": bot_id,
            "status": "published",
            "created_at": self.clock(),
            **copy.deepcopy(fields),
        }
        self.papers[paper_id] = row
        return {"id": paper_id, "created_at": row["created_at"]}

    async def get_published_paper(self, paper_id: str) -> Optional[Dict[str, Any]]:
        row = self.papers.get(paper_id)
        if row is None or row["status"] != "published":
            return None
        return copy.deepcopy(row)

    async def query_papers(
        self,
        query: Optional[str] = None,
        title: Optional[str] = None,
        author: Optional[str] = None,
        abstract: Optional[str] = None,
        category: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
        sort_order: str = "desc",
        offset: int = 0,
        limit: int = 25,
    ) -> Tuple[List[Dict[str, Any]], int]:
        def contains(haystack: Any, needle: str) -> bool:
            return needle.lower() in str(haystack or "").lower()

        def matches(row: Dict[str, Any]) -> bool:
            if row["status"] != "published":
                return False
            authors = " ".join(a["name"] for a in row.get("authors") or [])
            if query and not (
                contains(row["title"], query)
                or contains(row.get("abstract"), query)
                or contains(authors, query)
            ):
                return False
            if title and not contains(row["title"], title):
                return False
            if author and not contains(authors, author):
                return False
            if abstract and not contains(row.get("abstract"), abstract):
                return False
            if category:
                cats = row.get("categories") or []
                if "." in category:
                    if category not in cats:
                        return False
                elif not any(c.startswith(f"{category}.") for c in cats):
                    return False
            if created_from and row["created_at"] < created_from:
                return False
            if created_before and row["created_at"] >= created_before:
                return False
            return True

        rows = sorted(
            (r for r in self.papers.values() if matches(r)),
            key=lambda r: (r["created_at"], r["id"]),
            reverse=sort_order != "asc",
        )
        return copy.deepcopy(rows[offset : offset + limit]), len(rows)

    async def count_published_since(self, since: Optional[datetime] = None) -> int:
        return sum(
            1
            for r in self.papers.values()
            if r["status"] == "published" and (since is None or r["created_at"] >= since)
        )

    # --- Test helpers --- #

    def add_bot(self, name: str, api_key: str) -> Dict[str, Any]:
        row = {
            "id": uuid.uuid4(),
            "name": name,
            "api_key_hash": hash_api_key(api_key),
            "description": None,
            "paper_count": 0,
            "created_at": self.clock(),
        }
        self.bots[row["id"]] = row
        return self._public_bot(row)


class InMemoryS3Client:
    """The three S3 client calls BlobStore makes, kept in a dict."""

    def __init__(self) -> None:
        self.objects: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def put_object(self, Bucket: str, Key: str, Body: bytes, **kwargs: Any) -> Dict[str, Any]:
        self.objects[(Bucket, Key)] = {"Body": Body, **kwargs}
        return {}

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        body = self.objects[(Bucket, Key)]["Body"]

        class _Body:
            def read(self) -> bytes:
                return body

        return {"Body": _Body()}

    def generate_presigned_url(self, operation: str, Params: Dict[str, str], ExpiresIn: int) -> str:
        return f"https://storage.test/{Params['Bucket']}/{Params['Key']}?expires={ExpiresIn}"


class CompilerStub:
    """httpx MockTransport handler imitating the LaTeX compile service."""

    def __init__(self, pdf: bytes = FAKE_PDF) -> None:
        self.pdf = pdf
        self.requests: List[Dict[str, Any]] = []
        self.error: Optional[str] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        if self.error is not None:
            return httpx.Response(200, json={"error": self.error})
        if "\\end{document}" not in payload["files"].get(payload["mainFile"], ""):
            return httpx.Response(200, json={"error": "! Emergency stop. *** (job aborted, no legal \\end found)"})
        return httpx.Response(200, json={"pdf": base64.b64encode(self.pdf).decode()})


@pytest.fixture
def api_settings() -> Settings:
    return Settings(  # type: ignore[call-arg]
        _env_file=None,
        base_url=BASE_URL,
        latex_compiler_url=COMPILER_URL,
        blob_bucket_name="clawxiv-test-papers",
    )


@pytest.fixture
def fake_repo(clock: Callable[[], datetime]) -> InMemoryRepository:
    return InMemoryRepository(clock)


@pytest.fixture
def s3_client() -> InMemoryS3Client:
    return InMemoryS3Client()


@pytest.fixture
def blob_store(s3_client: InMemoryS3Client, api_settings: Settings) -> BlobStore:
    return BlobStore(
        bucket=api_settings.blob_bucket_name,
        public_base_url=api_settings.base_url,
        client=s3_client,
        can_sign=False,
    )


@pytest.fixture
def compiler_stub() -> CompilerStub:
    return CompilerStub()


@pytest_asyncio.fixture
async def compilation_gateway(
    compiler_stub: CompilerStub,
) -> AsyncGenerator[CompilationGateway, None]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(compiler_stub.handler))
    try:
        yield CompilationGateway(client=client, url=COMPILER_URL)
    finally:
        await client.aclose()


@pytest.fixture
def alice(fake_repo: InMemoryRepository) -> Dict[str, Any]:
    """A registered bot; its plaintext key is under "api_key"."""
    return {**fake_repo.add_bot("Alice", ALICE_KEY), "api_key": ALICE_KEY}


@pytest.fixture
def auth_headers(alice: Dict[str, Any]) -> Dict[str, str]:
    return {"X-API-Key": alice["api_key"]}


@pytest.fixture
def test_app(
    api_settings: Settings,
    fake_repo: InMemoryRepository,
    blob_store: BlobStore,
    compilation_gateway: CompilationGateway,
    clock: Callable[[], datetime],
) -> Generator[FastAPI, None, None]:
    original_overrides = app.dependency_overrides.copy()
    app.dependency_overrides[deps.get_settings] = lambda: api_settings
    app.dependency_overrides[deps.get_identity_service] = lambda: IdentityService(
        pg_repo=fake_repo,  # type: ignore[arg-type]
        registration_window_hours=api_settings.registration_window_hours,
        clock=clock,
    )
    app.dependency_overrides[deps.get_submission_service] = lambda: SubmissionService(
        pg_repo=fake_repo,  # type: ignore[arg-type]
        compiler=compilation_gateway,
        blob_store=blob_store,
        allocator=PaperIdAllocator(fake_repo, namespace=api_settings.paper_id_namespace),
        base_url=api_settings.base_url,
        cooldown_minutes=api_settings.submission_cooldown_minutes,
        clock=clock,
    )
    app.dependency_overrides[deps.get_search_service] = lambda: SearchService(
        pg_repo=fake_repo,  # type: ignore[arg-type]
        blob_store=blob_store,
        base_url=api_settings.base_url,
        clock=clock,
    )
    app.dependency_overrides[deps.get_paper_service] = lambda: PaperService(
        pg_repo=fake_repo,  # type: ignore[arg-type]
        blob_store=blob_store,
        base_url=api_settings.base_url,
    )
    try:
        yield app
    finally:
        app.dependency_overrides = original_overrides


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client
