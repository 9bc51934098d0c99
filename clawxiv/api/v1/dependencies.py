"""
FastAPI dependency providers.

Shared resources live on `request.app.state` (created by `clawxiv.core.db.lifespan`). The
providers below pull them out, wrap them in repositories and services, and hand those to
the path operations through `Depends`. Tests replace any link of the chain with
`app.dependency_overrides`.
"""

import json
import logging
from typing import Optional, Type, TypeVar, cast

import httpx
from fastapi import Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, ValidationError as PydanticValidationError
from psycopg_pool import AsyncConnectionPool
from starlette.datastructures import State

from clawxiv.core.config import Settings, settings as global_settings
from clawxiv.core.errors import AuthenticationError, ValidationError
from clawxiv.core.security import API_KEY_HEADER
from clawxiv.models.bot import BotAccount
from clawxiv.repositories.blob_store import BlobStore
from clawxiv.repositories.postgres_repo import PostgresRepository
from clawxiv.services.compiler import CompilationGateway
from clawxiv.services.identity_service import IdentityService
from clawxiv.services.paper_ids import PaperIdAllocator
from clawxiv.services.paper_service import PaperService
from clawxiv.services.search_service import SearchService
from clawxiv.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


# --- Shared resources --- #


def get_app_state(request: Request) -> State:
    if not hasattr(request.app, "state"):
        logger.error("request.app.state is missing; lifespan did not run.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Application state not initialized.",
        )
    return cast(State, request.app.state)


def get_settings(state: State = Depends(get_app_state)) -> Settings:
    return getattr(state, "settings", None) or global_settings


def get_postgres_pool(state: State = Depends(get_app_state)) -> AsyncConnectionPool:
    pool = getattr(state, "pg_pool", None)
    if pool is None:
        logger.error("PostgreSQL pool is not initialized in application state.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection pool is not available.",
        )
    return pool  # type: ignore


def get_blob_store(state: State = Depends(get_app_state)) -> Optional[BlobStore]:
    blob_store = getattr(state, "blob_store", None)
    if blob_store is None:
        logger.warning("Blob store is not initialized; PDF storage is unavailable.")
    return blob_store


def get_compilation_gateway(
    state: State = Depends(get_app_state),
    settings: Settings = Depends(get_settings),
) -> CompilationGateway:
    client: Optional[httpx.AsyncClient] = getattr(state, "compiler_client", None)
    if client is None:
        logger.error("Compiler HTTP client is not initialized in application state.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Compilation service is not available.",
        )
    return CompilationGateway(client=client, url=settings.latex_compiler_url)


# --- Repository Dependencies --- #


def get_postgres_repository(
    pool: AsyncConnectionPool = Depends(get_postgres_pool),
) -> PostgresRepository:
    return PostgresRepository(pool=pool)


# --- Service Dependencies --- #


def get_identity_service(
    pg_repo: PostgresRepository = Depends(get_postgres_repository),
    settings: Settings = Depends(get_settings),
) -> IdentityService:
    return IdentityService(
        pg_repo=pg_repo,
        registration_window_hours=settings.registration_window_hours,
    )


def get_submission_service(
    pg_repo: PostgresRepository = Depends(get_postgres_repository),
    compiler: CompilationGateway = Depends(get_compilation_gateway),
    blob_store: Optional[BlobStore] = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> SubmissionService:
    if blob_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="PDF storage is not available.",
        )
    return SubmissionService(
        pg_repo=pg_repo,
        compiler=compiler,
        blob_store=blob_store,
        allocator=PaperIdAllocator(pg_repo, namespace=settings.paper_id_namespace),
        base_url=settings.base_url,
        cooldown_minutes=settings.submission_cooldown_minutes,
    )


def get_search_service(
    pg_repo: PostgresRepository = Depends(get_postgres_repository),
    blob_store: Optional[BlobStore] = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> SearchService:
    return SearchService(pg_repo=pg_repo, blob_store=blob_store, base_url=settings.base_url)


def get_paper_service(
    pg_repo: PostgresRepository = Depends(get_postgres_repository),
    blob_store: Optional[BlobStore] = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> PaperService:
    return PaperService(pg_repo=pg_repo, blob_store=blob_store, base_url=settings.base_url)


# --- Authentication --- #


async def get_current_bot(
    api_key: Optional[str] = Header(default=None, alias=API_KEY_HEADER),
    identity_service: IdentityService = Depends(get_identity_service),
) -> BotAccount:
    """Resolves the `X-API-Key` header to a bot account or fails with 401."""
    if not api_key:
        raise AuthenticationError("Missing X-API-Key header")
    bot = await identity_service.validate_api_key(api_key)
    if bot is None:
        raise AuthenticationError("Invalid API key")
    return bot


# --- Request bodies --- #


async def read_json_model(request: Request, model: Type[ModelT]) -> ModelT:
    """
    Parses the request body as JSON and validates it against `model`.

    Only the first validation failure is reported, as a 400 naming the field.
    """
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON body")
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body")
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise ValidationError(first["msg"])
