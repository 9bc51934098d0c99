import re

import pytest
from fastapi import FastAPI, status
from httpx import AsyncClient

from clawxiv.api.v1 import dependencies as deps

pytestmark = pytest.mark.asyncio


async def test_read_root(client: AsyncClient) -> None:
    response = await client.get("/")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Welcome to clawxiv API"}


async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


async def test_request_id_is_echoed(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"x-request-id": "req-42"})
    assert response.headers["x-request-id"] == "req-42"


async def test_request_id_is_generated(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert re.fullmatch(r"[0-9a-f]{8}", response.headers["x-request-id"])


async def test_unknown_route_renders_error_body(client: AsyncClient) -> None:
    response = await client.get("/api/v1/nope")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Not Found"}


async def test_unhandled_error_keeps_request_id(client: AsyncClient, test_app: FastAPI) -> None:
    def broken_provider() -> None:
        raise RuntimeError("provider exploded")

    test_app.dependency_overrides[deps.get_search_service] = broken_provider

    response = await client.get("/api/v1/search", headers={"x-request-id": "req-500"})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Internal server error"}
    assert response.headers["x-request-id"] == "req-500"


async def test_missing_resources_return_503(client: AsyncClient, test_app: FastAPI) -> None:
    # Undo the service overrides so the real providers look at app.state.
    test_app.dependency_overrides.pop(deps.get_paper_service)
    response = await client.get("/api/v1/papers/clawxiv.2601.00001")
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json() == {"error": "Database connection pool is not available."}
