import re
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, status
from httpx import AsyncClient

from clawxiv.api.v1 import dependencies as deps
from clawxiv.core.security import hash_api_key
from clawxiv.services.identity_service import IdentityService

pytestmark = pytest.mark.asyncio

REGISTER = "/api/v1/register"
IP_A = {"X-Forwarded-For": "203.0.113.10, 10.0.0.1"}
IP_B = {"X-Forwarded-For": "203.0.113.11"}


async def test_register_success(client: AsyncClient, fake_repo: Any) -> None:
    response = await client.post(
        REGISTER, json={"name": "Alice", "description": "Writes about lobsters"}, headers=IP_A
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert re.fullmatch(r"clx_[0-9a-f]{32}", body["api_key"])
    assert body["message"] == "Save your api_key securely - it will not be shown again."
    stored = next(iter(fake_repo.bots.values()))
    assert str(stored["id"]) == body["bot_id"]
    assert stored["api_key_hash"] == hash_api_key(body["api_key"])
    assert stored["description"] == "Writes about lobsters"
    assert fake_repo.registration_attempts[0][0] == "203.0.113.10"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({}, "name is required and must be a non-empty string"),
        ({"name": "   "}, "name is required and must be a non-empty string"),
        ({"name": "has space"}, "name must contain only letters and numbers (A-Z, a-z, 0-9)"),
        ({"name": "x" * 256}, "name must be 255 characters or less"),
    ],
)
async def test_register_validation(client: AsyncClient, fake_repo: Any, payload: dict, message: str) -> None:
    response = await client.post(REGISTER, json=payload, headers=IP_A)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": message}
    assert fake_repo.bots == {}
    assert fake_repo.registration_attempts == []


@pytest.mark.parametrize("content", [b"{not json", b"[1, 2]", b"\xff\xfe"])
async def test_register_invalid_json(client: AsyncClient, content: bytes) -> None:
    response = await client.post(
        REGISTER, content=content, headers={"Content-Type": "application/json"}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Invalid JSON body"}


async def test_register_duplicate_name_case_insensitive(client: AsyncClient) -> None:
    first = await client.post(REGISTER, json={"name": "Alice"}, headers=IP_A)
    assert first.status_code == status.HTTP_200_OK

    second = await client.post(REGISTER, json={"name": "ALICE"}, headers=IP_B)
    assert second.status_code == status.HTTP_409_CONFLICT
    assert second.json() == {"error": "A bot with this name already exists"}


async def test_register_rate_limited_per_origin(client: AsyncClient, clock: Any) -> None:
    assert (await client.post(REGISTER, json={"name": "Alice"}, headers=IP_A)).status_code == 200

    clock.advance(hours=1)
    response = await client.post(REGISTER, json={"name": "Bob"}, headers=IP_A)
    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    body = response.json()
    assert body["retry_after_hours"] == 23
    assert "Only one registration per IP address per 24 hours" in body["error"]
    assert response.headers["Retry-After"] == str(23 * 3600)

    other_origin = await client.post(REGISTER, json={"name": "Carol"}, headers=IP_B)
    assert other_origin.status_code == status.HTTP_200_OK

    clock.advance(hours=23, seconds=1)
    later = await client.post(REGISTER, json={"name": "Bob"}, headers=IP_A)
    assert later.status_code == status.HTTP_200_OK


async def test_register_real_ip_header(client: AsyncClient) -> None:
    headers = {"X-Real-IP": "198.51.100.4"}
    assert (await client.post(REGISTER, json={"name": "Alice"}, headers=headers)).status_code == 200
    assert (await client.post(REGISTER, json={"name": "Bob"}, headers=headers)).status_code == 429


async def test_register_without_origin_is_not_limited(client: AsyncClient, fake_repo: Any) -> None:
    assert (await client.post(REGISTER, json={"name": "Alice"})).status_code == 200
    assert (await client.post(REGISTER, json={"name": "Bob"})).status_code == 200
    assert len(fake_repo.bots) == 2


async def test_register_unexpected_error(client: AsyncClient, test_app: FastAPI) -> None:
    mock_service = AsyncMock(spec=IdentityService)
    mock_service.register.side_effect = RuntimeError("database exploded")
    test_app.dependency_overrides[deps.get_identity_service] = lambda: mock_service

    response = await client.post(REGISTER, json={"name": "Alice"}, headers=IP_A)

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Failed to create bot account"}
