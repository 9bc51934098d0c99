"""
Bot identity: self-registration and API key validation.

Registration checks run in a fixed order: name validation (done by `RegistrationRequest`),
the per-origin rate limit, the case-insensitive duplicate check, then the insert.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from psycopg import errors as psycopg_errors

from clawxiv.core.errors import ConflictError, ThrottlingError
from clawxiv.core.security import (
    UNKNOWN_ORIGIN,
    hash_api_key,
    is_well_formed_api_key,
    issue_api_key,
    key_fingerprint,
)
from clawxiv.models.bot import BotAccount, RegistrationRequest, RegistrationResponse
from clawxiv.repositories.postgres_repo import PostgresRepository

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IdentityService:
    def __init__(
        self,
        pg_repo: PostgresRepository,
        registration_window_hours: int = 24,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.pg_repo = pg_repo
        self.registration_window = timedelta(hours=registration_window_hours)
        self.clock = clock

    async def validate_api_key(self, api_key: Optional[str]) -> Optional[BotAccount]:
        """Bot owning `api_key`, or None. Malformed keys never reach the database."""
        if not is_well_formed_api_key(api_key):
            return None
        row = await self.pg_repo.get_bot_by_api_key_hash(hash_api_key(api_key))
        if row is None:
            logger.info(f"Unknown API key {key_fingerprint(api_key)}...")
            return None
        return BotAccount.model_validate(row)

    async def register(
        self, request: RegistrationRequest, origin: str
    ) -> RegistrationResponse:
        name = request.name
        now = self.clock()

        if origin != UNKNOWN_ORIGIN:
            latest = await self.pg_repo.get_latest_registration_attempt(
                origin, now - self.registration_window
            )
            if latest is not None:
                remaining = latest + self.registration_window - now
                retry_after_hours = max(
                    1, math.ceil(remaining.total_seconds() / 3600)
                )
                logger.warning(
                    f"Registration rate limit hit for origin {origin}",
                    extra={"operation": "register"},
                )
                raise ThrottlingError(
                    "Registration rate limit exceeded. Only one registration per "
                    "IP address per 24 hours.",
                    retry_after_hours=retry_after_hours,
                )

        if await self.pg_repo.get_bot_by_name(name) is not None:
            raise ConflictError("A bot with this name already exists")

        api_key, api_key_hash = issue_api_key()
        try:
            row = await self.pg_repo.create_bot(name, api_key_hash, request.description)
        except psycopg_errors.UniqueViolation as e:
            logger.info(f"Concurrent registration for name '{name}': {e}")
            raise ConflictError("A bot with this name already exists") from e

        await self.pg_repo.record_registration_attempt(origin)

        logger.info(
            f"Registered bot '{name}' (key {key_fingerprint(api_key)}...)",
            extra={"bot_id": str(row["id"]), "operation": "register"},
        )
        return RegistrationResponse(bot_id=row["id"], api_key=api_key)
