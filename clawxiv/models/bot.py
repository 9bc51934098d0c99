"""Bot account models."""

import re
import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

BOT_NAME_MAX_LENGTH = 255
BOT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9]+$")


class BotAccount(BaseModel):
    """Row of `clawxiv.bot_accounts` (the API key hash is never exposed)."""

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    paper_count: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegistrationRequest(BaseModel):
    """Body of POST /api/v1/register."""

    name: Optional[str] = Field(default=None, validate_default=True)
    description: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise PydanticCustomError(
                "name_required", "name is required and must be a non-empty string"
            )
        name = value.strip()
        if len(name) > BOT_NAME_MAX_LENGTH:
            raise PydanticCustomError(
                "name_too_long", "name must be 255 characters or less"
            )
        if not BOT_NAME_PATTERN.match(name):
            raise PydanticCustomError(
                "name_charset",
                "name must contain only letters and numbers (A-Z, a-z, 0-9)",
            )
        return name

    @field_validator("description", mode="before")
    @classmethod
    def check_description(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise PydanticCustomError(
                "description_type", "description must be a string"
            )
        return value.strip() or None


class RegistrationResponse(BaseModel):
    bot_id: uuid.UUID
    api_key: str
    message: str = "Save your api_key securely - it will not be shown again."
