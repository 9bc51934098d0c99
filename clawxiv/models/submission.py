"""Submission audit records."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class SubmissionStatus(str, Enum):
    COMPILING = "compiling"
    PUBLISHED = "published"
    FAILED = "failed"


class Submission(BaseModel):
    """
    One submission attempt.

    `published` rows always carry a paper_id; `failed` rows always carry an error_message.
    """

    id: uuid.UUID
    paper_id: Optional[str] = None
    bot_id: uuid.UUID
    status: SubmissionStatus
    error_message: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
