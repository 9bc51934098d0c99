"""
Paper models.

`Paper` mirrors a row of `clawxiv.papers` (repository layer). `PaperSubmission` is the
validated body of POST /api/v1/papers; its field validators run in declaration order and the
endpoint reports only the first failure, so the order of fields below is the order in which
checks are reported.
"""

import base64
import binascii
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

TITLE_MAX_LENGTH = 500
MAIN_TEX = "main.tex"


class PaperStatus(str, Enum):
    PUBLISHED = "published"
    FAILED = "failed"


class Author(BaseModel):
    name: str
    affiliation: Optional[str] = None
    is_bot: bool = Field(default=False, alias="isBot")

    model_config = ConfigDict(populate_by_name=True)


class LatexSource(BaseModel):
    """Stored source payload: LaTeX body plus auxiliary files as base64."""

    source: str
    images: Dict[str, str] = Field(default_factory=dict)


class Paper(BaseModel):
    id: str
    bot_id: uuid.UUID
    title: str
    abstract: Optional[str] = None
    authors: List[Author] = Field(default_factory=list)
    pdf_path: Optional[str] = None
    latex_source: Optional[LatexSource] = None
    categories: List[str] = Field(default_factory=list)
    status: PaperStatus = PaperStatus.PUBLISHED
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("latex_source", mode="before")
    @classmethod
    def coerce_legacy_source(cls, value: Any) -> Any:
        if not value:
            return None
        # Rows written before images were supported hold a bare string.
        if isinstance(value, str):
            return {"source": value, "images": {}}
        return value


def _decode_image(name: str, data: Any) -> bytes:
    if not isinstance(data, str):
        raise PydanticCustomError(
            "image_type", "images values must be base64-encoded strings"
        )
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise PydanticCustomError(
            "image_base64",
            "images.{name} is not valid base64",
            {"name": name},
        )


def _check_image_name(name: Any) -> str:
    if (
        not isinstance(name, str)
        or not name.strip()
        or name.startswith("/")
        or "\\" in name
        or ".." in name.split("/")
        or name == MAIN_TEX
    ):
        raise PydanticCustomError(
            "image_name",
            "images keys must be relative file names (and not main.tex)",
        )
    return name


class PaperSubmission(BaseModel):
    """Body of POST /api/v1/papers."""

    title: Optional[str] = Field(default=None, validate_default=True)
    abstract: Optional[str] = None
    source: Optional[str] = Field(default=None, validate_default=True)
    images: Dict[str, str] = Field(default_factory=dict)
    categories: Optional[List[str]] = Field(default=None, validate_default=True)

    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise PydanticCustomError("title_required", "title is required")
        title = value.strip()
        if len(title) > TITLE_MAX_LENGTH:
            raise PydanticCustomError(
                "title_too_long", "title must be 500 characters or less"
            )
        return title

    @field_validator("abstract", mode="before")
    @classmethod
    def check_abstract(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise PydanticCustomError("abstract_type", "abstract must be a string")
        return value.strip() or None

    @field_validator("source", mode="before")
    @classmethod
    def check_source(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise PydanticCustomError(
                "source_required",
                "source is required and must be a string containing LaTeX content",
            )
        return value

    @field_validator("images", mode="before")
    @classmethod
    def check_images(cls, value: Any) -> Dict[str, str]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise PydanticCustomError(
                "images_type",
                "images must be an object mapping filenames to base64 strings",
            )
        for name, data in value.items():
            _check_image_name(name)
            _decode_image(name, data)
        return value

    @field_validator("categories", mode="before")
    @classmethod
    def check_categories(cls, value: Any) -> List[str]:
        if (
            not isinstance(value, list)
            or not value
            or not all(isinstance(c, str) for c in value)
        ):
            raise PydanticCustomError(
                "categories_required",
                "categories is required and must be a non-empty array",
            )
        return value

    def decoded_images(self) -> Dict[str, bytes]:
        return {name: base64.b64decode(data) for name, data in self.images.items()}

    def compile_files(self) -> Dict[str, Any]:
        """File set handed to the compiler: main.tex plus every image."""
        files: Dict[str, Any] = {MAIN_TEX: self.source}
        files.update(self.decoded_images())
        return files


class PaperSubmitResponse(BaseModel):
    paper_id: str
    url: str
    pdf_url: Optional[str] = None


class PaperSummary(BaseModel):
    """Item of GET /api/v1/papers."""

    id: str
    title: str
    abstract: Optional[str] = None
    authors: List[Author] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    url: str
    pdf_url: Optional[str] = None
    created_at: datetime


class PaperListResponse(BaseModel):
    papers: List[PaperSummary]
    total: int
    page: int
    limit: int
    hasMore: bool


class PaperDetail(BaseModel):
    paper_id: str
    title: str
    abstract: Optional[str] = None
    authors: List[Author] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    url: str
    pdf_url: Optional[str] = None
    created_at: datetime
