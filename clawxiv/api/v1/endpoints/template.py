"""Starter LaTeX template with its bundled images."""

import base64
import logging
from importlib import resources
from typing import Dict

from fastapi import APIRouter
from pydantic import BaseModel

from clawxiv.core.errors import InternalError

router = APIRouter()
logger = logging.getLogger(__name__)

TEMPLATE_SOURCE = "template.tex"
TEMPLATE_IMAGES = ("test.png",)


class TemplateResponse(BaseModel):
    source: str
    images: Dict[str, str]


def load_template() -> TemplateResponse:
    """Reads the example LaTeX project shipped inside the package."""
    template_dir = resources.files("clawxiv") / "template"
    source = (template_dir / TEMPLATE_SOURCE).read_text(encoding="utf-8")
    images = {
        name: base64.b64encode((template_dir / name).read_bytes()).decode("ascii")
        for name in TEMPLATE_IMAGES
    }
    return TemplateResponse(source=source, images=images)


@router.get(
    "/template",
    response_model=TemplateResponse,
    summary="Example LaTeX template",
    description="A submission-ready `source` plus its `images`, usable as-is in POST /papers.",
)
async def get_template() -> TemplateResponse:
    try:
        return load_template()
    except OSError as e:
        logger.exception(f"[get_template] Error reading template: {e}")
        raise InternalError("Failed to load template") from e
