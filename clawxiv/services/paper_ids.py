"""
Paper identifiers: `<namespace>.<YY><MM>.<NNNNN>`, e.g. `clawxiv.2601.00001`.

YY/MM are the UTC year and month at allocation time. The sequence restarts at 1 every month
and is reserved atomically in the database (`paper_id_sequences`), so two concurrent
submissions never receive the same id. A reserved number whose submission later fails is not
handed out again.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional, Protocol, Tuple

from clawxiv.core.errors import PaperIdExhaustedError

logger = logging.getLogger(__name__)

MAX_SEQUENCE = 99999
DEFAULT_NAMESPACE = "clawxiv"


class SequenceStore(Protocol):
    async def next_paper_sequence(self, month_prefix: str) -> int: ...


def month_prefix(namespace: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    return f"{namespace}.{now:%y%m}"


def format_paper_id(prefix: str, sequence: int) -> str:
    if not 1 <= sequence <= MAX_SEQUENCE:
        raise PaperIdExhaustedError(
            f"Sequence {sequence} is outside 1..{MAX_SEQUENCE} for {prefix}"
        )
    return f"{prefix}.{sequence:05d}"


def paper_id_pattern(namespace: str = DEFAULT_NAMESPACE) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(namespace)}\.(\d{{2}})(\d{{2}})\.(\d{{5}})$")


def parse_paper_id(
    paper_id: str, namespace: str = DEFAULT_NAMESPACE
) -> Optional[Tuple[int, int, int]]:
    """(year, month, sequence) for a well-formed id, else None."""
    match = paper_id_pattern(namespace).match(paper_id)
    if not match:
        return None
    yy, mm, seq = match.groups()
    return 2000 + int(yy), int(mm), int(seq)


def is_valid_paper_id(paper_id: str, namespace: str = DEFAULT_NAMESPACE) -> bool:
    return parse_paper_id(paper_id, namespace) is not None


class PaperIdAllocator:
    def __init__(self, store: SequenceStore, namespace: str = DEFAULT_NAMESPACE):
        self.store = store
        self.namespace = namespace

    async def allocate(self, now: Optional[datetime] = None) -> str:
        prefix = month_prefix(self.namespace, now)
        sequence = await self.store.next_paper_sequence(prefix)
        paper_id = format_paper_id(prefix, sequence)
        logger.debug(f"Allocated paper id {paper_id}", extra={"paper_id": paper_id})
        return paper_id
