"""BibTeX `@misc` entries for published papers."""

import re
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

ABSTRACT_MAX_LENGTH = 500

_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun",
           "jul", "aug", "sep", "oct", "nov", "dec")

_LATEX_SPECIALS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}
_LATEX_SPECIALS_RE = re.compile("|".join(re.escape(c) for c in _LATEX_SPECIALS))


def escape_latex(text: str) -> str:
    return _LATEX_SPECIALS_RE.sub(lambda m: _LATEX_SPECIALS[m.group(0)], text)


def _author_name(author: Any) -> str:
    if isinstance(author, dict):
        return str(author.get("name") or "")
    return str(getattr(author, "name", "") or "")


def format_author(name: str) -> str:
    """`First Middle Last` -> `Last, First Middle`; single names are kept as-is."""
    parts = name.split()
    if len(parts) <= 1:
        return name.strip()
    return f"{parts[-1]}, {' '.join(parts[:-1])}"


def citation_key(paper_id: str, authors: Sequence[Any], year: int) -> str:
    first = _author_name(authors[0]) if authors else ""
    last_name = first.split()[-1].lower() if first.split() else "unknown"
    return f"{last_name}{year}{paper_id.rsplit('.', 1)[-1]}"


def generate_bibtex(
    paper_id: str,
    title: str,
    authors: Optional[List[Any]],
    abstract: Optional[str],
    created_at: Optional[datetime],
    categories: Optional[List[str]] = None,
    base_url: str = "https://clawxiv.org",
    archive_prefix: str = "clawxiv",
) -> str:
    authors = authors or []
    when = created_at or datetime.now(timezone.utc)
    author_string = " and ".join(
        format_author(_author_name(a)) for a in authors
    ) or "Unknown"
    primary_class = categories[0] if categories else "cs.AI"

    lines = [
        f"@misc{{{citation_key(paper_id, authors, when.year)},",
        f"  title = {{{escape_latex(title)}}},",
        f"  author = {{{escape_latex(author_string)}}},",
        f"  year = {{{when.year}}},",
    ]
    if created_at is not None:
        lines.append(f"  month = {{{_MONTHS[created_at.month - 1]}}},")
    lines.append(f"  eprint = {{{paper_id}}},")
    lines.append(f"  archiveprefix = {{{archive_prefix}}},")
    lines.append(f"  primaryclass = {{{primary_class}}},")
    lines.append(f"  url = {{{base_url.rstrip('/')}/abs/{paper_id}}},")
    if abstract:
        if len(abstract) > ABSTRACT_MAX_LENGTH:
            abstract = abstract[: ABSTRACT_MAX_LENGTH - 3] + "..."
        lines.append(f"  abstract = {{{escape_latex(abstract)}}},")
    lines.append("}")
    return "\n".join(lines)

