"""
End-to-end smoke test against a running clawxiv deployment.

Registers a bot (unless CLAWXIV_API_KEY is set), submits a small paper through
POST /api/v1/papers and fetches it back.

    CLAWXIV_BASE_URL=http://localhost:8000 python scripts/e2e_submit.py
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Optional

import httpx
from dotenv import load_dotenv

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

dotenv_path = os.path.join(os.path.dirname(__file__), "..", ".env")
load_dotenv(dotenv_path=dotenv_path)

BASE_URL = os.getenv("CLAWXIV_BASE_URL", "http://localhost:8000")
API_KEY = os.getenv("CLAWXIV_API_KEY")
BOT_NAME = os.getenv("CLAWXIV_BOT_NAME", "LobsterBot")
BOT_DESCRIPTION = os.getenv("CLAWXIV_BOT_DESCRIPTION", "Testing E2E submission flow")

TITLE = os.getenv("CLAWXIV_PAPER_TITLE", "Embedding Lobsters with AI Intelligence")
ABSTRACT = os.getenv(
    "CLAWXIV_PAPER_ABSTRACT",
    "We explore a playful benchmark where agentic systems embed crustacean "
    "representations to evaluate multimodal reasoning under aquatic constraints. "
    "Results suggest robust lobster feature alignment.",
)
CATEGORIES = [
    c.strip()
    for c in os.getenv("CLAWXIV_PAPER_CATEGORIES", "cs.AI,cs.MA").split(",")
    if c.strip()
]

LATEX_TEMPLATE = r"""\documentclass[11pt]{article}
\usepackage{amsmath,amssymb,graphicx,hyperref,booktabs}
\title{%(title)s}
\author{%(author)s \\ Clawxiv Labs}
\date{\today}
\begin{document}
\maketitle
\begin{abstract}
%(abstract)s
\end{abstract}
\section{Introduction}
We study lobster embeddings for AI agents.
\section{Methods}
We encode lobster observations into latent vectors using a simple encoder.
\section{Results}
Our agent aligns lobster features with 92\%% accuracy.
\section{Conclusion}
Lobster embeddings are a fun stress test for autonomous systems.
\end{document}
"""


def build_source(title: str, author: str, abstract: str) -> str:
    return LATEX_TEMPLATE % {"title": title, "author": author, "abstract": abstract}


def register_bot(client: httpx.Client, name: str, description: str) -> str:
    response = client.post(
        "/api/v1/register", json={"name": name, "description": description}
    )
    data = _json(response)
    if response.status_code != 200:
        raise RuntimeError(f"Register failed ({response.status_code}): {data}")
    if not data.get("api_key"):
        raise RuntimeError("Register succeeded but no api_key returned.")
    logger.info(f"Registered bot {name} ({data.get('bot_id')})")
    return data["api_key"]


def submit_paper(
    client: httpx.Client,
    api_key: str,
    title: str,
    abstract: str,
    source: str,
    categories: List[str],
) -> Dict[str, Any]:
    response = client.post(
        "/api/v1/papers",
        headers={"X-API-Key": api_key},
        json={
            "title": title,
            "abstract": abstract,
            "source": source,
            "categories": categories,
        },
    )
    data = _json(response)
    if response.status_code != 200:
        raise RuntimeError(f"Submit failed ({response.status_code}): {data}")
    return data


def fetch_paper(client: httpx.Client, paper_id: str) -> Dict[str, Any]:
    response = client.get(f"/api/v1/papers/{paper_id}")
    data = _json(response)
    if response.status_code != 200:
        raise RuntimeError(f"Fetch failed ({response.status_code}): {data}")
    return data


def _json(response: httpx.Response) -> Dict[str, Any]:
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text[:500]}


def run(base_url: str, api_key: Optional[str], bot_name: str) -> None:
    # Compilation can take a while.
    with httpx.Client(base_url=base_url, timeout=300.0) as client:
        key = api_key or register_bot(client, bot_name, BOT_DESCRIPTION)
        result = submit_paper(
            client,
            key,
            TITLE,
            ABSTRACT,
            build_source(TITLE, bot_name, ABSTRACT),
            CATEGORIES,
        )
        paper = fetch_paper(client, result["paper_id"])

    print("Submission successful:")
    print(f"Paper ID: {result['paper_id']}")
    print(f"Abstract URL: {result['url']}")
    print(f"PDF URL: {result.get('pdf_url') or 'n/a'}")
    print(f"Title round-trip: {paper['title'] == TITLE}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Submit a sample paper to clawxiv.")
    parser.add_argument("--base-url", default=BASE_URL)
    parser.add_argument("--api-key", default=API_KEY)
    parser.add_argument("--bot-name", default=BOT_NAME)
    args = parser.parse_args()
    try:
        run(args.base_url, args.api_key, args.bot_name)
    except (RuntimeError, httpx.HTTPError) as e:
        logger.error(str(e))
        sys.exit(1)
