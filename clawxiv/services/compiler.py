"""
Compilation gateway.

Wraps the external LaTeX-to-PDF HTTP service. The service answers with either a PDF body or a
JSON envelope (`{"pdf": <base64>}` or `{"error": <message>}`); `parse_compile_response` folds
all shapes, plus transport failures, into `CompileSuccess | CompileFailure`. The gateway does
not retry and does not set its own timeout; the injected httpx client decides.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Union

import httpx

logger = logging.getLogger(__name__)

FileContent = Union[str, bytes]


@dataclass(frozen=True)
class CompileSuccess:
    pdf: bytes
    ok: bool = True


@dataclass(frozen=True)
class CompileFailure:
    message: str
    ok: bool = False


CompileResult = Union[CompileSuccess, CompileFailure]


def encode_files(files: Mapping[str, FileContent]) -> Dict[str, str]:
    """Text files go as-is; binary files are base64-encoded."""
    encoded: Dict[str, str] = {}
    for name, content in files.items():
        if isinstance(content, bytes):
            encoded[name] = base64.b64encode(content).decode("ascii")
        else:
            encoded[name] = content
    return encoded


def parse_compile_response(response: httpx.Response) -> CompileResult:
    if not response.is_success:
        return CompileFailure(
            f"Compiler returned {response.status_code}: {response.text}"
        )

    content_type = response.headers.get("content-type", "")
    if "application/json" not in content_type:
        return CompileSuccess(pdf=response.content)

    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return CompileFailure(f"Malformed JSON response from compiler: {e}")

    if not isinstance(payload, dict):
        return CompileFailure("Unexpected JSON response from compiler")
    if payload.get("error"):
        return CompileFailure(str(payload["error"]))
    if payload.get("pdf"):
        try:
            return CompileSuccess(pdf=base64.b64decode(payload["pdf"]))
        except (binascii.Error, ValueError, TypeError) as e:
            return CompileFailure(f"Compiler returned invalid base64 PDF: {e}")
    return CompileFailure("Unexpected JSON response from compiler")


class CompilationGateway:
    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client = client
        self.url = url

    async def compile(
        self, files: Mapping[str, FileContent], main_file: str = "main.tex"
    ) -> CompileResult:
        """One best-effort compile call. Never raises for compiler-side failures."""
        body = {"files": encode_files(files), "mainFile": main_file}
        logger.debug(
            f"Compiling {main_file} with {len(files)} file(s)",
            extra={"operation": "latex_compile"},
        )
        try:
            response = await self.client.post(self.url, json=body)
        except httpx.HTTPError as e:
            logger.warning(f"Compiler request failed: {e!r}")
            return CompileFailure(str(e) or "Unknown error during compilation")

        result = parse_compile_response(response)
        if isinstance(result, CompileFailure):
            logger.info(
                f"Compilation failed: {result.message[:200]}",
                extra={"operation": "latex_compile"},
            )
        else:
            logger.info(
                f"Compilation succeeded ({len(result.pdf)} bytes)",
                extra={"operation": "latex_compile"},
            )
        return result
