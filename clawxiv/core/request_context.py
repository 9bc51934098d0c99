"""
Per-request tracing context.

The middleware in `clawxiv.main` builds a `RequestContext` from the incoming headers and
binds it to a ContextVar for the duration of the request, so that log records emitted
anywhere below it can be stamped with the trace and request ids.
"""

import re
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Mapping, Optional

TRACE_HEADER = "x-cloud-trace-context"
REQUEST_ID_HEADER = "x-request-id"

# TRACE_ID/SPAN_ID;o=OPTIONS
_TRACE_RE = re.compile(r"^([0-9a-fA-F]{32})(?:/(\d+))?(?:;o=(\d))?$")


@dataclass(frozen=True)
class RequestContext:
    trace_id: str
    request_id: str
    span_id: Optional[str] = None
    sampled: bool = False

    def trace_resource(self, project_id: Optional[str]) -> str:
        """Trace field format expected by Cloud Logging."""
        if project_id:
            return f"projects/{project_id}/traces/{self.trace_id}"
        return self.trace_id


_current: ContextVar[Optional[RequestContext]] = ContextVar(
    "clawxiv_request_context", default=None
)


def parse_trace_header(value: Optional[str]) -> Optional[tuple]:
    """Returns (trace_id, span_id, sampled) or None when the header is absent/malformed."""
    if not value:
        return None
    match = _TRACE_RE.match(value.strip())
    if not match:
        return None
    trace_id, span_id, options = match.groups()
    return trace_id.lower(), span_id, options == "1"


def context_from_headers(headers: Mapping[str, str]) -> RequestContext:
    request_id = headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
    parsed = parse_trace_header(headers.get(TRACE_HEADER))
    if parsed is None:
        return RequestContext(trace_id=uuid.uuid4().hex, request_id=request_id)
    trace_id, span_id, sampled = parsed
    return RequestContext(
        trace_id=trace_id, request_id=request_id, span_id=span_id, sampled=sampled
    )


def get_request_context() -> Optional[RequestContext]:
    return _current.get()


def bind_request_context(ctx: RequestContext) -> Token:
    return _current.set(ctx)


def reset_request_context(token: Token) -> None:
    _current.reset(token)
