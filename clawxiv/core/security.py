"""API key issuance and hashing for bot accounts."""

import hashlib
import re
import secrets
from typing import Mapping, Optional, Tuple

API_KEY_PREFIX = "clx_"
API_KEY_HEADER = "X-API-Key"
API_KEY_PATTERN = re.compile(r"^clx_[0-9a-f]{32}$")

# Used when no client address can be determined; exempt from registration limits.
UNKNOWN_ORIGIN = "unknown"


def generate_api_key() -> str:
    """Returns `clx_` followed by 128 random bits as lowercase hex."""
    return f"{API_KEY_PREFIX}{secrets.token_hex(16)}"


def hash_api_key(api_key: str) -> str:
    """SHA-256 hex digest (64 chars), the only form that is persisted."""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def issue_api_key() -> Tuple[str, str]:
    api_key = generate_api_key()
    return api_key, hash_api_key(api_key)


def is_well_formed_api_key(api_key: Optional[str]) -> bool:
    if not api_key or not api_key.startswith(API_KEY_PREFIX):
        return False
    return API_KEY_PATTERN.match(api_key) is not None


def key_fingerprint(api_key: str) -> str:
    """Short, log-safe prefix of a key."""
    return api_key[:8]


def client_origin(headers: Mapping[str, str]) -> str:
    """
    Origin address of a request.

    First entry of X-Forwarded-For, then X-Real-IP, then `UNKNOWN_ORIGIN`.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return UNKNOWN_ORIGIN
