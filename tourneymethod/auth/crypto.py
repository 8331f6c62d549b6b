"""Cryptographic helpers for the authentication subsystem."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional

from .config import SESSION_SECRET


def generate_token(length: int = 32) -> str:
    """Generate a URL-safe random token."""

    return secrets.token_urlsafe(length)


def generate_state_token() -> str:
    """Generate a fixed-length CSRF state value (256 bits, 64 hex characters)."""

    return secrets.token_hex(32)


def hash_token(value: str, *, secret: str = SESSION_SECRET) -> str:
    """Create a deterministic HMAC hash of a token."""

    return hmac.new(secret.encode("utf-8"), msg=value.encode("utf-8"), digestmod=hashlib.sha256).hexdigest()


def tokens_match(expected: Optional[str], received: Optional[str]) -> bool:
    """Constant-time comparison that tolerates missing or non-ASCII input."""

    if not expected or not received:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def redact(value: Optional[str], visible: int = 8) -> str:
    """Shorten a secret for log output."""

    if not value:
        return "<none>"
    return f"{value[:visible]}..."
