"""
API key generation, parsing, and hashing utilities.

Responsibilities:
- Generate key strings of the form: bz_<token_id>_<secret>
- Hash secrets with SHA-256 (keys are high-entropy, lookups happen on every request)
- Verify secrets with constant-time comparison
- Provide helpers to derive display prefix and last four for UI
"""
from __future__ import annotations

import hashlib
import hmac
import secrets
import uuid
from dataclasses import dataclass
from typing import Optional, Tuple


KEY_PREFIX = "bz_"


@dataclass(frozen=True)
class ParsedKey:
    token_id: str
    secret: str


def generate_token_id() -> str:
    """Return a short hex id suitable for DB lookup and logs."""
    # Hex avoids '_' so the key splits unambiguously
    return uuid.uuid4().hex[:16]


def generate_secret(length: int = 32) -> str:
    return secrets.token_urlsafe(length)


def build_key_string(token_id: str, secret: str) -> str:
    return f"{KEY_PREFIX}{token_id}_{secret}"


def looks_like_api_key(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(KEY_PREFIX)


def parse_key(key: str) -> Optional[ParsedKey]:
    """Parse a key string into token_id and secret.

    Returns None if format is invalid.
    """
    if not key or not key.startswith(KEY_PREFIX):
        return None
    body = key[len(KEY_PREFIX):]
    # token_id is hex, secret may contain '_' so split once
    idx = body.find("_")
    if idx <= 0:
        return None
    token_id = body[:idx]
    secret = body[idx + 1:]
    if not token_id or not secret:
        return None
    return ParsedKey(token_id=token_id, secret=secret)


def hash_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def verify_secret(secret: str, expected_hash: str) -> bool:
    if not secret or not expected_hash:
        return False
    return hmac.compare_digest(hash_secret(secret), expected_hash)


def derive_display_parts(full_key: str) -> Tuple[str, str]:
    """Return (prefix, last_four) for UI display.

    Prefix: first 8 chars of the key body (after bz_)
    Last four: last 4 chars of the secret part
    """
    parsed = parse_key(full_key)
    if not parsed:
        return "", ""
    body = full_key[len(KEY_PREFIX):]
    return body[:8], parsed.secret[-4:]


def generate_key() -> Tuple[str, str, str]:
    """Generate a new key and return (token_id, secret, full_key)."""
    tid = generate_token_id()
    sec = generate_secret()
    return tid, sec, build_key_string(tid, sec)
