"""
Database-backed fixed-window rate limiter.

One row per key (`rate_limit:<api key id>`) holds the hit count and the
moment the current window resets.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict

from sqlalchemy.orm import Session

from bizhub.db import models
from bizhub.db.models import ensure_aware
from bizhub.utils.runtime import env_int

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    window_ms: int = 60_000
    max_requests: int = 100

    @classmethod
    def from_env(cls) -> "RateLimitConfig":
        window_ms = env_int("RATE_LIMIT_WINDOW_MS", 60_000)
        max_requests = env_int("RATE_LIMIT_MAX_REQUESTS", 100)
        return cls(
            window_ms=window_ms if window_ms > 0 else 60_000,
            max_requests=max_requests if max_requests > 0 else 100,
        )


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_time: datetime
    total_hits: int

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_time.timestamp())),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds())
        return headers

    def retry_after_seconds(self) -> int:
        delta = (self.reset_time - datetime.now(timezone.utc)).total_seconds()
        return max(1, int(delta + 0.999))


def key_for_api_key(api_key_id) -> str:
    return f"rate_limit:{api_key_id}"


def check(db: Session, key: str, limit: int, window_ms: int) -> RateLimitResult:
    """Count one hit for `key` and report whether it fits in the current window."""
    now = datetime.now(timezone.utc)
    entry = db.query(models.RateLimitEntry).filter(models.RateLimitEntry.key == key).first()
    if entry is None or ensure_aware(entry.reset_at) <= now:
        reset_at = now + timedelta(milliseconds=window_ms)
        if entry is None:
            entry = models.RateLimitEntry(key=key, count=1, reset_at=reset_at)
            db.add(entry)
        else:
            entry.count = 1
            entry.reset_at = reset_at
    else:
        entry.count = (entry.count or 0) + 1
    db.commit()

    reset_time = ensure_aware(entry.reset_at)
    total = entry.count
    allowed = total <= limit
    if not allowed:
        logger.info("rate_limit_exceeded key=%s hits=%s limit=%s", key, total, limit)
    return RateLimitResult(
        allowed=allowed,
        limit=limit,
        remaining=max(0, limit - total),
        reset_time=reset_time,
        total_hits=total,
    )


def cleanup_expired(db: Session) -> int:
    count = (
        db.query(models.RateLimitEntry)
        .filter(models.RateLimitEntry.reset_at < datetime.now(timezone.utc))
        .delete(synchronize_session=False)
    )
    db.commit()
    return count
