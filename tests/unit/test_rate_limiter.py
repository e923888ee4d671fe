from datetime import datetime, timedelta, timezone

from bizhub.db import models
from bizhub.services import rate_limiter


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_WINDOW_MS", "1000")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "3")
    cfg = rate_limiter.RateLimitConfig.from_env()
    assert (cfg.window_ms, cfg.max_requests) == (1000, 3)

    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "abc")
    assert rate_limiter.RateLimitConfig.from_env().max_requests == 100


def test_window_counts_and_blocks(db_session):
    key = rate_limiter.key_for_api_key("k1")
    results = [rate_limiter.check(db_session, key, 2, 60_000) for _ in range(3)]
    assert [r.allowed for r in results] == [True, True, False]
    assert [r.remaining for r in results] == [1, 0, 0]
    assert results[2].total_hits == 3

    headers = results[2].headers()
    assert headers["X-RateLimit-Limit"] == "2"
    assert headers["X-RateLimit-Remaining"] == "0"
    assert int(headers["Retry-After"]) >= 1
    assert "Retry-After" not in results[0].headers()


def test_expired_window_resets(db_session):
    key = rate_limiter.key_for_api_key("k2")
    db_session.add(models.RateLimitEntry(
        key=key, count=50, reset_at=datetime.now(timezone.utc) - timedelta(seconds=5)
    ))
    db_session.commit()
    result = rate_limiter.check(db_session, key, 2, 60_000)
    assert result.allowed is True
    assert result.total_hits == 1


def test_cleanup_expired(db_session):
    now = datetime.now(timezone.utc)
    db_session.add_all([
        models.RateLimitEntry(key="old", count=1, reset_at=now - timedelta(minutes=1)),
        models.RateLimitEntry(key="live", count=1, reset_at=now + timedelta(minutes=1)),
    ])
    db_session.commit()
    assert rate_limiter.cleanup_expired(db_session) == 1
    assert [e.key for e in db_session.query(models.RateLimitEntry).all()] == ["live"]
