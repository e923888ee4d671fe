"""Environment flag helpers and the development-mode guard."""

import os
from typing import Optional, Set
from urllib.parse import urlparse

_TRUTHY = {"1", "true", "yes", "on"}
_LOCAL_HOSTS: Set[str] = {"localhost", "127.0.0.1", "::1"}


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    """Integer env var; unset, blank or malformed values fall back to `default`."""
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _hostname(url_value: str) -> Optional[str]:
    url_value = (url_value or "").strip()
    if not url_value:
        return None
    return urlparse(url_value if "://" in url_value else f"http://{url_value}").hostname


def dev_mode_hosts() -> Set[str]:
    extra = os.getenv("DEV_MODE_ALLOWED_HOSTS", "")
    return _LOCAL_HOSTS | {h.strip().lower() for h in extra.split(",") if h.strip()}


def dev_mode_active() -> bool:
    """True when DEV_MODE is on and the deployment is local.

    Raises RuntimeError when DEV_MODE is set for a non-local APP_BASE_URL, or
    when APP_BASE_URL is missing outside tests without ALLOW_DEV_MODE.
    """
    if not env_flag("DEV_MODE"):
        return False

    hostname = _hostname(os.getenv("APP_BASE_URL", ""))
    if hostname is None:
        if not env_flag("ALLOW_DEV_MODE") and not os.getenv("PYTEST_CURRENT_TEST"):
            raise RuntimeError("DEV_MODE=true requires a localhost APP_BASE_URL or ALLOW_DEV_MODE=true")
        return True

    allowed = dev_mode_hosts()
    if hostname.lower() not in allowed:
        raise RuntimeError(
            f"DEV_MODE=true is not permitted for APP_BASE_URL host '{hostname}'. Allowed hosts: {sorted(allowed)}"
        )
    return True
