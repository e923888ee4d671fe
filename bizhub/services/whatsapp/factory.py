"""Builds the configured WhatsApp adapter from the settings table."""
from __future__ import annotations

import threading
from typing import Optional

from sqlalchemy.orm import Session

from bizhub.db.repositories import settings as settings_repo

from .base import ProviderConfig, WhatsAppAdapter
from .waha import WahaAdapter
from .wuzapi import WuzapiAdapter

SETTING_KEYS = ("whatsapp_api_type", "wuzapi_url", "wuzapi_admin_token", "waha_url", "waha_api_key")

_ADAPTERS = {"wuzapi": WuzapiAdapter, "waha": WahaAdapter}

_adapter: Optional[WhatsAppAdapter] = None
_adapter_lock = threading.Lock()


def load_provider_config(db: Session) -> ProviderConfig:
    return ProviderConfig.from_settings(settings_repo.get_values(db, SETTING_KEYS))


def create_adapter(config: ProviderConfig) -> WhatsAppAdapter:
    try:
        adapter_cls = _ADAPTERS[config.type]
    except KeyError as exc:
        raise ValueError(f"Unsupported WhatsApp API type: {config.type}") from exc
    return adapter_cls(config)


def get_whatsapp_adapter(db: Session) -> WhatsAppAdapter:
    """Return the cached adapter, rebuilt whenever the stored settings change."""
    global _adapter
    config = load_provider_config(db)
    with _adapter_lock:
        if _adapter is None or _adapter.config != config:
            _adapter = create_adapter(config)
        return _adapter


def reset_whatsapp_adapter_for_tests():
    global _adapter
    with _adapter_lock:
        _adapter = None
