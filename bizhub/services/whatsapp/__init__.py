"""WhatsApp gateway adapters and the session worker client."""

from .base import ProviderConfig, WhatsAppAdapter, WhatsAppProviderError, SESSION_STATUSES
from .factory import get_whatsapp_adapter, create_adapter, load_provider_config, reset_whatsapp_adapter_for_tests
from .worker_client import WorkerClient, WorkerConfig, map_worker_status

__all__ = [
    "ProviderConfig",
    "WhatsAppAdapter",
    "WhatsAppProviderError",
    "SESSION_STATUSES",
    "get_whatsapp_adapter",
    "create_adapter",
    "load_provider_config",
    "reset_whatsapp_adapter_for_tests",
    "WorkerClient",
    "WorkerConfig",
    "map_worker_status",
]
