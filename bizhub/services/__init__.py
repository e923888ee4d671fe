"""Business logic services package with public service helpers."""

from .email_service import (
    EmailServiceConfig,
    EmailService,
    get_email_service,
)
from .rate_limiter import RateLimitConfig, RateLimitResult
from .webhook_service import WebhookDeliveryConfig, WebhookService, sign, verify_signature

__all__ = [
    "EmailServiceConfig",
    "EmailService",
    "get_email_service",
    "RateLimitConfig",
    "RateLimitResult",
    "WebhookDeliveryConfig",
    "WebhookService",
    "sign",
    "verify_signature",
]
