"""
Domain-split SQLAlchemy models with an aggregator.

Exposes `Base`, `now_utc` and every ORM class under `bizhub.db.models`.
"""

from .base import Base, now_utc, ensure_aware  # re-export

# Domain models
from .users import User, UserSession
from .rbac import Permission, Profile, HierarchyGroup, Collaborator, profile_permissions
from .clients import Client, Address
from .api_keys import ApiKey, ApiLog, RateLimitEntry
from .webhooks import WebhookConfig, WebhookLog
from .tasks import Task, TaskAttachment, TaskComment, TaskLog, TaskRecurrence
from .helpdesk import Department, Ticket, TicketMessage, TicketLog, TicketObserver
from .purchasing import CostCenter, Product, PurchaseRequest, PurchaseRequestItem, Quotation, QuotationItem
from .service_orders import (
    ServiceOrder,
    ServiceOrderItem,
    ServiceOrderHistory,
    Quote,
    QuoteItem,
    QuoteHistory,
    TechnicalReport,
    TechnicalReportItem,
    TechnicalReportHistory,
)
from .email import EmailAccount, EmailFolder, EmailMessage
from .settings import Setting, SystemModule
from .audit import AuditLog

__all__ = [
    # base
    "Base",
    "now_utc",
    "ensure_aware",
    # identity
    "User",
    "UserSession",
    # rbac
    "Permission",
    "Profile",
    "HierarchyGroup",
    "Collaborator",
    "profile_permissions",
    # crm
    "Client",
    "Address",
    # api access
    "ApiKey",
    "ApiLog",
    "RateLimitEntry",
    "WebhookConfig",
    "WebhookLog",
    # tasks
    "Task",
    "TaskAttachment",
    "TaskComment",
    "TaskLog",
    "TaskRecurrence",
    # helpdesk
    "Department",
    "Ticket",
    "TicketMessage",
    "TicketLog",
    "TicketObserver",
    # erp
    "CostCenter",
    "Product",
    "PurchaseRequest",
    "PurchaseRequestItem",
    "Quotation",
    "QuotationItem",
    "ServiceOrder",
    "ServiceOrderItem",
    "ServiceOrderHistory",
    "Quote",
    "QuoteItem",
    "QuoteHistory",
    "TechnicalReport",
    "TechnicalReportItem",
    "TechnicalReportHistory",
    # webmail
    "EmailAccount",
    "EmailFolder",
    "EmailMessage",
    # settings/audit
    "Setting",
    "SystemModule",
    "AuditLog",
]
