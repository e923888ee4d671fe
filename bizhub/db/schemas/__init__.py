"""
Domain-split Pydantic schemas with an aggregator.

Every schema is importable as `bizhub.db.schemas.<Name>`.
"""

from .users import LoginRequest, LoginResponse, UserBase, UserCreate, UserUpdate, User, PaginatedUsers
from .rbac import (
    PermissionBase,
    PermissionCreate,
    PermissionUpdate,
    Permission,
    ProfileBase,
    ProfileCreate,
    ProfileUpdate,
    Profile,
    HierarchyGroupBase,
    HierarchyGroupCreate,
    HierarchyGroupUpdate,
    HierarchyGroup,
    CollaboratorBase,
    CollaboratorCreate,
    CollaboratorUpdate,
    Collaborator,
    PaginatedCollaborators,
)
from .clients import AddressCreate, Address, ClientBase, ClientCreate, ClientUpdate, Client, PaginatedClients
from .api_keys import (
    ApiKeyCreateRequest,
    ApiKeyUpdateRequest,
    ApiKeyResponse,
    ApiKeyCreateResponse,
    ApiKeyStats,
    ApiLog,
    PaginatedApiLogs,
)
from .webhooks import (
    WEBHOOK_EVENTS,
    WebhookCreate,
    WebhookUpdate,
    Webhook,
    WebhookLog,
    PaginatedWebhookLogs,
    WebhookDeliveryResult,
)
from .tasks import (
    TaskCreate,
    TaskUpdate,
    Task,
    TaskDetail,
    TaskComment,
    TaskCommentCreate,
    TaskLog,
    TaskAttachment,
    PaginatedTasks,
    TaskStats,
    RecurrenceCreate,
    Recurrence,
    RecurrenceStats,
    RecurrenceRunResult,
)
from .helpdesk import (
    DepartmentCreate,
    DepartmentUpdate,
    Department,
    TicketCreate,
    TicketUpdate,
    Ticket,
    TicketDetail,
    TicketMessageCreate,
    TicketMessage,
    TicketLog,
    PaginatedTickets,
    TicketForward,
    TicketClientLink,
    TicketObserverCreate,
    TicketObserver,
)
from .purchasing import (
    CostCenterCreate,
    CostCenter,
    ProductCreate,
    Product,
    PurchaseRequestItemCreate,
    PurchaseRequestCreate,
    PurchaseRequest,
    PaginatedPurchaseRequests,
    ApprovalRequest,
    Quotation,
)
from .service_orders import (
    ServiceOrderItemCreate,
    ServiceOrderCreate,
    ServiceOrderUpdate,
    ServiceOrder,
    ServiceOrderDetail,
    PaginatedServiceOrders,
    QuoteItemCreate,
    QuoteCreate,
    QuoteUpdate,
    QuoteDecision,
    Quote,
    QuoteDetail,
    PaginatedQuotes,
    QuoteGenerate,
    QuotePreview,
    QuotePreviewItem,
    TechnicalReportItemCreate,
    TechnicalReportCreate,
    TechnicalReportUpdate,
    TechnicalReport,
)
from .email import (
    EmailAccountCreate,
    EmailAccountUpdate,
    EmailAccount,
    EmailFolder,
    EmailMessage,
    MoveMessageRequest,
    PaginatedEmailMessages,
    SendEmailRequest,
    SyncRequest,
    SyncResult,
)
from .whatsapp import SendMessageRequest, SessionAction, SessionStatus, ProviderStatus
from .settings import SettingUpsert, Setting, SystemModuleUpdate, SystemModule
from .audits import AuditLogBase, AuditLogCreate, AuditLog
