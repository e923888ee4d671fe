"""
Initial BizHub schema.

Creates identity/RBAC, CRM, integration (API keys, webhooks), tasks,
helpdesk, purchasing, service order, webmail and settings tables.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'bizhub_initial_20250101'
down_revision = None
branch_labels = None
depends_on = None


def _uuid():
    return postgresql.UUID(as_uuid=True)


def _id():
    return sa.Column('id', _uuid(), primary_key=True)


def _ts(name, nullable=True):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _money(name, nullable=True):
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable)


def _fk(name, target, ondelete=None, nullable=True):
    return sa.Column(name, _uuid(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def upgrade() -> None:
    # Identity and RBAC
    op.create_table(
        'hierarchy_groups',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _fk('parent_id', 'hierarchy_groups.id', 'SET NULL'),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_table(
        'permissions',
        _id(),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('resource', sa.String(50), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
        sa.UniqueConstraint('resource', 'action', name='uq_permissions_resource_action'),
    )
    op.create_table(
        'profiles',
        _id(),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_table(
        'profile_permissions',
        sa.Column('profile_id', _uuid(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('permission_id', _uuid(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_table(
        'collaborators',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('position', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _fk('profile_id', 'profiles.id', 'SET NULL'),
        _fk('group_id', 'hierarchy_groups.id', 'SET NULL'),
        sa.Column('whatsapp_token', sa.String(64), nullable=True, unique=True),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_collaborators_group_id', 'collaborators', ['group_id'])
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _fk('collaborator_id', 'collaborators.id', 'SET NULL'),
        _ts('last_login_at'),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_table(
        'user_sessions',
        _id(),
        _fk('user_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('token_hash', sa.String(64), nullable=False, unique=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        _ts('created_at', nullable=False),
        _ts('last_seen_at'),
        _ts('expires_at', nullable=False),
        _ts('revoked_at'),
    )
    op.create_index('idx_user_sessions_user_id', 'user_sessions', ['user_id'])

    # CRM
    op.create_table(
        'clients',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(), nullable=True, unique=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('document', sa.String(20), nullable=True),
        sa.Column('kind', sa.String(20), nullable=False, server_default='PESSOA_FISICA'),
        sa.Column('status', sa.String(20), nullable=False, server_default='LEAD'),
        _money('potential_value'),
        sa.Column('notes', sa.Text(), nullable=True),
        _fk('group_id', 'hierarchy_groups.id', 'SET NULL'),
        _ts('created_at'),
        _ts('updated_at'),
        sa.CheckConstraint("status in ('LEAD','PROSPECT','CLIENT','INACTIVE')", name='ck_clients_status'),
        sa.CheckConstraint("kind in ('PESSOA_FISICA','PESSOA_JURIDICA')", name='ck_clients_kind'),
    )
    op.create_index('idx_clients_status', 'clients', ['status'])
    op.create_table(
        'addresses',
        _id(),
        _fk('client_id', 'clients.id', 'CASCADE', nullable=False),
        sa.Column('street', sa.String(200), nullable=False),
        sa.Column('number', sa.String(20), nullable=True),
        sa.Column('complement', sa.String(100), nullable=True),
        sa.Column('district', sa.String(100), nullable=True),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('state', sa.String(2), nullable=False),
        sa.Column('zip_code', sa.String(9), nullable=False),
        sa.Column('kind', sa.String(20), nullable=False, server_default='COMMERCIAL'),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts('created_at'),
    )

    # Integrations
    op.create_table(
        'api_keys',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('token_id', sa.String(64), nullable=False),
        sa.Column('token_hash', sa.String(64), nullable=False),
        sa.Column('prefix', sa.String(12), nullable=True),
        sa.Column('last_four', sa.String(4), nullable=True),
        sa.Column('permissions', postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('rate_limit', sa.Integer(), nullable=True),
        _fk('created_by_user_id', 'users.id', 'SET NULL'),
        _ts('created_at', nullable=False),
        _ts('updated_at'),
        _ts('last_used_at'),
        _ts('expires_at'),
    )
    op.create_index('ix_api_keys_token_id', 'api_keys', ['token_id'], unique=True)
    op.create_table(
        'api_logs',
        _id(),
        _fk('api_key_id', 'api_keys.id', 'CASCADE', nullable=False),
        sa.Column('endpoint', sa.String(255), nullable=False),
        sa.Column('method', sa.String(10), nullable=False),
        sa.Column('status_code', sa.Integer(), nullable=False),
        sa.Column('response_time_ms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        _ts('created_at', nullable=False),
    )
    op.create_index('idx_api_logs_key_created', 'api_logs', ['api_key_id', 'created_at'])
    op.create_table(
        'rate_limits',
        sa.Column('key', sa.String(128), primary_key=True),
        sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
        _ts('reset_at', nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_table(
        'webhook_configs',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('events', postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('secret', sa.Text(), nullable=True),
        sa.Column('headers', postgresql.JSONB(), nullable=True),
        _ts('last_sent_at'),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_table(
        'webhook_logs',
        _id(),
        _fk('webhook_id', 'webhook_configs.id', 'CASCADE', nullable=False),
        sa.Column('event', sa.String(100), nullable=False),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('status_code', sa.Integer(), nullable=True),
        sa.Column('response_time_ms', sa.Integer(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('is_test', sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts('created_at', nullable=False),
    )
    op.create_index('idx_webhook_logs_webhook_created', 'webhook_logs', ['webhook_id', 'created_at'])

    # Settings, modules and audit
    op.create_table(
        'settings',
        sa.Column('key', sa.String(100), primary_key=True),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        _ts('updated_at'),
    )
    op.create_table(
        'system_modules',
        _id(),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_core', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('icon', sa.String(50), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('route', sa.String(100), nullable=True),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('permission', sa.String(100), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_table(
        'audit_logs',
        _id(),
        _fk('actor_user_id', 'users.id', 'SET NULL'),
        sa.Column('api_key_id', _uuid(), nullable=True),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('target_type', sa.Text(), nullable=True),
        sa.Column('target_id', _uuid(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        _ts('created_at', nullable=False),
    )
    op.create_index('ix_audit_logs_actor_user_id_created_at', 'audit_logs', ['actor_user_id', 'created_at'])
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'])
    op.create_index('ix_audit_logs_target', 'audit_logs', ['target_type', 'target_id'])

    # Helpdesk
    op.create_table(
        'helpdesk_departments',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        _fk('group_id', 'hierarchy_groups.id', 'SET NULL'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_table(
        'helpdesk_tickets',
        _id(),
        sa.Column('number', sa.String(20), nullable=False, unique=True),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False, server_default='MEDIUM'),
        sa.Column('status', sa.String(20), nullable=False, server_default='OPEN'),
        sa.Column('requester_name', sa.String(100), nullable=False),
        sa.Column('requester_email', sa.String(), nullable=False),
        sa.Column('requester_phone', sa.String(20), nullable=True),
        _fk('department_id', 'helpdesk_departments.id', nullable=False),
        _fk('client_id', 'clients.id', 'SET NULL'),
        _fk('assignee_id', 'collaborators.id', 'SET NULL'),
        _ts('opened_at', nullable=False),
        _ts('closed_at'),
        _ts('last_reply_at'),
        _ts('created_at'),
        _ts('updated_at'),
        sa.CheckConstraint(
            "status in ('OPEN','IN_PROGRESS','WAITING_CUSTOMER','RESOLVED','CLOSED')",
            name='ck_helpdesk_tickets_status',
        ),
    )
    op.create_index('idx_helpdesk_tickets_status', 'helpdesk_tickets', ['status'])
    op.create_index('idx_helpdesk_tickets_department_id', 'helpdesk_tickets', ['department_id'])
    op.create_table(
        'helpdesk_messages',
        _id(),
        _fk('ticket_id', 'helpdesk_tickets.id', 'CASCADE', nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('content_type', sa.String(10), nullable=False, server_default='TEXT'),
        sa.Column('sender_name', sa.String(100), nullable=True),
        sa.Column('sender_email', sa.String(), nullable=True),
        sa.Column('is_internal', sa.Boolean(), nullable=False, server_default=sa.false()),
        _fk('author_id', 'collaborators.id', 'SET NULL'),
        _ts('created_at'),
    )
    op.create_table(
        'helpdesk_ticket_logs',
        _id(),
        _fk('ticket_id', 'helpdesk_tickets.id', 'CASCADE', nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('field', sa.String(50), nullable=True),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('actor_name', sa.String(100), nullable=True),
        sa.Column('actor_id', _uuid(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        _ts('created_at'),
    )

    # Purchasing
    op.create_table(
        'cost_centers',
        _id(),
        sa.Column('code', sa.String(20), nullable=False, unique=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts('created_at'),
    )
    op.create_table(
        'products',
        _id(),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('unit', sa.String(10), nullable=False, server_default='UN'),
        _money('price'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts('created_at'),
    )
    op.create_table(
        'purchase_requests',
        _id(),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('justification', sa.Text(), nullable=False),
        _fk('cost_center_id', 'cost_centers.id', nullable=False),
        _ts('deadline'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        _fk('requester_id', 'collaborators.id', 'SET NULL'),
        _fk('approver_id', 'collaborators.id', 'SET NULL'),
        _ts('approved_at'),
        sa.Column('approval_notes', sa.Text(), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
        sa.CheckConstraint("status in ('PENDING','APPROVED','REJECTED')", name='ck_purchase_requests_status'),
    )
    op.create_table(
        'purchase_request_items',
        _id(),
        _fk('request_id', 'purchase_requests.id', 'CASCADE', nullable=False),
        _fk('product_id', 'products.id', nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('estimated_value', nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
    )
    op.create_table(
        'quotations',
        _id(),
        sa.Column('number', sa.String(30), nullable=False, unique=True),
        _fk('request_id', 'purchase_requests.id', 'CASCADE', nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='OPEN'),
        _money('reference_value', nullable=False),
        _ts('deadline'),
        sa.Column('notes', sa.Text(), nullable=True),
        _ts('created_at'),
    )
    op.create_table(
        'quotation_items',
        _id(),
        _fk('quotation_id', 'quotations.id', 'CASCADE', nullable=False),
        _fk('product_id', 'products.id', nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('reference_value', nullable=False),
    )

    # Service orders and quotes
    op.create_table(
        'service_orders',
        _id(),
        sa.Column('number', sa.String(20), nullable=False, unique=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('location', sa.String(500), nullable=True),
        _ts('start_date'),
        _ts('end_date'),
        _money('quote_value'),
        _money('final_value', nullable=False),
        sa.Column('status', sa.String(40), nullable=False, server_default='DRAFT'),
        sa.Column('priority', sa.String(10), nullable=False, server_default='MEDIUM'),
        sa.Column('notes', sa.Text(), nullable=True),
        _fk('client_id', 'clients.id', nullable=False),
        _fk('assignee_id', 'collaborators.id', 'SET NULL'),
        _fk('created_by_id', 'collaborators.id', nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_service_orders_status', 'service_orders', ['status'])
    op.create_table(
        'service_order_items',
        _id(),
        _fk('order_id', 'service_orders.id', 'CASCADE', nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False),
        _money('unit_price', nullable=False),
        _money('total', nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
    )
    op.create_table(
        'service_order_history',
        _id(),
        _fk('order_id', 'service_orders.id', 'CASCADE', nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _fk('collaborator_id', 'collaborators.id', 'SET NULL'),
        _ts('created_at'),
    )
    op.create_table(
        'quotes',
        _id(),
        sa.Column('number', sa.String(20), nullable=False, unique=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _fk('service_order_id', 'service_orders.id', nullable=False),
        _fk('created_by_id', 'collaborators.id', nullable=False),
        _money('subtotal', nullable=False),
        _money('discount', nullable=False),
        _money('total', nullable=False),
        _ts('valid_until'),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('approved_by_customer', sa.Boolean(), nullable=True),
        _ts('decided_at'),
        sa.Column('customer_comments', sa.Text(), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_table(
        'quote_items',
        _id(),
        _fk('quote_id', 'quotes.id', 'CASCADE', nullable=False),
        sa.Column('kind', sa.String(20), nullable=False, server_default='SERVICE'),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('unit', sa.String(10), nullable=True),
        _money('unit_price', nullable=False),
        _money('total', nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_table(
        'quote_history',
        _id(),
        _fk('quote_id', 'quotes.id', 'CASCADE', nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _fk('collaborator_id', 'collaborators.id', 'SET NULL'),
        _ts('created_at'),
    )

    # Tasks
    op.create_table(
        'task_recurrences',
        _id(),
        sa.Column('kind', sa.String(10), nullable=False),
        sa.Column('interval', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('weekdays', postgresql.JSONB(), nullable=True),
        sa.Column('day_of_month', sa.Integer(), nullable=True),
        _ts('end_date'),
        sa.Column('max_occurrences', sa.Integer(), nullable=True),
        sa.Column('occurrences_generated', sa.Integer(), nullable=False, server_default='0'),
        _ts('next_run_at'),
        _ts('last_run_at'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('deactivation_reason', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('priority', sa.String(10), nullable=False, server_default='MEDIUM'),
        sa.Column('estimated_minutes', sa.Integer(), nullable=True),
        _fk('assignee_id', 'collaborators.id', 'SET NULL'),
        _fk('client_id', 'clients.id', 'SET NULL'),
        _fk('created_by_id', 'collaborators.id', 'SET NULL'),
        _ts('created_at'),
        _ts('updated_at'),
        sa.CheckConstraint("kind in ('DAILY','WEEKLY','MONTHLY','YEARLY')", name='ck_task_recurrences_kind'),
    )
    op.create_index('idx_task_recurrences_due', 'task_recurrences', ['is_active', 'next_run_at'])
    op.create_table(
        'tasks',
        _id(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('priority', sa.String(10), nullable=False, server_default='MEDIUM'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        _ts('due_date'),
        _ts('start_date'),
        _ts('completed_at'),
        sa.Column('estimated_minutes', sa.Integer(), nullable=True),
        sa.Column('spent_minutes', sa.Integer(), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        _fk('assignee_id', 'collaborators.id', 'SET NULL'),
        _fk('created_by_id', 'collaborators.id', 'SET NULL'),
        _fk('client_id', 'clients.id', 'SET NULL'),
        _fk('ticket_id', 'helpdesk_tickets.id', 'SET NULL'),
        _fk('service_order_id', 'service_orders.id', 'SET NULL'),
        _fk('recurrence_id', 'task_recurrences.id', 'SET NULL'),
        _ts('created_at'),
        _ts('updated_at'),
        sa.CheckConstraint("priority in ('LOW','MEDIUM','HIGH','URGENT')", name='ck_tasks_priority'),
        sa.CheckConstraint(
            "status in ('PENDING','IN_PROGRESS','WAITING','DONE','CANCELLED')",
            name='ck_tasks_status',
        ),
    )
    op.create_index('idx_tasks_status', 'tasks', ['status'])
    op.create_index('idx_tasks_assignee_id', 'tasks', ['assignee_id'])
    op.create_index('idx_tasks_due_date', 'tasks', ['due_date'])
    op.create_table(
        'task_comments',
        _id(),
        _fk('task_id', 'tasks.id', 'CASCADE', nullable=False),
        _fk('author_id', 'collaborators.id', 'SET NULL'),
        sa.Column('content', sa.Text(), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_table(
        'task_logs',
        _id(),
        _fk('task_id', 'tasks.id', 'CASCADE', nullable=False),
        sa.Column('kind', sa.String(30), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        _fk('actor_id', 'collaborators.id', 'SET NULL'),
        _ts('created_at'),
    )

    # Webmail
    op.create_table(
        'email_accounts',
        _id(),
        sa.Column('collaborator_id', _uuid(), sa.ForeignKey('collaborators.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('username', sa.String(), nullable=True),
        sa.Column('password_encrypted', sa.Text(), nullable=False),
        sa.Column('imap_host', sa.String(), nullable=False),
        sa.Column('imap_port', sa.Integer(), nullable=False, server_default='993'),
        sa.Column('imap_secure', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('smtp_host', sa.String(), nullable=False),
        sa.Column('smtp_port', sa.Integer(), nullable=False, server_default='587'),
        sa.Column('smtp_secure', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts('last_sync_at'),
        sa.Column('last_sync_error', sa.Text(), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_table(
        'email_folders',
        _id(),
        _fk('account_id', 'email_accounts.id', 'CASCADE', nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('path', sa.String(500), nullable=False),
        sa.Column('delimiter', sa.String(5), nullable=True),
        sa.Column('special_use', sa.String(30), nullable=True),
        sa.Column('total_messages', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unread_messages', sa.Integer(), nullable=False, server_default='0'),
        _ts('created_at'),
        _ts('updated_at'),
        sa.UniqueConstraint('account_id', 'path', name='uq_email_folders_account_path'),
    )
    op.create_table(
        'email_messages',
        _id(),
        _fk('account_id', 'email_accounts.id', 'CASCADE', nullable=False),
        _fk('folder_id', 'email_folders.id', 'CASCADE', nullable=False),
        sa.Column('message_id', sa.String(500), nullable=False),
        sa.Column('uid', sa.Integer(), nullable=False),
        sa.Column('subject', sa.Text(), nullable=True),
        sa.Column('from_address', postgresql.JSONB(), nullable=True),
        sa.Column('to_addresses', postgresql.JSONB(), nullable=True),
        sa.Column('cc_addresses', postgresql.JSONB(), nullable=True),
        _ts('date'),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('flags', postgresql.JSONB(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_flagged', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('in_reply_to', sa.String(500), nullable=True),
        sa.Column('text_content', sa.Text(), nullable=True),
        sa.Column('html_content', sa.Text(), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
        sa.UniqueConstraint('account_id', 'message_id', name='uq_email_messages_account_message'),
    )
    op.create_index('idx_email_messages_folder_date', 'email_messages', ['folder_id', 'date'])


def downgrade() -> None:
    for table in (
        'email_messages',
        'email_folders',
        'email_accounts',
        'task_logs',
        'task_comments',
        'tasks',
        'task_recurrences',
        'quote_history',
        'quote_items',
        'quotes',
        'service_order_history',
        'service_order_items',
        'service_orders',
        'quotation_items',
        'quotations',
        'purchase_request_items',
        'purchase_requests',
        'products',
        'cost_centers',
        'helpdesk_ticket_logs',
        'helpdesk_messages',
        'helpdesk_tickets',
        'helpdesk_departments',
        'audit_logs',
        'system_modules',
        'settings',
        'webhook_logs',
        'webhook_configs',
        'rate_limits',
        'api_logs',
        'api_keys',
        'addresses',
        'clients',
        'user_sessions',
        'users',
        'collaborators',
        'profile_permissions',
        'profiles',
        'permissions',
        'hierarchy_groups',
    ):
        op.drop_table(table)
