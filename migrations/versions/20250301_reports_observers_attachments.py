"""
Technical reports, quote provenance, ticket observers and task attachments.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'bizhub_reports_20250301'
down_revision = 'bizhub_initial_20250101'
branch_labels = None
depends_on = None


def _uuid():
    return postgresql.UUID(as_uuid=True)


def _id():
    return sa.Column('id', _uuid(), primary_key=True)


def _ts(name, nullable=True):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _fk(name, target, ondelete=None, nullable=True):
    return sa.Column(name, _uuid(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        'technical_reports',
        _id(),
        sa.Column(
            'service_order_id', _uuid(),
            sa.ForeignKey('service_orders.id', ondelete='CASCADE'), nullable=False, unique=True,
        ),
        _fk('technician_id', 'collaborators.id', nullable=False),
        sa.Column('diagnosis', sa.Text(), nullable=False),
        sa.Column('recommended_solution', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('generate_quote', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('quote_total', sa.Numeric(14, 2), nullable=True),
        _ts('completed_at'),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_table(
        'technical_report_items',
        _id(),
        _fk('report_id', 'technical_reports.id', 'CASCADE', nullable=False),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=True),
        sa.Column('unit_price', sa.Numeric(14, 2), nullable=True),
        sa.Column('total', sa.Numeric(14, 2), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_table(
        'technical_report_history',
        _id(),
        _fk('report_id', 'technical_reports.id', 'CASCADE', nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _fk('collaborator_id', 'collaborators.id', 'SET NULL'),
        _ts('created_at'),
    )
    op.add_column('quotes', _fk('technical_report_id', 'technical_reports.id', 'SET NULL'))
    op.add_column(
        'quotes',
        sa.Column('auto_generated', sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        'helpdesk_ticket_observers',
        _id(),
        _fk('ticket_id', 'helpdesk_tickets.id', 'CASCADE', nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(100), nullable=True),
        _fk('collaborator_id', 'collaborators.id', 'SET NULL'),
        _fk('added_by_id', 'collaborators.id', 'SET NULL'),
        _ts('created_at'),
        sa.UniqueConstraint('ticket_id', 'email', name='uq_helpdesk_ticket_observers_ticket_email'),
    )

    op.create_table(
        'task_attachments',
        _id(),
        _fk('task_id', 'tasks.id', 'CASCADE', nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=True),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('storage_path', sa.String(500), nullable=False),
        _fk('uploaded_by_id', 'collaborators.id', 'SET NULL'),
        _ts('created_at'),
    )


def downgrade() -> None:
    op.drop_table('task_attachments')
    op.drop_table('helpdesk_ticket_observers')
    op.drop_column('quotes', 'auto_generated')
    op.drop_column('quotes', 'technical_report_id')
    for table in ('technical_report_history', 'technical_report_items', 'technical_reports'):
        op.drop_table(table)
