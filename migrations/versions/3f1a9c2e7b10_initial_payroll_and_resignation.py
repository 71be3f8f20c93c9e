"""initial payroll and resignation schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'admin_users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=80), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_admin_users_username', 'admin_users', ['username'], unique=True)

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('employee_no', sa.String(length=32), nullable=False, unique=True),
        sa.Column('department', sa.String(length=120), nullable=True),
        sa.Column('position', sa.String(length=120), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('join_date', sa.Date(), nullable=True),
        sa.Column('leave_date', sa.Date(), nullable=True),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_employees_deleted_at', 'employees', ['deleted_at'])

    op.create_table(
        'payroll_templates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('fields', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'payrolls',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('template_id', sa.Integer(), sa.ForeignKey('payroll_templates.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('period', sa.String(length=20), nullable=False),
        sa.Column('work_days', sa.Float(), nullable=False, server_default='0'),
        sa.Column('month_days', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_prorated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('payroll_data', sa.Text(), nullable=False),
        sa.Column('original_gross', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_gross', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_net', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_payrolls_uuid', 'payrolls', ['uuid'], unique=True)
    op.create_index('ix_payrolls_employee_id', 'payrolls', ['employee_id'])
    op.create_index('ix_payrolls_template_id', 'payrolls', ['template_id'])
    op.create_index('ix_payrolls_period', 'payrolls', ['period'])

    op.create_table(
        'payroll_signatures',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('payroll_id', sa.Integer(), sa.ForeignKey('payrolls.id', ondelete='RESTRICT'), nullable=False, unique=True),
        sa.Column('signature_path', sa.String(length=255), nullable=False),
        sa.Column('signature_hash', sa.String(length=64), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('device_info', sa.String(length=120), nullable=True),
        sa.Column('signed_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'payroll_notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('payroll_id', sa.Integer(), sa.ForeignKey('payrolls.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='email'),
        sa.Column('recipient', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('error_msg', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_payroll_notifications_payroll_id', 'payroll_notifications', ['payroll_id'])

    op.create_table(
        'resignation_applications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('resignation_type', sa.String(length=20), nullable=False),
        sa.Column('resignation_date', sa.Date(), nullable=False),
        sa.Column('last_working_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('handover_notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('approved_by', sa.Integer(), sa.ForeignKey('admin_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('approval_comments', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_resignation_applications_uuid', 'resignation_applications', ['uuid'], unique=True)
    op.create_index('ix_resignation_applications_employee_id', 'resignation_applications', ['employee_id'])

    op.create_table(
        'resignation_signatures',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('application_id', sa.Integer(), sa.ForeignKey('resignation_applications.id', ondelete='CASCADE'), nullable=False),
        sa.Column('signer_type', sa.String(length=16), nullable=False),
        sa.Column('signer_id', sa.Integer(), nullable=True),
        sa.Column('signature_path', sa.String(length=255), nullable=False),
        sa.Column('signature_hash', sa.String(length=64), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('device_info', sa.String(length=120), nullable=True),
        sa.Column('signed_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('application_id', 'signer_type', name='uq_resignation_sig_app_role'),
    )
    op.create_index('ix_resignation_signatures_application_id', 'resignation_signatures', ['application_id'])

    op.create_table(
        'resignation_sign_tokens',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('application_id', sa.Integer(), sa.ForeignKey('resignation_applications.id', ondelete='CASCADE'), nullable=False),
        sa.Column('signer_type', sa.String(length=16), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_resignation_sign_tokens_token', 'resignation_sign_tokens', ['token'], unique=True)
    op.create_index('ix_resignation_sign_tokens_application_id', 'resignation_sign_tokens', ['application_id'])

    op.create_table(
        'resignation_reports',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('application_id', sa.Integer(), sa.ForeignKey('resignation_applications.id', ondelete='CASCADE'), nullable=False),
        sa.Column('report_content', sa.Text(), nullable=True),
        sa.Column('work_summary', sa.Text(), nullable=True),
        sa.Column('unfinished_tasks', sa.Text(), nullable=True),
        sa.Column('company_property_returned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('financial_settlement', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('generated_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_resignation_reports_application_id', 'resignation_reports', ['application_id'])


def downgrade() -> None:
    op.drop_table('resignation_reports')
    op.drop_table('resignation_sign_tokens')
    op.drop_table('resignation_signatures')
    op.drop_table('resignation_applications')
    op.drop_table('payroll_notifications')
    op.drop_table('payroll_signatures')
    op.drop_table('payrolls')
    op.drop_table('payroll_templates')
    op.drop_table('employees')
    op.drop_table('admin_users')
