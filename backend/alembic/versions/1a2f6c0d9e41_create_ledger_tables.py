"""create ledger tables

Revision ID: 1a2f6c0d9e41
Revises:
Create Date: 2025-11-03 10:12:44.518302

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '1a2f6c0d9e41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

account_type = sa.Enum('ASSET', 'LIABILITY', 'EQUITY', 'REVENUE', 'EXPENSE', name='accounttype')
financial_year_status = sa.Enum('ACTIVE', 'CLOSED', name='financialyearstatus')
journal_entry_status = sa.Enum('DRAFT', 'POSTED', 'REVERSED', name='journalentrystatus')
gst_rate_type = sa.Enum('EXEMPT', 'ZERO', 'FIVE', 'TWELVE', 'EIGHTEEN', 'TWENTYEIGHT', name='gstratetype')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'departments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_departments_id', 'departments', ['id'])

    op.create_table(
        'hsn_sac_codes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_hsn_sac_codes_id', 'hsn_sac_codes', ['id'])
    op.create_index('ix_hsn_sac_codes_code', 'hsn_sac_codes', ['code'], unique=True)

    op.create_table(
        'chart_of_accounts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('account_code', sa.String(length=20), nullable=False),
        sa.Column('account_name', sa.String(length=100), nullable=False),
        sa.Column('account_type', account_type, nullable=False),
        sa.Column('parent_account_id', sa.Integer(), sa.ForeignKey('chart_of_accounts.id'), nullable=True),
        sa.Column('department_id', sa.Integer(), sa.ForeignKey('departments.id'), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('opening_balance', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('current_balance', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_chart_of_accounts_id', 'chart_of_accounts', ['id'])
    op.create_index('ix_chart_of_accounts_account_code', 'chart_of_accounts', ['account_code'], unique=True)

    op.create_table(
        'financial_years',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('year_name', sa.String(length=50), nullable=False, unique=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', financial_year_status, nullable=False),
        sa.Column('is_current', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('closed_by', sa.String(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_financial_years_id', 'financial_years', ['id'])

    op.create_table(
        'journal_entry_sequences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('period', sa.String(length=6), nullable=False, unique=True),
        sa.Column('last_value', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_journal_entry_sequences_id', 'journal_entry_sequences', ['id'])

    op.create_table(
        'journal_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('entry_number', sa.String(length=20), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('financial_year_id', sa.Integer(), sa.ForeignKey('financial_years.id'), nullable=False),
        sa.Column('reference', sa.String(), nullable=True),
        sa.Column('reference_type', sa.String(length=50), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('total_debit', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_credit', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('status', journal_entry_status, nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recurring_interval', sa.String(length=20), nullable=True),
        sa.Column('next_recurring_date', sa.Date(), nullable=True),
        sa.Column('approved_by', sa.String(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reversed_by', sa.String(), nullable=True),
        sa.Column('reversed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reversal_entry_id', sa.Integer(), sa.ForeignKey('journal_entries.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_journal_entries_id', 'journal_entries', ['id'])
    op.create_index('ix_journal_entries_entry_number', 'journal_entries', ['entry_number'], unique=True)
    op.create_index('ix_journal_entries_entry_date', 'journal_entries', ['entry_date'])
    op.create_index('ix_journal_entries_financial_year_id', 'journal_entries', ['financial_year_id'])
    op.create_index('ix_journal_entries_reference', 'journal_entries', ['reference'])
    op.create_index('ix_journal_entries_status', 'journal_entries', ['status'])

    op.create_table(
        'journal_entry_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('journal_entry_id', sa.Integer(), sa.ForeignKey('journal_entries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('chart_of_accounts.id'), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('debit_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('credit_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.CheckConstraint('debit_amount >= 0', name='check_debit_amount_non_negative'),
        sa.CheckConstraint('credit_amount >= 0', name='check_credit_amount_non_negative'),
    )
    op.create_index('ix_journal_entry_items_id', 'journal_entry_items', ['id'])
    op.create_index('ix_journal_entry_items_journal_entry_id', 'journal_entry_items', ['journal_entry_id'])
    op.create_index('ix_journal_entry_items_account_id', 'journal_entry_items', ['account_id'])

    op.create_table(
        'service_price_list',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('service_name', sa.String(length=150), nullable=False),
        sa.Column('service_code', sa.String(length=30), nullable=False),
        sa.Column('department_id', sa.Integer(), sa.ForeignKey('departments.id'), nullable=False),
        sa.Column('hsn_sac_code_id', sa.Integer(), sa.ForeignKey('hsn_sac_codes.id'), nullable=False),
        sa.Column('base_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('gst_rate_type', gst_rate_type, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('effective_to', sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_service_price_list_id', 'service_price_list', ['id'])
    op.create_index('ix_service_price_list_service_code', 'service_price_list', ['service_code'], unique=True)

    op.create_table(
        'package_price_list',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('package_name', sa.String(length=150), nullable=False),
        sa.Column('package_code', sa.String(length=30), nullable=False),
        sa.Column('department_id', sa.Integer(), sa.ForeignKey('departments.id'), nullable=False),
        sa.Column('hsn_sac_code_id', sa.Integer(), sa.ForeignKey('hsn_sac_codes.id'), nullable=False),
        sa.Column('base_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('gst_rate_type', gst_rate_type, nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('effective_to', sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_package_price_list_id', 'package_price_list', ['id'])
    op.create_index('ix_package_price_list_package_code', 'package_price_list', ['package_code'], unique=True)

    op.create_table(
        'package_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('package_price_list.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('service_price_list.id'), nullable=False),
        sa.Column('quantity', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount_percentage', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity > 0', name='check_package_item_quantity_positive'),
        sa.CheckConstraint(
            'discount_percentage >= 0 AND discount_percentage <= 100',
            name='check_package_item_discount_range',
        ),
    )
    op.create_index('ix_package_items_id', 'package_items', ['id'])
    op.create_index('ix_package_items_package_id', 'package_items', ['package_id'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('table_name', sa.String(), nullable=False),
        sa.Column('record_id', sa.String(), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('changed_by', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
    )
    op.create_index('ix_audit_log_id', 'audit_log', ['id'])


def downgrade() -> None:
    for table in (
        'audit_log',
        'package_items',
        'package_price_list',
        'service_price_list',
        'journal_entry_items',
        'journal_entries',
        'journal_entry_sequences',
        'financial_years',
        'chart_of_accounts',
        'hsn_sac_codes',
        'departments',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in (gst_rate_type, journal_entry_status, financial_year_status, account_type):
        enum_type.drop(bind, checkfirst=True)
