"""Initial ledger schema

Revision ID: 001_initial_ledger
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '001_initial_ledger'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(*names: str, length: int = 20) -> sa.Enum:
    # Enums are stored as VARCHAR holding the member name
    return sa.Enum(*names, native_enum=False, length=length)


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Chart of Accounts
    op.create_table(
        'chart_of_accounts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('conjunto_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(10), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('account_type', _enum('ASSET', 'LIABILITY', 'EQUITY', 'INCOME', 'EXPENSE'), nullable=False),
        sa.Column('nature', _enum('DEBIT', 'CREDIT', length=10), nullable=False),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('chart_of_accounts.id'), nullable=True),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('accepts_posting', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('requires_third_party', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('conjunto_id', 'code', name='uq_chart_of_accounts_conjunto_code'),
    )
    op.create_index('idx_chart_of_accounts_conjunto_type', 'chart_of_accounts', ['conjunto_id', 'account_type'])

    # Accounting Transactions
    op.create_table(
        'accounting_transactions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('conjunto_id', sa.Integer(), nullable=False),
        sa.Column('transaction_number', sa.String(30), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('reference_type', _enum('INVOICE', 'PAYMENT', 'MANUAL', 'CLOSING', 'RESERVE_FUND'), nullable=False, server_default='MANUAL'),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('status', _enum('DRAFT', 'POSTED', 'CANCELLED'), nullable=False, server_default='DRAFT'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('posted_by', sa.Integer(), nullable=True),
        sa.Column('posted_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_by', sa.Integer(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('conjunto_id', 'transaction_number', name='uq_accounting_transactions_number'),
    )
    op.create_index('idx_accounting_transactions_conjunto_date', 'accounting_transactions', ['conjunto_id', 'transaction_date'])
    op.create_index('idx_accounting_transactions_reference', 'accounting_transactions', ['reference_type', 'reference_id'])

    # Transaction Entries
    op.create_table(
        'accounting_transaction_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('debit_amount', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('credit_amount', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('third_party_type', sa.String(50), nullable=True),
        sa.Column('third_party_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['transaction_id'], ['accounting_transactions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['account_id'], ['chart_of_accounts.id']),
        sa.CheckConstraint('debit_amount >= 0', name='check_entry_debit_non_negative'),
        sa.CheckConstraint('credit_amount >= 0', name='check_entry_credit_non_negative'),
        sa.CheckConstraint(
            '(debit_amount > 0 AND credit_amount = 0) OR (debit_amount = 0 AND credit_amount > 0)',
            name='check_entry_one_side'
        ),
    )
    op.create_index('idx_accounting_entries_account', 'accounting_transaction_entries', ['account_id'])
    op.create_index('idx_accounting_entries_transaction', 'accounting_transaction_entries', ['transaction_id'])

    # Period Closures
    op.create_table(
        'accounting_period_closures',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('conjunto_id', sa.Integer(), nullable=False),
        sa.Column('fiscal_year', sa.Integer(), nullable=False),
        sa.Column('period_type', _enum('ANNUAL'), nullable=False, server_default='ANNUAL'),
        sa.Column('period_start_date', sa.Date(), nullable=False),
        sa.Column('period_end_date', sa.Date(), nullable=False),
        sa.Column('closure_date', sa.Date(), nullable=False),
        sa.Column('status', _enum('COMPLETED', 'REVERSED'), nullable=False, server_default='COMPLETED'),
        sa.Column('total_income', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('total_expenses', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('net_result', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('is_profit', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('closing_transaction_id', sa.Integer(), sa.ForeignKey('accounting_transactions.id'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('closed_by', sa.Integer(), nullable=True),
        sa.Column('reversed_by', sa.Integer(), nullable=True),
        sa.Column('reversed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        'uq_period_closures_completed_year',
        'accounting_period_closures',
        ['conjunto_id', 'fiscal_year'],
        unique=True,
        postgresql_where=sa.text("status = 'COMPLETED'"),
        sqlite_where=sa.text("status = 'COMPLETED'"),
    )

    # Budgets
    op.create_table(
        'budgets',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('conjunto_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('fiscal_year', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', _enum('DRAFT', 'APPROVED', 'ACTIVE', 'CLOSED'), nullable=False, server_default='DRAFT'),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_budgets_conjunto_year', 'budgets', ['conjunto_id', 'fiscal_year'])

    months = ['jan', 'feb', 'mar', 'apr', 'may', 'jun', 'jul', 'aug', 'sep', 'oct', 'nov', 'dec']
    op.create_table(
        'budget_items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('budget_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('category', _enum('INCOME', 'EXPENSE'), nullable=False),
        sa.Column('expense_type', _enum('FIXED', 'VARIABLE', 'SPECIAL_FUND'), nullable=True),
        sa.Column('budgeted_amount', sa.Numeric(18, 2), nullable=False, server_default='0'),
        *[
            sa.Column(f'{m}_amount', sa.Numeric(18, 2), nullable=False, server_default='0')
            for m in months
        ],
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['budget_id'], ['budgets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['account_id'], ['chart_of_accounts.id']),
    )
    op.create_index('idx_budget_items_budget', 'budget_items', ['budget_id'])

    # Billing records read by cash-basis income
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('conjunto_id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(50), nullable=False),
        sa.Column('billing_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('total_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('status', _enum('PENDING', 'PARTIALLY_PAID', 'PAID', 'CANCELLED'), nullable=False, server_default='PENDING'),
        *_timestamps(),
        sa.CheckConstraint('total_amount >= 0', name='check_invoice_total_non_negative'),
    )
    op.create_index('idx_invoices_conjunto', 'invoices', ['conjunto_id'])

    op.create_table(
        'payment_applications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('payment_id', sa.Integer(), nullable=True),
        sa.Column('amount_applied', sa.Numeric(18, 2), nullable=False),
        sa.Column('applied_date', sa.Date(), nullable=False),
        sa.Column('status', _enum('ACTIVE', 'REVERSED'), nullable=False, server_default='ACTIVE'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.CheckConstraint('amount_applied > 0', name='check_application_amount_positive'),
    )
    op.create_index('idx_payment_applications_invoice', 'payment_applications', ['invoice_id'])


def downgrade() -> None:
    op.drop_index('idx_payment_applications_invoice', table_name='payment_applications')
    op.drop_table('payment_applications')
    op.drop_index('idx_invoices_conjunto', table_name='invoices')
    op.drop_table('invoices')
    op.drop_index('idx_budget_items_budget', table_name='budget_items')
    op.drop_table('budget_items')
    op.drop_index('idx_budgets_conjunto_year', table_name='budgets')
    op.drop_table('budgets')
    op.drop_index('uq_period_closures_completed_year', table_name='accounting_period_closures')
    op.drop_table('accounting_period_closures')
    op.drop_index('idx_accounting_entries_transaction', table_name='accounting_transaction_entries')
    op.drop_index('idx_accounting_entries_account', table_name='accounting_transaction_entries')
    op.drop_table('accounting_transaction_entries')
    op.drop_index('idx_accounting_transactions_reference', table_name='accounting_transactions')
    op.drop_index('idx_accounting_transactions_conjunto_date', table_name='accounting_transactions')
    op.drop_table('accounting_transactions')
    op.drop_index('idx_chart_of_accounts_conjunto_type', table_name='chart_of_accounts')
    op.drop_table('chart_of_accounts')
