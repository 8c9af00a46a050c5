"""initial payroll schema

Revision ID: 4e1a9c07b2d3
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4e1a9c07b2d3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=True),
        sa.Column('working_days_per_week', sa.SmallInteger(), nullable=False, server_default='6'),
        sa.Column('currency', sa.String(8), nullable=False, server_default='PKR'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('code', sa.String(32), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('first_name', sa.String(80), nullable=False),
        sa.Column('last_name', sa.String(80), nullable=True),
        sa.Column('designation', sa.String(120), nullable=True),
        sa.Column('basic_salary', sa.Numeric(14, 2), nullable=True),
        sa.Column('doj', sa.Date(), nullable=True),
        sa.Column('dol', sa.Date(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('company_id', 'code', name='uq_employee_company_code'),
    )
    op.create_index('ix_emp_company_status', 'employees', ['company_id', 'status'])

    op.create_table(
        'attendance_days',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='present'),
        sa.Column('check_in', sa.Time(), nullable=True),
        sa.Column('check_out', sa.Time(), nullable=True),
        sa.Column('notes', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('company_id', 'employee_id', 'date', name='uq_attendance_company_employee_date'),
    )
    op.create_index('ix_attendance_days_company_id', 'attendance_days', ['company_id'])
    op.create_index('ix_attendance_days_employee_id', 'attendance_days', ['employee_id'])

    op.create_table(
        'leave_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('company_id', 'code', name='uq_leave_type_company_code'),
    )
    op.create_index('ix_leave_types_company_id', 'leave_types', ['company_id'])

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_leave_requests_company_id', 'leave_requests', ['company_id'])
    op.create_index('ix_leave_requests_employee_id', 'leave_requests', ['employee_id'])

    op.create_table(
        'payroll_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('month', sa.String(7), nullable=False),
        sa.Column('total_days', sa.Integer(), nullable=False),
        sa.Column('days_present', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('basic_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('overtime', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('bonuses', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('deductions', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.Enum('pending', 'paid', 'cancelled', name='payroll_status_enum'),
                  nullable=False, server_default='pending'),
        sa.Column('paid_date', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('company_id', 'employee_id', 'month', name='uq_payroll_company_employee_month'),
    )
    op.create_index('ix_payroll_company_month', 'payroll_records', ['company_id', 'month'])
    op.create_index('ix_payroll_records_employee_id', 'payroll_records', ['employee_id'])

    op.create_table(
        'payroll_adjustments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('month', sa.String(7), nullable=False),
        sa.Column('kind', sa.Enum('overtime', 'bonus', 'deduction', name='payroll_adjustment_kind_enum'),
                  nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('reason', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_payroll_adjustments_company_id', 'payroll_adjustments', ['company_id'])
    op.create_index('ix_payroll_adjustments_employee_id', 'payroll_adjustments', ['employee_id'])
    op.create_index('ix_payroll_adj_lookup', 'payroll_adjustments', ['company_id', 'employee_id', 'month'])


def downgrade() -> None:
    op.drop_table('payroll_adjustments')
    op.drop_table('payroll_records')
    op.drop_table('leave_requests')
    op.drop_table('leave_types')
    op.drop_table('attendance_days')
    op.drop_table('employees')
    op.drop_table('companies')
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        sa.Enum(name='payroll_adjustment_kind_enum').drop(bind, checkfirst=True)
        sa.Enum(name='payroll_status_enum').drop(bind, checkfirst=True)
