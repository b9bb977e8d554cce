"""Initial HaulBase tables

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> List[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def _tenant() -> sa.Column:
    return sa.Column("company_id", sa.String(), sa.ForeignKey("company.id"), nullable=False, index=True)


def upgrade() -> None:
    op.create_table(
        "company",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("zip_code", sa.String(), nullable=True),
        sa.Column("dot_number", sa.String(), nullable=True),
        sa.Column("mc_number", sa.String(), nullable=True),
        sa.Column("subscription_plan", sa.String(), nullable=False, server_default="starter"),
        sa.Column("subscription_status", sa.String(), nullable=False, server_default="trial"),
        sa.Column("stripe_customer_id", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "driver",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant(),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("license_number", sa.String(), nullable=True),
        sa.Column("license_class", sa.String(), nullable=True),
        sa.Column("license_expiry", sa.Date(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="available"),
        sa.Column("pay_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("pay_type", sa.String(), nullable=True),
        sa.Column("hours_remaining", sa.Numeric(5, 2), nullable=True),
        sa.Column("current_location", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "truck",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant(),
        sa.Column("truck_number", sa.String(), nullable=False),
        sa.Column("make", sa.String(), nullable=True),
        sa.Column("model", sa.String(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("vin", sa.String(), nullable=True),
        sa.Column("license_plate", sa.String(), nullable=True),
        sa.Column("registration_state", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="available"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "truck_number", name="uq_truck_company_truck_number"),
    )

    op.create_table(
        "freight_load",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant(),
        sa.Column("load_number", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("priority", sa.String(), nullable=False, server_default="normal"),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("customer_contact", sa.String(), nullable=True),
        sa.Column("customer_phone", sa.String(), nullable=True),
        sa.Column("customer_email", sa.String(), nullable=True),
        sa.Column("pickup_location", sa.String(), nullable=False),
        sa.Column("pickup_address", sa.String(), nullable=True),
        sa.Column("pickup_city", sa.String(), nullable=True),
        sa.Column("pickup_state", sa.String(), nullable=True),
        sa.Column("pickup_date", sa.Date(), nullable=True),
        sa.Column("pickup_time", sa.String(), nullable=True),
        sa.Column("delivery_location", sa.String(), nullable=False),
        sa.Column("delivery_address", sa.String(), nullable=True),
        sa.Column("delivery_city", sa.String(), nullable=True),
        sa.Column("delivery_state", sa.String(), nullable=True),
        sa.Column("delivery_date", sa.Date(), nullable=True),
        sa.Column("delivery_time", sa.String(), nullable=True),
        sa.Column("commodity", sa.String(), nullable=True),
        sa.Column("weight", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pieces", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("rate_type", sa.String(), nullable=False, server_default="flat"),
        sa.Column("miles", sa.Integer(), nullable=True),
        sa.Column("assigned_driver_id", sa.String(), sa.ForeignKey("driver.id"), nullable=True, index=True),
        sa.Column("assigned_truck_id", sa.String(), sa.ForeignKey("truck.id"), nullable=True, index=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("trailer_type", sa.String(), nullable=True),
        sa.Column("container_number", sa.String(), nullable=True),
        sa.Column("container_size", sa.String(), nullable=True),
        sa.Column("bol_number", sa.String(), nullable=True),
        sa.Column("ssl", sa.String(), nullable=True),
        sa.Column("vessel_name", sa.String(), nullable=True),
        sa.Column("port_of_loading", sa.String(), nullable=True),
        sa.Column("port_of_discharge", sa.String(), nullable=True),
        sa.Column("terminal", sa.String(), nullable=True),
        sa.Column("hazmat", sa.Boolean(), nullable=True),
        sa.Column("chassis_required", sa.Boolean(), nullable=True),
        sa.Column("chassis_type", sa.String(), nullable=True),
        sa.Column("chassis_provider", sa.String(), nullable=True),
        sa.Column("temperature", sa.Integer(), nullable=True),
        sa.Column("is_fsma_compliant", sa.Boolean(), nullable=True),
        sa.Column("liquid_type", sa.String(), nullable=True),
        sa.Column("wash_type", sa.String(), nullable=True),
        sa.Column("volume", sa.Integer(), nullable=True),
        sa.Column("load_length", sa.Numeric(6, 2), nullable=True),
        sa.Column("load_width", sa.Numeric(6, 2), nullable=True),
        sa.Column("load_height", sa.Numeric(6, 2), nullable=True),
        sa.Column("tarp_required", sa.Boolean(), nullable=True),
        sa.Column("securement_type", sa.String(), nullable=True),
        sa.Column("pallet_count", sa.Integer(), nullable=True),
        sa.Column("is_stackable", sa.Boolean(), nullable=True),
        sa.Column("seal_number", sa.String(), nullable=True),
        sa.Column("is_multi_driver_load", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dispatch_status", sa.String(), nullable=False, server_default="planning"),
        *_timestamps(),
        sa.Column("dispatched_at", sa.DateTime(), nullable=True),
        sa.Column("picked_up_at", sa.DateTime(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("company_id", "load_number", name="uq_load_company_load_number"),
    )

    op.create_table(
        "dispatch_leg",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("load_id", sa.String(), sa.ForeignKey("freight_load.id"), nullable=False, index=True),
        _tenant(),
        sa.Column("driver_id", sa.String(), sa.ForeignKey("driver.id"), nullable=True, index=True),
        sa.Column("truck_id", sa.String(), sa.ForeignKey("truck.id"), nullable=True, index=True),
        sa.Column("trailer_id", sa.String(), nullable=True),
        sa.Column("chassis_id", sa.String(), nullable=True),
        sa.Column("action_type", sa.String(), nullable=False),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("eta", sa.DateTime(), nullable=True),
        sa.Column("etd", sa.DateTime(), nullable=True),
        sa.Column("actual_arrival", sa.DateTime(), nullable=True),
        sa.Column("actual_departure", sa.DateTime(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("leg_order", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("load_id", "leg_order", name="uq_dispatch_leg_load_order"),
    )

    op.create_table(
        "load_assignment",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("load_id", sa.String(), sa.ForeignKey("freight_load.id"), nullable=False, index=True),
        _tenant(),
        sa.Column("driver_id", sa.String(), sa.ForeignKey("driver.id"), nullable=False, index=True),
        sa.Column("truck_id", sa.String(), sa.ForeignKey("truck.id"), nullable=True),
        sa.Column("trailer_id", sa.String(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=True),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("assignment_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="assigned"),
        *_timestamps(),
    )

    op.create_table(
        "load_billing",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("load_id", sa.String(), sa.ForeignKey("freight_load.id"), nullable=False, unique=True, index=True),
        _tenant(),
        sa.Column("base_rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("rate_type", sa.String(), nullable=False, server_default="flat"),
        sa.Column("rate_per_mile", sa.Numeric(8, 2), nullable=True),
        sa.Column("total_miles", sa.Integer(), nullable=True),
        sa.Column("billing_status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("invoice_number", sa.String(), nullable=True),
        sa.Column("invoice_date", sa.DateTime(), nullable=True),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("paid_date", sa.DateTime(), nullable=True),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("customer_terms", sa.String(), nullable=False, server_default="NET30"),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_accessorials", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_expenses", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("billing_notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "load_accessorial",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("load_id", sa.String(), sa.ForeignKey("freight_load.id"), nullable=False, index=True),
        sa.Column("billing_id", sa.String(), sa.ForeignKey("load_billing.id"), nullable=False, index=True),
        _tenant(),
        sa.Column("charge_type", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("quantity", sa.Numeric(10, 2), nullable=False, server_default="1"),
        sa.Column("is_billable", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("customer_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "load_expense",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("load_id", sa.String(), sa.ForeignKey("freight_load.id"), nullable=False, index=True),
        sa.Column("billing_id", sa.String(), sa.ForeignKey("load_billing.id"), nullable=False, index=True),
        _tenant(),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("driver_id", sa.String(), sa.ForeignKey("driver.id"), nullable=True),
        sa.Column("vendor", sa.String(), nullable=True),
        sa.Column("reimbursement_status", sa.String(), nullable=False, server_default="pending"),
        *_timestamps(),
    )

    op.create_table(
        "accounting_invoice",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant(),
        sa.Column("load_id", sa.String(), sa.ForeignKey("freight_load.id"), nullable=True, index=True),
        sa.Column("invoice_number", sa.String(), nullable=False),
        sa.Column("customer_name", sa.String(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("paid_date", sa.Date(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "accounting_bill",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant(),
        sa.Column("bill_number", sa.String(), nullable=False),
        sa.Column("vendor_name", sa.String(), nullable=True),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("bill_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("paid_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("remaining_balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        *_timestamps(),
    )

    op.create_table(
        "employee",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant(),
        sa.Column("employee_number", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("hire_date", sa.Date(), nullable=False),
        sa.Column("termination_date", sa.Date(), nullable=True),
        sa.Column("department", sa.String(), nullable=True),
        sa.Column("position", sa.String(), nullable=True),
        sa.Column("employment_type", sa.String(), nullable=False, server_default="full_time"),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("pay_type", sa.String(), nullable=False),
        sa.Column("pay_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("pay_frequency", sa.String(), nullable=False, server_default="bi_weekly"),
        sa.Column("overtime_eligible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "payroll_run",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant(),
        sa.Column("payroll_date", sa.Date(), nullable=False),
        sa.Column("pay_period_start", sa.Date(), nullable=False),
        sa.Column("pay_period_end", sa.Date(), nullable=False),
        sa.Column("check_date", sa.Date(), nullable=False),
        sa.Column("payroll_type", sa.String(), nullable=False, server_default="regular"),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("approved_by", sa.String(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("total_gross_pay", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_net_pay", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_taxes", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_deductions", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("employee_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    paystub_amounts = [
        "regular_pay",
        "overtime_pay",
        "bonus_pay",
        "federal_income_tax",
        "state_income_tax",
        "social_security_tax",
        "medicare_tax",
        "total_taxes",
        "total_deductions",
    ]
    ytd_amounts = [
        "ytd_gross_pay",
        "ytd_net_pay",
        "ytd_federal_income_tax",
        "ytd_state_income_tax",
        "ytd_social_security_tax",
        "ytd_medicare_tax",
    ]
    op.create_table(
        "employee_paystub",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("payroll_run_id", sa.String(), sa.ForeignKey("payroll_run.id"), nullable=False, index=True),
        sa.Column("employee_id", sa.String(), sa.ForeignKey("employee.id"), nullable=False, index=True),
        _tenant(),
        sa.Column("pay_period_start", sa.Date(), nullable=False),
        sa.Column("pay_period_end", sa.Date(), nullable=False),
        sa.Column("pay_date", sa.Date(), nullable=False),
        sa.Column("regular_hours", sa.Numeric(6, 2), nullable=False, server_default="0"),
        sa.Column("overtime_hours", sa.Numeric(6, 2), nullable=False, server_default="0"),
        *[sa.Column(name, sa.Numeric(10, 2), nullable=False, server_default="0") for name in paystub_amounts],
        sa.Column("gross_pay", sa.Numeric(10, 2), nullable=False),
        sa.Column("net_pay", sa.Numeric(10, 2), nullable=False),
        *[sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default="0") for name in ytd_amounts],
        *_timestamps(),
    )

    op.create_table(
        "subscription",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("company_id", sa.String(), sa.ForeignKey("company.id"), nullable=False, unique=True, index=True),
        sa.Column("stripe_subscription_id", sa.String(), nullable=True, unique=True, index=True),
        sa.Column("stripe_customer_id", sa.String(), nullable=True, index=True),
        sa.Column("plan_id", sa.String(), nullable=False, server_default="starter"),
        sa.Column("plan_name", sa.String(), nullable=False, server_default="Starter Plan"),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("billing_cycle", sa.String(), nullable=False, server_default="monthly"),
        sa.Column("current_period_start", sa.DateTime(), nullable=True),
        sa.Column("current_period_end", sa.DateTime(), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("canceled_at", sa.DateTime(), nullable=True),
        sa.Column("trial_start", sa.DateTime(), nullable=True),
        sa.Column("trial_end", sa.DateTime(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "subscription_addon",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("subscription_id", sa.String(), sa.ForeignKey("subscription.id"), nullable=False, index=True),
        _tenant(),
        sa.Column("addon_id", sa.String(), nullable=False),
        sa.Column("addon_name", sa.String(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("added_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("removed_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "recurring_invoice_template",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant(),
        sa.Column("customer_id", sa.String(), nullable=False, index=True),
        sa.Column("template_name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("frequency", sa.String(), nullable=False),
        sa.Column("terms", sa.String(), nullable=False, server_default="Net 30"),
        sa.Column("line_items", sa.JSON(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("next_run_date", sa.Date(), nullable=False, index=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("last_invoice_date", sa.Date(), nullable=True),
        sa.Column("invoice_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "subscription_invoice",
        sa.Column("id", sa.String(), primary_key=True),
        _tenant(),
        sa.Column("customer_id", sa.String(), nullable=False, index=True),
        sa.Column("recurring_template_id", sa.String(), nullable=False, index=True),
        sa.Column("invoice_number", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("company_id", "invoice_number", name="uq_subscription_invoice_company_number"),
    )


def downgrade() -> None:
    for table in (
        "subscription_invoice",
        "recurring_invoice_template",
        "subscription_addon",
        "subscription",
        "employee_paystub",
        "payroll_run",
        "employee",
        "accounting_bill",
        "accounting_invoice",
        "load_expense",
        "load_accessorial",
        "load_billing",
        "load_assignment",
        "dispatch_leg",
        "freight_load",
        "truck",
        "driver",
        "company",
    ):
        op.drop_table(table)
