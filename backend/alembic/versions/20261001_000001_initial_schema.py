"""Initial schema: organisation, contracts, expenses, budgets and settings.

Revision ID: 20261001_000001
Revises:
Create Date: 2026-10-01 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Organisation
    op.create_table(
        "sectors",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "branches",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "branch_sectors",
        sa.Column("branch_id", sa.String(64), sa.ForeignKey("branches.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("sector_id", sa.String(64), sa.ForeignKey("sectors.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_table(
        "suppliers",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    # Contracts
    op.create_table(
        "contracts",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("description", sa.String(), nullable=False, server_default=""),
        sa.Column("supplier_id", sa.String(64), nullable=True),
        sa.Column("signing_date", sa.Date(), nullable=True),
        sa.Column("sector_id", sa.String(64), nullable=True),
        sa.Column("associated_sectors", sa.JSON(), nullable=True),
        sa.Column("contract_url", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_contracts_supplier_id", "contracts", ["supplier_id"])

    op.create_table(
        "contract_line_items",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("contract_id", sa.String(64), sa.ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("supplier_id", sa.String(64), nullable=True),
        sa.Column("sector_id", sa.String(64), nullable=True),
        sa.Column("branch_id", sa.String(64), nullable=True),
    )
    op.create_index("ix_contract_line_items_contract_id", "contract_line_items", ["contract_id"])
    op.create_index("ix_contract_line_items_sector_id", "contract_line_items", ["sector_id"])

    # Expenses
    op.create_table(
        "expenses",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("description", sa.String(), nullable=False, server_default=""),
        sa.Column("sector_id", sa.String(64), nullable=True),
        sa.Column("branch_id", sa.String(64), nullable=True),
        sa.Column("supplier_id", sa.String(64), nullable=True),
        sa.Column("cost_domain", sa.String(), nullable=False, server_default="marketing"),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("contract_id", sa.String(64), nullable=True),
        sa.Column("is_multi_branch", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_amortized", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("amortization_start", sa.Date(), nullable=True),
        sa.Column("amortization_end", sa.Date(), nullable=True),
        sa.Column("invoice_url", sa.String(), nullable=True),
        sa.Column("author_name", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_expenses_date", "expenses", ["date"])
    op.create_index("ix_expenses_sector_id", "expenses", ["sector_id"])
    op.create_index("ix_expenses_supplier_id", "expenses", ["supplier_id"])

    op.create_table(
        "expense_line_items",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("expense_id", sa.String(64), sa.ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.String(), nullable=False, server_default=""),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("contract_id", sa.String(64), nullable=True),
        sa.Column("contract_line_item_id", sa.String(64), nullable=True),
        sa.Column("sector_id", sa.String(64), nullable=True),
        sa.Column("branch_id", sa.String(64), nullable=True),
        sa.Column("assignment_type", sa.String(), nullable=True),
        sa.Column("assignment_id", sa.String(), nullable=True),
        sa.Column("assigned_branches", sa.JSON(), nullable=True),
        sa.Column("channel_id", sa.String(64), nullable=True),
    )
    op.create_index("ix_expense_line_items_expense_id", "expense_line_items", ["expense_id"])
    op.create_index("ix_expense_line_items_contract_id", "expense_line_items", ["contract_id"])
    op.create_index(
        "ix_expense_line_items_contract_line_item_id", "expense_line_items", ["contract_line_item_id"]
    )

    # Budgets
    op.create_table(
        "budgets",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("sector_id", sa.String(64), nullable=False),
        sa.Column("branch_id", sa.String(64), nullable=False),
        sa.Column("channel_id", sa.String(64), nullable=False),
        sa.Column("planned_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("max_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("year", "sector_id", "branch_id", "channel_id", name="uq_budget_key"),
    )
    op.create_index("ix_budgets_year", "budgets", ["year"])

    # Shared settings (filter presets)
    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(128), primary_key=True, nullable=False),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )


def downgrade():
    op.drop_table("app_settings")
    op.drop_index("ix_budgets_year", table_name="budgets")
    op.drop_table("budgets")
    op.drop_table("expense_line_items")
    op.drop_table("expenses")
    op.drop_table("contract_line_items")
    op.drop_table("contracts")
    op.drop_table("suppliers")
    op.drop_table("branch_sectors")
    op.drop_table("branches")
    op.drop_table("sectors")
