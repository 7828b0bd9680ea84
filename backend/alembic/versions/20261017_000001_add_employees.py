"""Add employees with monthly costs per year.

Revision ID: 20261017_000001
Revises: 20261001_000001
Create Date: 2026-10-17 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_000001"
down_revision = "20261001_000001"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "employees",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("job_title", sa.String(), nullable=False, server_default=""),
        sa.Column("branch_id", sa.String(64), nullable=False),
        sa.Column("sector_id", sa.String(64), nullable=True),
        sa.Column("department", sa.String(), nullable=False, server_default=""),
        sa.Column("employment_type", sa.String(), nullable=False, server_default="full_time"),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("notes", sa.String(), nullable=False, server_default=""),
        sa.Column("monthly_costs_by_year", sa.JSON(), nullable=False),
        sa.Column("default_year", sa.String(4), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_employees_branch_id", "employees", ["branch_id"])
    op.create_index("ix_employees_sector_id", "employees", ["sector_id"])


def downgrade():
    op.drop_index("ix_employees_sector_id", table_name="employees")
    op.drop_index("ix_employees_branch_id", table_name="employees")
    op.drop_table("employees")
