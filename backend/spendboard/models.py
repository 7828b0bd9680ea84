"""SQLAlchemy ORM models and enums.

This module defines the persisted schema. Primary keys are strings so that
documents imported from the legacy document store keep their identifiers;
new rows get a UUID4 string.

Cross-references between aggregates (supplier, sector, branch, contract ids
on expenses and line items) are plain indexed string columns: historical
records routinely point at ids that no longer exist, and the allocation
engine tolerates that by omission. Only parent/child ownership (contract ->
line items, expense -> line items, branch <-> sector) is a real foreign key.
"""

import uuid
from datetime import datetime
import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship


# Single Base used by the entire application
Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


# Enums ---------------------------------------------------------

class CostDomainEnum(str, enum.Enum):
    marketing = "marketing"
    operations = "operations"


class AssignmentTypeEnum(str, enum.Enum):
    """How an expense line item is pinned to branches.

    - branch: a single branch id in assignment_id
    - distributed: comma separated branch ids in assignment_id
    - sector: spread over every branch of the item's sector
    """
    branch = "branch"
    distributed = "distributed"
    sector = "sector"


class EmploymentTypeEnum(str, enum.Enum):
    full_time = "full_time"
    part_time = "part_time"
    apprentice = "apprentice"
    contractor = "contractor"


class EmployeeStatusEnum(str, enum.Enum):
    active = "active"
    inactive = "inactive"


# Organisation --------------------------------------------------

branch_sectors = Table(
    "branch_sectors",
    Base.metadata,
    Column("branch_id", String(64), ForeignKey("branches.id", ondelete="CASCADE"), primary_key=True),
    Column("sector_id", String(64), ForeignKey("sectors.id", ondelete="CASCADE"), primary_key=True),
)


class Sector(Base):
    """Business sector (e.g. cars, boats, campers).

    Sectors group branches; an expense line item assigned to a sector with no
    explicit branch is spread across every branch of that sector.
    """
    __tablename__ = "sectors"

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    branches = relationship("Branch", secondary=branch_sectors, back_populates="sectors")

    def __str__(self):
        return self.name


class Branch(Base):
    """Physical branch/site. A branch can serve several sectors."""
    __tablename__ = "branches"

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    sectors = relationship("Sector", secondary=branch_sectors, back_populates="branches")

    def __str__(self):
        return self.name


class Supplier(Base):
    """Supplier or marketing channel that expenses and contracts are booked against."""
    __tablename__ = "suppliers"

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __str__(self):
        return self.name


# Contracts -----------------------------------------------------

class Contract(Base):
    """Supplier contract made of time-bounded line items.

    WHAT: Committed spend with a supplier, split into line items that each
          carry a value and a validity period
    WHY: Allocation engine paces each line item linearly across its period to
         derive overdue vs future spend
    REFERENCES:
      - spendboard/routers/contracts.py: CRUD + overview
      - spendboard/services/contract_projection.py: proration
    """
    __tablename__ = "contracts"

    id = Column(String(64), primary_key=True, default=_new_id)
    description = Column(String, nullable=False, default="")
    supplier_id = Column(String(64), nullable=True, index=True)
    signing_date = Column(Date, nullable=True)

    # Legacy contract-level sector attribution (superseded by line item sectors)
    sector_id = Column(String(64), nullable=True)
    associated_sectors = Column(JSON, nullable=True)

    contract_url = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    line_items = relationship(
        "ContractLineItem",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="ContractLineItem.position",
    )

    def __str__(self):
        return self.description or self.id


class ContractLineItem(Base):
    __tablename__ = "contract_line_items"

    id = Column(String(64), primary_key=True, default=_new_id)
    contract_id = Column(String(64), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String, nullable=True)

    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    supplier_id = Column(String(64), nullable=True)  # Defaults to the contract supplier
    sector_id = Column(String(64), nullable=True, index=True)
    branch_id = Column(String(64), nullable=True)

    contract = relationship("Contract", back_populates="line_items")


# Expenses ------------------------------------------------------

class Expense(Base):
    """Recorded expense (one invoice/transaction).

    Allocation types:
      - plain: recognised entirely on `date`
      - amortized: spread evenly per day across [amortization_start, amortization_end]

    Branch attribution comes from the line items (see services/branch_shares.py).
    """
    __tablename__ = "expenses"

    id = Column(String(64), primary_key=True, default=_new_id)
    date = Column(Date, nullable=True, index=True)
    description = Column(String, nullable=False, default="")

    sector_id = Column(String(64), nullable=True, index=True)
    branch_id = Column(String(64), nullable=True)
    supplier_id = Column(String(64), nullable=True, index=True)
    cost_domain = Column(String, nullable=False, default=CostDomainEnum.marketing.value)

    amount = Column(Numeric(12, 2), nullable=False, default=0)  # Sum of line items
    contract_id = Column(String(64), nullable=True)  # Legacy whole-expense contract link

    is_multi_branch = Column(Boolean, nullable=False, default=False)
    is_amortized = Column(Boolean, nullable=False, default=False)
    amortization_start = Column(Date, nullable=True)
    amortization_end = Column(Date, nullable=True)

    invoice_url = Column(String, nullable=True)
    author_name = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    line_items = relationship(
        "ExpenseLineItem",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseLineItem.position",
    )

    def __str__(self):
        return f"{self.description} ({self.date}): €{self.amount}"


class ExpenseLineItem(Base):
    __tablename__ = "expense_line_items"

    id = Column(String(64), primary_key=True, default=_new_id)
    expense_id = Column(String(64), ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String, nullable=False, default="")
    amount = Column(Numeric(12, 2), nullable=False, default=0)

    contract_id = Column(String(64), nullable=True, index=True)
    contract_line_item_id = Column(String(64), nullable=True, index=True)

    sector_id = Column(String(64), nullable=True)
    branch_id = Column(String(64), nullable=True)
    assignment_type = Column(String, nullable=True)  # AssignmentTypeEnum value
    assignment_id = Column(String, nullable=True)  # Branch id or comma separated ids
    assigned_branches = Column(JSON, nullable=True)  # Explicit list, wins over assignment
    channel_id = Column(String(64), nullable=True)  # Marketing channel

    expense = relationship("Expense", back_populates="line_items")


# Employees -----------------------------------------------------

class Employee(Base):
    """Staff member whose monthly cost is booked to a branch (cost centre).

    WHAT: Monthly cost per calendar year, stored as
          {"2025": {"01": 2100.0, ..., "12": 2100.0}}
    WHY: HR costs are tracked per branch, sector and department alongside
         marketing spend without going through expenses
    REFERENCES:
      - spendboard/routers/employees.py: CRUD + cost summary
      - spendboard/services/employee_costs.py: annual rollups
    """
    __tablename__ = "employees"

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    job_title = Column(String, nullable=False, default="")
    branch_id = Column(String(64), nullable=False, index=True)
    sector_id = Column(String(64), nullable=True, index=True)
    department = Column(String, nullable=False, default="")
    employment_type = Column(String, nullable=False, default=EmploymentTypeEnum.full_time.value)
    status = Column(String, nullable=False, default=EmployeeStatusEnum.active.value)
    notes = Column(String, nullable=False, default="")
    monthly_costs_by_year = Column(JSON, nullable=False, default=dict)
    default_year = Column(String(4), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __str__(self):
        return self.name


# Budgets -------------------------------------------------------

class Budget(Base):
    """Yearly planned/maximum budget per sector, branch and channel."""
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("year", "sector_id", "branch_id", "channel_id", name="uq_budget_key"),
    )

    id = Column(String(64), primary_key=True, default=_new_id)
    year = Column(Integer, nullable=False, index=True)
    sector_id = Column(String(64), nullable=False)
    branch_id = Column(String(64), nullable=False)
    channel_id = Column(String(64), nullable=False)
    planned_amount = Column(Numeric(12, 2), nullable=False, default=0)
    max_amount = Column(Numeric(12, 2), nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# Settings ------------------------------------------------------

class AppSetting(Base):
    """Key/value store for shared UI settings (filter presets)."""
    __tablename__ = "app_settings"

    key = Column(String(128), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
