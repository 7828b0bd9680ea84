"""Pydantic schemas for request/response payloads."""

from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field

from .models import AssignmentTypeEnum, CostDomainEnum, EmployeeStatusEnum, EmploymentTypeEnum
from .services.normalization import parse_amount


# ============================================================================
# Common
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str = Field(
        description="Error message",
        examples=["Contract not found"]
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(
        description="Service status",
        examples=["ok"]
    )


class SkippedRecordOut(BaseModel):
    kind: str
    record_id: str
    reason: str


# Amounts may be typed as Italian-formatted strings ("1.234,56")
LocaleAmount = Annotated[float, BeforeValidator(parse_amount)]


# ============================================================================
# Reference data (sectors, branches, suppliers)
# ============================================================================

class SectorCreate(BaseModel):
    name: str = Field(min_length=1)


class SectorOut(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class BranchCreate(BaseModel):
    name: str = Field(min_length=1)
    sector_ids: List[str] = Field(default_factory=list, description="Sectors served by the branch")


class BranchOut(BaseModel):
    id: str
    name: str
    sector_ids: List[str] = Field(default_factory=list)


class SupplierCreate(BaseModel):
    name: str = Field(min_length=1)


class SupplierOut(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


# ============================================================================
# Contracts
# ============================================================================

class ContractLineItemIn(BaseModel):
    id: Optional[str] = None
    description: Optional[str] = None
    total_amount: LocaleAmount = Field(0.0, description="Line item value (numbers or '1.234,56')")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    supplier_id: Optional[str] = None
    sector_id: Optional[str] = None
    branch_id: Optional[str] = None


class ContractCreate(BaseModel):
    """Create or replace a contract with its line items."""
    description: str = ""
    supplier_id: Optional[str] = None
    signing_date: Optional[date] = None
    sector_id: Optional[str] = None
    associated_sectors: List[str] = Field(default_factory=list)
    contract_url: Optional[str] = None
    line_items: List[ContractLineItemIn] = Field(default_factory=list)


class ContractLineItemOut(BaseModel):
    id: str
    description: Optional[str]
    total_amount: float
    start_date: Optional[date]
    end_date: Optional[date]
    supplier_id: Optional[str]
    sector_id: Optional[str]
    branch_id: Optional[str]

    model_config = {"from_attributes": True}


class ContractOut(BaseModel):
    id: str
    description: str
    supplier_id: Optional[str]
    signing_date: Optional[date]
    sector_id: Optional[str]
    associated_sectors: Optional[List[str]]
    contract_url: Optional[str]
    line_items: List[ContractLineItemOut]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class ContractSummaryOut(BaseModel):
    id: str
    description: str
    supplier_id: Optional[str]
    signing_date: Optional[date]
    total_amount: float
    spent_amount: float
    progress: float
    remaining_value: float
    projection_in_period: float
    status: Literal["not_started", "active", "completed", "overrun"]
    effective_sectors: List[str]


class ContractStatsOut(BaseModel):
    total: int
    total_value: float
    total_spent: float
    total_projections: float
    total_remaining: float
    active: int
    completed: int
    overrun: int
    avg_utilization: float


class ContractOverviewResponse(BaseModel):
    start_date: date
    end_date: date
    stats: ContractStatsOut
    contracts: List[ContractSummaryOut]


# ============================================================================
# Expenses
# ============================================================================

class ExpenseLineItemIn(BaseModel):
    description: str = ""
    amount: LocaleAmount = 0.0
    contract_id: Optional[str] = None
    contract_line_item_id: Optional[str] = None
    sector_id: Optional[str] = None
    branch_id: Optional[str] = None
    assignment_type: Optional[AssignmentTypeEnum] = None
    assignment_id: Optional[Union[str, List[str]]] = None
    channel_id: Optional[str] = None


class ExpenseCreate(BaseModel):
    """Create or replace an expense.

    The expense amount is always recomputed from its line items.
    """
    date: date
    description: str = ""
    sector_id: Optional[str] = None
    supplier_id: Optional[str] = None
    branch_id: Optional[str] = Field(None, description="Required unless is_multi_branch")
    cost_domain: CostDomainEnum = CostDomainEnum.marketing
    is_multi_branch: bool = False
    is_amortized: bool = False
    amortization_start: Optional[date] = None
    amortization_end: Optional[date] = None
    invoice_url: Optional[str] = None
    author_name: Optional[str] = None
    line_items: List[ExpenseLineItemIn] = Field(default_factory=list)


class ExpenseLineItemOut(BaseModel):
    id: str
    description: str
    amount: float
    contract_id: Optional[str]
    contract_line_item_id: Optional[str]
    sector_id: Optional[str]
    branch_id: Optional[str]
    assignment_type: Optional[str]
    assignment_id: Optional[str]
    channel_id: Optional[str]

    model_config = {"from_attributes": True}


class ExpenseOut(BaseModel):
    id: str
    date: Optional[date]
    description: str
    sector_id: Optional[str]
    supplier_id: Optional[str]
    branch_id: Optional[str]
    cost_domain: str
    amount: float
    is_multi_branch: bool
    is_amortized: bool
    amortization_start: Optional[date]
    amortization_end: Optional[date]
    invoice_url: Optional[str]
    author_name: Optional[str]
    line_items: List[ExpenseLineItemOut]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


# ============================================================================
# Allocations
# ============================================================================

class LineItemProjectionOut(BaseModel):
    line_item_id: str
    contract_id: str
    supplier_id: Optional[str]
    sector_id: Optional[str]
    total_amount: float
    spent_total: float
    remaining: float
    daily_amount: float
    overdue_days: int
    future_days: int
    overdue_amount: float
    future_amount: float


class ProjectionResponse(BaseModel):
    """Overdue vs future spend of contracts inside a reporting window."""
    start_date: date
    end_date: date
    today: date
    cost_domain: str
    future_by_supplier: Dict[str, float]
    future_by_sector: Dict[str, float]
    overdue_by_supplier: Dict[str, float]
    total_overdue: float
    total_future: float
    line_items: List[LineItemProjectionOut]
    skipped: List[SkippedRecordOut] = Field(default_factory=list)


class ExpenseBranchSharesOut(BaseModel):
    expense_id: str
    branch_totals: Dict[str, float]
    item_totals: Dict[str, float]
    item_branch_totals: Dict[str, Dict[str, float]]


class BranchSharesResponse(BaseModel):
    start_date: date
    end_date: date
    sector_id: str
    branch_totals: Dict[str, float]
    total: float
    expenses: List[ExpenseBranchSharesOut]
    skipped: List[SkippedRecordOut] = Field(default_factory=list)


class SpendSummaryResponse(BaseModel):
    start_date: date
    end_date: date
    total: float
    expense_count: int
    by_supplier: Dict[str, float]
    by_sector: Dict[str, float]
    by_branch: Dict[str, float]
    by_month: Dict[str, float]
    names: Dict[str, str] = Field(default_factory=dict, description="id -> display name")


# ============================================================================
# Budgets
# ============================================================================

class BudgetIn(BaseModel):
    id: Optional[str] = None
    year: int
    sector_id: str
    branch_id: str
    channel_id: str
    planned_amount: LocaleAmount = 0.0
    max_amount: LocaleAmount = 0.0


class BudgetOut(BaseModel):
    id: str
    year: int
    sector_id: str
    branch_id: str
    channel_id: str
    planned_amount: float
    max_amount: float

    model_config = {"from_attributes": True}


class BudgetBulkResponse(BaseModel):
    saved: int
    skipped: int
    budgets: List[BudgetOut]


# ============================================================================
# Filter presets
# ============================================================================

class FilterPresetCreate(BaseModel):
    name: str
    filters: Dict[str, Any] = Field(default_factory=dict)


class FilterPresetOut(BaseModel):
    id: str
    name: str
    filters: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Employees
# ============================================================================

class EmployeeIn(BaseModel):
    """Create or replace an employee.

    `monthly_costs_by_year` maps a four digit year to "01".."12" month costs.
    Months left out are stored as 0.
    """
    name: str
    job_title: str = ""
    branch_id: str = Field(description="Cost centre the salary is booked to")
    sector_id: Optional[str] = None
    department: str = ""
    employment_type: EmploymentTypeEnum = EmploymentTypeEnum.full_time
    status: EmployeeStatusEnum = EmployeeStatusEnum.active
    notes: str = ""
    monthly_costs_by_year: Dict[str, Dict[str, LocaleAmount]] = Field(
        default_factory=dict,
        examples=[{"2025": {"01": "2.100,00", "02": 2100}}],
    )
    default_year: Optional[str] = None


class EmployeeOut(BaseModel):
    id: str
    name: str
    job_title: str
    branch_id: str
    sector_id: Optional[str]
    department: str
    employment_type: str
    status: str
    notes: str
    monthly_costs_by_year: Dict[str, Dict[str, float]]
    default_year: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class EmployeeListItemOut(EmployeeOut):
    annual_cost: float = Field(description="Sum of the twelve months of the requested year")


class EmployeeCostBucketOut(BaseModel):
    id: str
    name: Optional[str] = None
    total_cost: float
    headcount: int


class EmployeeCostSummaryOut(BaseModel):
    year: str
    headcount: int
    total_annual_cost: float
    average_monthly_cost: float
    average_cost_per_employee: float
    by_branch: List[EmployeeCostBucketOut]
    by_sector: List[EmployeeCostBucketOut]
    by_department: List[EmployeeCostBucketOut]
    monthly_by_sector: Dict[str, Dict[str, float]]
    available_years: List[str]


# ============================================================================
# Legacy import
# ============================================================================

class LegacyImportRequest(BaseModel):
    """Raw documents exported from the legacy document store.

    Field names are accepted in any historical spelling; see
    services/normalization.py.
    """
    contracts: List[Dict[str, Any]] = Field(default_factory=list)
    expenses: List[Dict[str, Any]] = Field(default_factory=list)
    employees: List[Dict[str, Any]] = Field(default_factory=list)


class LegacyImportResponse(BaseModel):
    contracts_imported: int
    expenses_imported: int
    employees_imported: int
    skipped: int
