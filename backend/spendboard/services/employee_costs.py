"""Employee cost rollups.

WHAT: Annual cost per employee plus headcount and cost by branch (cost
      centre), sector and department, and a monthly trend for the top sectors
WHY: Powers the employees page KPIs and charts; HR costs never flow through
     expenses so they are summarised on their own
REFERENCES:
  - spendboard/services/normalization.py: cost layouts -> Employee records
  - spendboard/routers/employees.py: GET /employees, GET /employees/summary

Every breakdown is computed over the same filtered list for one calendar year,
so branch, sector and department totals all sum to `total_annual_cost`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from spendboard.services.normalization import MONTH_KEYS, parse_amount
from spendboard.services.records import Employee

logger = logging.getLogger(__name__)

UNASSIGNED = "unassigned"
INACTIVE = "inactive"

STATUS_FILTERS = ("active", "inactive", "all")
SORT_KEYS = ("name", "job_title", "branch", "sector", "department", "cost")
TOP_SECTORS = 4


@dataclass
class CostBucket:
    id: str
    total_cost: float = 0.0
    headcount: int = 0


@dataclass
class EmployeeCostSummary:
    year: str
    headcount: int = 0
    total_annual_cost: float = 0.0
    average_monthly_cost: float = 0.0
    average_cost_per_employee: float = 0.0
    by_branch: List[CostBucket] = field(default_factory=list)
    by_sector: List[CostBucket] = field(default_factory=list)
    by_department: List[CostBucket] = field(default_factory=list)
    # month -> sector -> cost, for the TOP_SECTORS most expensive sectors
    monthly_by_sector: Dict[str, Dict[str, float]] = field(default_factory=dict)


# ============================================================================
# PER EMPLOYEE
# ============================================================================

def monthly_cost(employee: Employee, year: str, month: str) -> float:
    months = employee.monthly_costs_by_year.get(str(year)) or {}
    return parse_amount(months.get(month))


def annual_cost(employee: Employee, year: str) -> float:
    return sum(monthly_cost(employee, year, month) for month in MONTH_KEYS)


def available_years(employees: Iterable[Employee], today: Optional[date] = None) -> List[str]:
    """Every year with stored costs, plus the current one."""
    years = {str((today or date.today()).year)}
    for employee in employees:
        years.update(employee.monthly_costs_by_year)
    return sorted(years)


# ============================================================================
# FILTER / SORT
# ============================================================================

def filter_employees(
    employees: Iterable[Employee],
    search: Optional[str] = None,
    branch_id: Optional[str] = None,
    sector_id: Optional[str] = None,
    status: str = "active",
    department: Optional[str] = None,
    names: Optional[Mapping[str, str]] = None,
) -> List[Employee]:
    """Filter like the employees page.

    `status="active"` keeps everyone not explicitly inactive. Search matches
    name, job title, branch and sector names and department. Department
    matching ignores case and surrounding blanks.
    """
    names = names or {}
    needle = (search or "").strip().lower()
    wanted_department = (department or "").strip().lower()

    filtered = []
    for employee in employees:
        if needle:
            haystack = (
                employee.name,
                employee.job_title,
                names.get(employee.branch_id or ""),
                names.get(employee.sector_id or ""),
                employee.department,
            )
            if not any(needle in value.lower() for value in haystack if value):
                continue
        if branch_id and branch_id != "all" and employee.branch_id != branch_id:
            continue
        if sector_id and sector_id != "all" and employee.sector_id != sector_id:
            continue
        if status == "active" and employee.status == INACTIVE:
            continue
        if status == INACTIVE and employee.status != INACTIVE:
            continue
        if wanted_department and wanted_department != "all":
            if employee.department.strip().lower() != wanted_department:
                continue
        filtered.append(employee)
    return filtered


def sort_employees(
    employees: Sequence[Employee],
    key: str = "name",
    descending: bool = False,
    year: Optional[str] = None,
    names: Optional[Mapping[str, str]] = None,
) -> List[Employee]:
    if key not in SORT_KEYS:
        return list(employees)

    names = names or {}
    year = year or str(date.today().year)
    sort_values = {
        "name": lambda e: e.name.lower(),
        "job_title": lambda e: e.job_title.lower(),
        "branch": lambda e: names.get(e.branch_id or "", "").lower(),
        "sector": lambda e: names.get(e.sector_id or "", "").lower(),
        "department": lambda e: e.department.strip().lower(),
        "cost": lambda e: annual_cost(e, year),
    }
    return sorted(employees, key=sort_values[key], reverse=descending)


# ============================================================================
# SUMMARY
# ============================================================================

def _ranked(buckets: Dict[str, CostBucket]) -> List[CostBucket]:
    return sorted(buckets.values(), key=lambda b: b.total_cost, reverse=True)


def summarize_employee_costs(
    employees: Sequence[Employee],
    year: str,
    top_sectors: int = TOP_SECTORS,
) -> EmployeeCostSummary:
    """Headcount and annual cost breakdowns of already filtered employees."""
    year = str(year)
    summary = EmployeeCostSummary(year=year, headcount=len(employees))

    by_branch: Dict[str, CostBucket] = {}
    by_sector: Dict[str, CostBucket] = {}
    by_department: Dict[str, CostBucket] = {}

    for employee in employees:
        cost = annual_cost(employee, year)
        summary.total_annual_cost += cost
        for buckets, key in (
            (by_branch, employee.branch_id or UNASSIGNED),
            (by_sector, employee.sector_id or UNASSIGNED),
            (by_department, employee.department.strip() or UNASSIGNED),
        ):
            bucket = buckets.setdefault(key, CostBucket(id=key))
            bucket.total_cost += cost
            bucket.headcount += 1

    summary.by_branch = _ranked(by_branch)
    summary.by_sector = _ranked(by_sector)
    summary.by_department = _ranked(by_department)
    summary.average_monthly_cost = summary.total_annual_cost / 12
    if summary.headcount:
        summary.average_cost_per_employee = summary.total_annual_cost / summary.headcount

    top = [bucket.id for bucket in summary.by_sector[:top_sectors]]
    summary.monthly_by_sector = {month: dict.fromkeys(top, 0.0) for month in MONTH_KEYS}
    for employee in employees:
        sector_key = employee.sector_id or UNASSIGNED
        if sector_key not in top or year not in employee.monthly_costs_by_year:
            continue
        for month in MONTH_KEYS:
            value = monthly_cost(employee, year, month)
            if value > 0:
                summary.monthly_by_sector[month][sector_key] += value

    logger.debug(
        f"[EMPLOYEES] {summary.headcount} employees, {year} total={summary.total_annual_cost:.2f}"
    )
    return summary
