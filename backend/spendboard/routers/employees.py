"""Employee endpoints.

WHAT:
    CRUD for staff members and their monthly costs per year, a filtered and
    sorted list with each employee's annual cost, and a cost summary by
    branch, sector and department.

WHY:
    Salaries are the largest operating cost of a branch but are not booked as
    expenses. Keeping them here lets the dashboards show HR cost per cost
    centre next to marketing and operations spend.

REFERENCES:
    - spendboard/services/employee_costs.py (filters, sort and rollups)
    - spendboard/services/normalization.py (month layout)
"""

import logging
import re
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..services.employee_costs import (
    SORT_KEYS,
    STATUS_FILTERS,
    UNASSIGNED,
    CostBucket,
    annual_cost,
    available_years,
    filter_employees,
    sort_employees,
    summarize_employee_costs,
)
from ..services.normalization import MONTH_KEYS, normalize_month_costs, preferred_year
from ..services.record_loader import load_employees, load_names


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/employees",
    tags=["Employees"],
    responses={
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
        422: {"model": schemas.ErrorResponse, "description": "Invalid employee"},
    },
)

_YEAR = re.compile(r"^\d{4}$")


def _get_employee_or_404(db: Session, employee_id: str) -> models.Employee:
    employee = db.get(models.Employee, employee_id)
    if not employee:
        logger.warning(f"[EMPLOYEES] Employee not found: {employee_id}")
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


def _validated_costs(payload: schemas.EmployeeIn) -> Dict[str, Dict[str, float]]:
    """Normalize the year/month map of a write.

    Month keys may be "1" or "01". Every year gets all twelve months.

    Raises:
        HTTPException 422: a malformed year or month, a negative cost, or no
        positive cost at all
    """
    costs: Dict[str, Dict[str, float]] = {}
    for raw_year, months in payload.monthly_costs_by_year.items():
        year = raw_year.strip()
        if not _YEAR.match(year):
            raise HTTPException(status_code=422, detail=f"Invalid year '{raw_year}'")

        keyed = {}
        for raw_month, amount in months.items():
            month = raw_month.strip().zfill(2)
            if month not in MONTH_KEYS:
                raise HTTPException(status_code=422, detail=f"Invalid month '{raw_month}' in {year}")
            if amount < 0:
                raise HTTPException(status_code=422, detail=f"Negative cost for {year}-{month}")
            keyed[month] = amount
        costs[year] = normalize_month_costs(keyed)

    if not any(value > 0 for months in costs.values() for value in months.values()):
        raise HTTPException(status_code=422, detail="Enter at least one monthly cost")
    return costs


def _apply_payload(employee: models.Employee, payload: schemas.EmployeeIn) -> None:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=422, detail="Employee name is required")
    branch_id = payload.branch_id.strip()
    if not branch_id:
        raise HTTPException(status_code=422, detail="branch_id is required")

    costs = _validated_costs(payload)

    employee.name = name
    employee.job_title = payload.job_title.strip()
    employee.branch_id = branch_id
    employee.sector_id = payload.sector_id or None
    employee.department = payload.department.strip()
    employee.employment_type = payload.employment_type.value
    employee.status = payload.status.value
    employee.notes = payload.notes.strip()
    employee.monthly_costs_by_year = costs
    employee.default_year = preferred_year(costs, payload.default_year)


def _check_filters(status_filter: str, sort: Optional[str] = None) -> None:
    if status_filter not in STATUS_FILTERS:
        raise HTTPException(status_code=422, detail=f"Unknown status filter '{status_filter}'")
    if sort is not None and sort not in SORT_KEYS:
        raise HTTPException(status_code=422, detail=f"Unknown sort key '{sort}'")


def _bucket_out(bucket: CostBucket, names: Dict[str, str], named: bool = True) -> schemas.EmployeeCostBucketOut:
    if bucket.id == UNASSIGNED:
        name = None
    else:
        name = names.get(bucket.id) if named else bucket.id
    return schemas.EmployeeCostBucketOut(
        id=bucket.id,
        name=name,
        total_cost=round(bucket.total_cost, 2),
        headcount=bucket.headcount,
    )


# ============================================================================
# LIST / SUMMARY
# ============================================================================

@router.get(
    "",
    response_model=List[schemas.EmployeeListItemOut],
    summary="List employees",
    description="""
    Employees with their annual cost for `year` (default: current year).

    `status=active` (default) hides inactive staff, `inactive` shows only
    them and `all` shows everyone. `search` matches name, job title, branch,
    sector and department. Sort by name, job_title, branch, sector,
    department or cost.
    """,
)
def list_employees(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    search: Optional[str] = Query(None),
    branch_id: Optional[str] = Query(None),
    sector_id: Optional[str] = Query(None),
    status_filter: str = Query("active", alias="status"),
    department: Optional[str] = Query(None),
    sort: str = Query("name"),
    direction: str = Query("asc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
):
    _check_filters(status_filter, sort)
    year_key = str(year or date.today().year)
    names = load_names(db)

    employees = filter_employees(
        load_employees(db),
        search=search,
        branch_id=branch_id,
        sector_id=sector_id,
        status=status_filter,
        department=department,
        names=names,
    )
    employees = sort_employees(employees, sort, direction == "desc", year_key, names)

    rows = {row.id: row for row in db.query(models.Employee).all()}
    return [
        schemas.EmployeeListItemOut(
            **schemas.EmployeeOut.model_validate(rows[employee.id]).model_dump(),
            annual_cost=round(annual_cost(employee, year_key), 2),
        )
        for employee in employees
    ]


@router.get(
    "/summary",
    response_model=schemas.EmployeeCostSummaryOut,
    summary="Employee cost summary",
    description="""
    Headcount and annual cost of the filtered employees by branch, sector and
    department, ranked by cost, plus the monthly cost of the top sectors.
    Takes the same filters as the list.
    """,
)
def employee_summary(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    search: Optional[str] = Query(None),
    branch_id: Optional[str] = Query(None),
    sector_id: Optional[str] = Query(None),
    status_filter: str = Query("active", alias="status"),
    department: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    _check_filters(status_filter)
    year_key = str(year or date.today().year)
    names = load_names(db)
    everyone = load_employees(db)

    employees = filter_employees(
        everyone,
        search=search,
        branch_id=branch_id,
        sector_id=sector_id,
        status=status_filter,
        department=department,
        names=names,
    )
    summary = summarize_employee_costs(employees, year_key)

    logger.info(
        f"[EMPLOYEES] Summary {year_key}: {summary.headcount} employees, "
        f"total={summary.total_annual_cost:.2f}"
    )
    return schemas.EmployeeCostSummaryOut(
        year=summary.year,
        headcount=summary.headcount,
        total_annual_cost=round(summary.total_annual_cost, 2),
        average_monthly_cost=round(summary.average_monthly_cost, 2),
        average_cost_per_employee=round(summary.average_cost_per_employee, 2),
        by_branch=[_bucket_out(b, names) for b in summary.by_branch],
        by_sector=[_bucket_out(b, names) for b in summary.by_sector],
        by_department=[_bucket_out(b, names, named=False) for b in summary.by_department],
        monthly_by_sector={
            month: {sector: round(value, 2) for sector, value in sectors.items()}
            for month, sectors in summary.monthly_by_sector.items()
        },
        available_years=available_years(everyone),
    )


# ============================================================================
# CRUD
# ============================================================================

@router.get("/{employee_id}", response_model=schemas.EmployeeOut, summary="Get employee")
def get_employee(employee_id: str, db: Session = Depends(get_db)):
    return _get_employee_or_404(db, employee_id)


@router.post(
    "",
    response_model=schemas.EmployeeOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create employee",
)
def create_employee(payload: schemas.EmployeeIn, db: Session = Depends(get_db)):
    employee = models.Employee()
    _apply_payload(employee, payload)
    db.add(employee)
    db.commit()
    db.refresh(employee)
    logger.info(f"[EMPLOYEES] Created {employee.id} ({employee.name}) on branch {employee.branch_id}")
    return employee


@router.put("/{employee_id}", response_model=schemas.EmployeeOut, summary="Replace employee")
def update_employee(employee_id: str, payload: schemas.EmployeeIn, db: Session = Depends(get_db)):
    employee = _get_employee_or_404(db, employee_id)
    _apply_payload(employee, payload)
    db.commit()
    db.refresh(employee)
    logger.info(f"[EMPLOYEES] Updated {employee_id}")
    return employee


@router.delete("/{employee_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete employee")
def delete_employee(employee_id: str, db: Session = Depends(get_db)):
    employee = _get_employee_or_404(db, employee_id)
    db.delete(employee)
    db.commit()
    logger.info(f"[EMPLOYEES] Deleted {employee_id}")
    return None
