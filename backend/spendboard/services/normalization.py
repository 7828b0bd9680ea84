"""Ingestion-boundary adapters.

WHAT:
    Coerces raw documents (legacy exports, request payloads) and ORM rows into
    the canonical records of services/records.py, and provides the amount/date
    primitives shared by every allocation module.

WHY:
    - Stored documents use several spellings for the same field
      (branchId/branchld/branch_id, supplierId/supplierld/channelId, ...)
    - Amounts arrive as numbers or as Italian-formatted strings ("1.234,56")
    - Employee costs went through three layouts (a single monthly figure, one
      year of months, months per year)
    - The engine must never see either problem

REFERENCES:
    - spendboard/services/records.py: target types
    - spendboard/routers/imports.py: legacy document import
    - spendboard/routers/allocations.py: ORM rows -> records
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from spendboard.services.records import (
    BranchAssignment,
    Contract,
    ContractLineItem,
    Employee,
    Expense,
    ExpenseLineItem,
)


# Field name variants seen in stored documents, most canonical first
SECTOR_KEYS = ("sectorId", "sectorld", "sector_id")
BRANCH_KEYS = ("branchId", "branchld", "branch_id")
SUPPLIER_KEYS = ("supplierId", "supplierld", "supplier_id", "channelId")
CONTRACT_KEYS = ("relatedContractId", "contractId", "contract_id")
CONTRACT_LINE_ITEM_KEYS = (
    "relatedLineItemId",
    "relatedContractLineItemId",
    "contractLineItemId",
    "contract_line_item_id",
)

_NON_NUMERIC = re.compile(r"[^0-9,.\-+]")
_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}")
_TRUE_STRINGS = {"true", "1", "yes", "y", "si", "sì"}
_YEAR_KEY = re.compile(r"^\d{4}$")

MONTH_KEYS = tuple(f"{month:02d}" for month in range(1, 13))


# ============================================================================
# PRIMITIVES
# ============================================================================

def parse_amount(value: Any) -> float:
    """Coerce a monetary value to a finite float.

    Accepts numbers and locale-formatted strings:
        "1.234,56" -> 1234.56, "1,234.56" -> 1234.56, "12,5" -> 12.5,
        "€ 300" -> 300.0

    Anything unparseable (including NaN/inf and ints too large for a float)
    becomes 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            return 0.0
    elif isinstance(value, str):
        number = _parse_amount_string(value)
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _parse_amount_string(text: str) -> float:
    cleaned = _NON_NUMERIC.sub("", text)
    if not cleaned:
        return 0.0

    if "," in cleaned and "." in cleaned:
        # Whichever separator comes last is the decimal one
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        if cleaned.count(",") > 1:
            cleaned = cleaned.replace(",", "")
        else:
            cleaned = cleaned.replace(",", ".")
    elif cleaned.count(".") > 1:
        cleaned = cleaned.replace(".", "")

    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def normalize_date(value: Any) -> Optional[date]:
    """Truncate a date-like value to a calendar day.

    Handles date/datetime objects, ISO strings ("2025-01-31",
    "2025-01-31T10:00:00Z") and exported timestamps ({"seconds": ...}).
    Returns None for empty or invalid input, including timestamps outside the
    range of `datetime`.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            try:
                return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
            except (OverflowError, ValueError, OSError):
                return None
        return None
    if isinstance(value, str):
        text = value.strip()
        if not _ISO_DAY.match(text):
            return None
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative when end precedes start)."""
    return (end - start).days


def _first(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _as_id_tuple(value: Any) -> Tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(v).strip() for v in value if v and str(v).strip())
    return ()


def _as_assignment(value: Any) -> BranchAssignment:
    if isinstance(value, (list, tuple)):
        return _as_id_tuple(value)
    return _as_id(value)


# ============================================================================
# RAW DOCUMENTS -> RECORDS
# ============================================================================

def contract_from_mapping(raw: Mapping[str, Any], fallback_id: Optional[str] = None) -> Contract:
    """Build a Contract from a stored document or request payload."""
    contract_id = _as_id(_first(raw, ("id", "_id"))) or fallback_id or ""
    supplier_id = _as_id(_first(raw, SUPPLIER_KEYS))

    line_items = []
    for index, item in enumerate(raw.get("lineItems") or raw.get("line_items") or []):
        if not isinstance(item, Mapping):
            continue
        line_items.append(ContractLineItem(
            id=_as_id(_first(item, ("id", "_key", "lineItemId"))) or f"{contract_id}-{index}",
            contract_id=contract_id,
            total_amount=parse_amount(_first(item, ("totalAmount", "total_amount", "amount"))),
            start_date=normalize_date(_first(item, ("startDate", "start_date"))),
            end_date=normalize_date(_first(item, ("endDate", "end_date"))),
            supplier_id=_as_id(_first(item, SUPPLIER_KEYS)) or supplier_id,
            sector_id=_as_id(_first(item, SECTOR_KEYS)),
            branch_id=_as_id(_first(item, BRANCH_KEYS)),
            description=_first(item, ("description",)),
        ))

    return Contract(
        id=contract_id,
        supplier_id=supplier_id,
        signing_date=normalize_date(_first(raw, ("signingDate", "signing_date"))),
        description=str(raw.get("description") or ""),
        line_items=tuple(line_items),
        sector_id=_as_id(_first(raw, SECTOR_KEYS)),
        associated_sectors=_as_id_tuple(raw.get("associatedSectors") or raw.get("associated_sectors")),
    )


def expense_from_mapping(raw: Mapping[str, Any], fallback_id: Optional[str] = None) -> Expense:
    """Build an Expense from a stored document or request payload."""
    expense_id = _as_id(_first(raw, ("id", "_id"))) or fallback_id or ""

    line_items = []
    for index, item in enumerate(raw.get("lineItems") or raw.get("line_items") or []):
        if not isinstance(item, Mapping):
            continue
        line_items.append(ExpenseLineItem(
            key=_as_id(_first(item, ("_key", "id", "key"))) or f"{expense_id}-{index}",
            description=str(item.get("description") or ""),
            amount=parse_amount(item.get("amount")),
            contract_id=_as_id(_first(item, CONTRACT_KEYS)),
            contract_line_item_id=_as_id(_first(item, CONTRACT_LINE_ITEM_KEYS)),
            sector_id=_as_id(_first(item, SECTOR_KEYS)),
            branch_id=_as_id(_first(item, BRANCH_KEYS)),
            assignment_type=_as_id(_first(item, ("assignmentType", "assignment_type"))),
            assignment_id=_as_assignment(_first(item, ("assignmentId", "assignment_id"))),
            assigned_branches=_as_id_tuple(item.get("assignedBranches") or item.get("assigned_branches")),
            channel_id=_as_id(_first(item, ("marketingChannelId", "channelId", "channel_id"))),
        ))

    return Expense(
        id=expense_id,
        date=normalize_date(raw.get("date")),
        description=str(raw.get("description") or ""),
        amount=parse_amount(raw.get("amount")),
        sector_id=_as_id(_first(raw, SECTOR_KEYS)),
        branch_id=_as_id(_first(raw, BRANCH_KEYS)),
        supplier_id=_as_id(_first(raw, SUPPLIER_KEYS)),
        cost_domain=_as_id(_first(raw, ("costDomain", "cost_domain"))),
        contract_id=_as_id(_first(raw, CONTRACT_KEYS)),
        is_multi_branch=_as_bool(_first(raw, ("isMultiBranch", "is_multi_branch"))),
        is_amortized=_as_bool(_first(raw, ("isAmortized", "is_amortized"))),
        amortization_start=normalize_date(
            _first(raw, ("amortizationStartDate", "amortization_start_date", "amortization_start"))
        ),
        amortization_end=normalize_date(
            _first(raw, ("amortizationEndDate", "amortization_end_date", "amortization_end"))
        ),
        invoice_url=_as_id(_first(raw, ("invoicePdfUrl", "invoice_url"))),
        line_items=tuple(line_items),
    )


def normalize_month_costs(months: Any) -> Dict[str, float]:
    """Twelve "01".."12" entries; missing or unparseable months are 0 and
    negative figures clamp to 0."""
    normalized = dict.fromkeys(MONTH_KEYS, 0.0)
    if not isinstance(months, Mapping):
        return normalized
    for key in MONTH_KEYS:
        value = months.get(key)
        if value is None:
            value = months.get(str(int(key)))
        normalized[key] = max(0.0, parse_amount(value))
    return normalized


def normalize_monthly_costs_by_year(
    raw: Mapping[str, Any],
    today: Optional[date] = None,
) -> Dict[str, Dict[str, float]]:
    """Fold every historical cost layout into {year: {month: cost}}.

    Months per year win. Otherwise a one-year month map, or a single monthly
    figure booked on the current month, is attributed to the current year.
    The result always holds at least the current year.
    """
    today = today or date.today()

    by_year: Dict[str, Dict[str, float]] = {}
    nested = _first(raw, ("monthlyCostsByYear", "monthly_costs_by_year"))
    if isinstance(nested, Mapping):
        for year, months in nested.items():
            year_key = str(year).strip()
            if _YEAR_KEY.match(year_key):
                by_year[year_key] = normalize_month_costs(months)
    if by_year:
        return by_year

    current_year = str(today.year)
    flat = _first(raw, ("monthlyCosts", "monthly_costs"))
    if isinstance(flat, Mapping):
        return {current_year: normalize_month_costs(flat)}

    months = dict.fromkeys(MONTH_KEYS, 0.0)
    single = _first(raw, ("monthlyCost", "monthly_cost"))
    if single is not None:
        months[f"{today.month:02d}"] = max(0.0, parse_amount(single))
    return {current_year: months}


def preferred_year(
    costs: Mapping[str, Any],
    requested: Optional[str],
    today: Optional[date] = None,
) -> Optional[str]:
    """The requested year when it has costs, else the current year, else the earliest."""
    if requested and requested in costs:
        return requested
    current_year = str((today or date.today()).year)
    if current_year in costs:
        return current_year
    return min(costs) if costs else None


def employee_from_mapping(
    raw: Mapping[str, Any],
    fallback_id: Optional[str] = None,
    today: Optional[date] = None,
) -> Employee:
    """Build an Employee from a stored document or request payload."""
    costs = normalize_monthly_costs_by_year(raw, today)
    return Employee(
        id=_as_id(_first(raw, ("id", "_id"))) or fallback_id or "",
        name=str(raw.get("name") or "").strip(),
        job_title=str(_first(raw, ("jobTitle", "job_title")) or "").strip(),
        branch_id=_as_id(_first(raw, BRANCH_KEYS)),
        sector_id=_as_id(_first(raw, SECTOR_KEYS)),
        department=str(raw.get("department") or "").strip(),
        employment_type=_as_id(_first(raw, ("employmentType", "employment_type"))) or "full_time",
        status=_as_id(raw.get("status")) or "active",
        notes=str(raw.get("notes") or "").strip(),
        monthly_costs_by_year=costs,
        default_year=preferred_year(costs, _as_id(_first(raw, ("defaultYear", "default_year"))), today),
    )


# ============================================================================
# ORM ROWS -> RECORDS
# ============================================================================

def contract_from_model(row) -> Contract:
    """Convert a models.Contract row (with line items loaded)."""
    return Contract(
        id=row.id,
        supplier_id=row.supplier_id,
        signing_date=row.signing_date,
        description=row.description or "",
        line_items=tuple(
            ContractLineItem(
                id=item.id,
                contract_id=row.id,
                total_amount=parse_amount(item.total_amount),
                start_date=item.start_date,
                end_date=item.end_date,
                supplier_id=item.supplier_id or row.supplier_id,
                sector_id=item.sector_id,
                branch_id=item.branch_id,
                description=item.description,
            )
            for item in row.line_items
        ),
        sector_id=row.sector_id,
        associated_sectors=_as_id_tuple(row.associated_sectors),
    )


def expense_from_model(row) -> Expense:
    """Convert a models.Expense row (with line items loaded)."""
    return Expense(
        id=row.id,
        date=row.date,
        description=row.description or "",
        amount=parse_amount(row.amount),
        sector_id=row.sector_id,
        branch_id=row.branch_id,
        supplier_id=row.supplier_id,
        cost_domain=row.cost_domain,
        contract_id=row.contract_id,
        is_multi_branch=bool(row.is_multi_branch),
        is_amortized=bool(row.is_amortized),
        amortization_start=row.amortization_start,
        amortization_end=row.amortization_end,
        invoice_url=row.invoice_url,
        line_items=tuple(
            ExpenseLineItem(
                key=item.id,
                description=item.description or "",
                amount=parse_amount(item.amount),
                contract_id=item.contract_id,
                contract_line_item_id=item.contract_line_item_id,
                sector_id=item.sector_id,
                branch_id=item.branch_id,
                assignment_type=item.assignment_type,
                assignment_id=item.assignment_id,
                assigned_branches=_as_id_tuple(item.assigned_branches),
                channel_id=item.channel_id,
            )
            for item in row.line_items
        ),
    )


def employee_from_model(row) -> Employee:
    """Convert a models.Employee row."""
    stored = row.monthly_costs_by_year if isinstance(row.monthly_costs_by_year, Mapping) else {}
    return Employee(
        id=row.id,
        name=row.name or "",
        job_title=row.job_title or "",
        branch_id=row.branch_id,
        sector_id=row.sector_id,
        department=(row.department or "").strip(),
        employment_type=row.employment_type or "full_time",
        status=row.status or "active",
        notes=row.notes or "",
        monthly_costs_by_year={str(year): normalize_month_costs(months) for year, months in stored.items()},
        default_year=row.default_year,
    )
