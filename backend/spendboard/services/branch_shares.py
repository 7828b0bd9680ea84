"""Branch share calculation for expenses.

WHAT: Splits an expense's amount across the branches it was booked for,
      optionally smoothing amortized expenses per day
WHY: Per-branch dashboards must stay additive no matter how an expense was
     entered (single branch, several branches, whole sector, yearly premium
     spread over twelve months)
REFERENCES:
  - spendboard/routers/allocations.py: /allocations/branch-shares, /allocations/summary
  - backend/tests_unit/test_branch_shares.py

Allocation rules:
  - plain: included only if the expense date is inside [filter_start, filter_end]
  - amortized: amount / inclusive amortization days, one share per day inside
    the filter (the expense date itself is irrelevant)
  - every share is divided evenly among the item's target branches
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import AbstractSet, Any, Dict, List, Mapping, Optional, Sequence

from spendboard.services.diagnostics import AllocationDiagnostics, note_skip
from spendboard.services.normalization import days_between
from spendboard.services.records import Expense, ExpenseLineItem

logger = logging.getLogger(__name__)

ALL_SECTORS = "all"
DISTRIBUTED = "distributed"


@dataclass
class BranchShares:
    branch_totals: Dict[str, float] = field(default_factory=dict)
    item_totals: Dict[str, float] = field(default_factory=dict)
    item_branch_totals: Dict[str, Dict[str, float]] = field(default_factory=dict)

    @property
    def total(self) -> float:
        return sum(self.item_totals.values())


def extract_branch_ids(assignment: Any) -> List[str]:
    """Branch ids from an assignment value (list, tuple or comma separated string)."""
    if not assignment:
        return []
    if isinstance(assignment, (list, tuple)):
        return [branch_id for branch_id in assignment if branch_id]
    if isinstance(assignment, str):
        return [part.strip() for part in assignment.split(",") if part.strip()]
    return []


def derive_branches_for_line_item(
    expense: Expense,
    item: ExpenseLineItem,
    sector_id: Optional[str],
    branch_ids: Optional[AbstractSet[str]],
    branches_per_sector: Optional[Mapping[str, Sequence[str]]],
) -> List[str]:
    """Resolve the branches an expense line item is attributed to.

    Distributed ids, a single assignment id and the item's own branch are
    combined (keeping only known branches). The expense branch is used only
    when none of those resolved, and the sector's branches only as a last resort.
    """
    if branch_ids is None:
        raise ValueError("branch_ids is required to derive branches")
    if branches_per_sector is None:
        raise ValueError("branches_per_sector is required to derive branches")

    resolved: Dict[str, None] = {}  # Ordered set
    assignment = item.assignment_id

    if item.assignment_type == DISTRIBUTED and assignment:
        for branch_id in extract_branch_ids(assignment):
            if branch_id in branch_ids:
                resolved[branch_id] = None

    if isinstance(assignment, str) and assignment in branch_ids:
        resolved[assignment] = None

    if item.branch_id and item.branch_id in branch_ids:
        resolved[item.branch_id] = None

    if not resolved and expense.branch_id and expense.branch_id in branch_ids:
        resolved[expense.branch_id] = None

    if not resolved and sector_id:
        for branch_id in branches_per_sector.get(sector_id, ()):
            resolved[branch_id] = None

    return list(resolved)


def _in_filter(day: date, filter_start: Optional[date], filter_end: Optional[date]) -> bool:
    if filter_start and day < filter_start:
        return False
    if filter_end and day > filter_end:
        return False
    return True


def compute_expense_branch_shares(
    expense: Expense,
    branch_ids: AbstractSet[str],
    branches_per_sector: Mapping[str, Sequence[str]],
    filter_start: Optional[date] = None,
    filter_end: Optional[date] = None,
    active_sector: str = ALL_SECTORS,
    diagnostics: Optional[AllocationDiagnostics] = None,
) -> BranchShares:
    """Compute per-branch and per-line-item shares of one expense.

    Args:
        expense: Canonical expense (line items may be empty)
        branch_ids: Known branch ids
        branches_per_sector: sector id -> branch ids, for sector-wide fallback
        filter_start, filter_end: Inclusive reporting window (None = unbounded)
        active_sector: Only count line items of this sector ("all" = every sector)
        diagnostics: Optional collector for dropped items

    Returns:
        BranchShares with branch totals, item totals and item -> branch breakdown
    """
    if branch_ids is None:
        raise ValueError("branch_ids is required to compute branch shares")
    if branches_per_sector is None:
        raise ValueError("branches_per_sector is required to compute branch shares")

    shares = BranchShares()
    is_amortized = bool(expense.is_amortized and expense.amortization_start and expense.amortization_end)

    if not is_amortized:
        if expense.date is None:
            note_skip(logger, diagnostics, "expense", expense.id, "missing date")
            return shares
        if not _in_filter(expense.date, filter_start, filter_end):
            return shares

    line_items = expense.line_items or (
        ExpenseLineItem(
            key=f"{expense.id or 'expense'}-0",
            amount=expense.amount,
            sector_id=expense.sector_id,
            assignment_id=expense.branch_id or "",
        ),
    )

    for item in line_items:
        item_sector = item.sector_id or expense.sector_id
        if active_sector != ALL_SECTORS and item_sector != active_sector:
            continue

        targets = list(item.assigned_branches) or derive_branches_for_line_item(
            expense, item, item_sector, branch_ids, branches_per_sector
        )
        if not targets:
            note_skip(logger, diagnostics, "expense_line_item", item.key, "no branch could be resolved")
            continue

        amount = item.amount
        if not amount:
            continue

        def register(share_amount: float) -> None:
            if not share_amount:
                return
            per_branch = share_amount / len(targets)
            item_branches = shares.item_branch_totals.setdefault(item.key, {})
            for branch_id in targets:
                shares.branch_totals[branch_id] = shares.branch_totals.get(branch_id, 0.0) + per_branch
                item_branches[branch_id] = item_branches.get(branch_id, 0.0) + per_branch
            shares.item_totals[item.key] = shares.item_totals.get(item.key, 0.0) + share_amount

        if is_amortized:
            amort_start, amort_end = expense.amortization_start, expense.amortization_end
            if amort_start > amort_end:
                amort_start, amort_end = amort_end, amort_start

            duration_days = max(1, days_between(amort_start, amort_end) + 1)
            daily_amount = amount / duration_days

            day = max(amort_start, filter_start) if filter_start else amort_start
            last_day = min(amort_end, filter_end) if filter_end else amort_end
            while day <= last_day:
                register(daily_amount)
                day += timedelta(days=1)
        else:
            register(amount)

    return shares


def build_branch_lookup(branches) -> tuple:
    """(branch id set, sector id -> branch ids) from models.Branch rows.

    Mirrors the dashboard convention of hiding the catch-all "Generico" branch
    from sector-wide distribution.
    """
    branch_ids = {branch.id for branch in branches}
    branches_per_sector: Dict[str, List[str]] = {}
    for branch in branches:
        if (branch.name or "").strip().lower() == "generico":
            continue
        for sector in branch.sectors:
            branches_per_sector.setdefault(sector.id, []).append(branch.id)
    return branch_ids, branches_per_sector
