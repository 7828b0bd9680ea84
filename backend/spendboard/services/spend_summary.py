"""Dashboard spend rollup.

WHAT: Totals by supplier, sector, branch and month for a reporting window
WHY: Powers the dashboard KPI cards, pie/bar charts and monthly trend
REFERENCES:
  - spendboard/services/branch_shares.py: per-branch split of each expense
  - spendboard/routers/allocations.py: GET /allocations/summary

Every amount is a branch share, so the four breakdowns always sum to the same
total. Amortized expenses are bucketed by the month each amortized day falls
in, plain expenses by their own date.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import AbstractSet, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple

from spendboard.services.branch_shares import ALL_SECTORS, BranchShares, compute_expense_branch_shares
from spendboard.services.diagnostics import AllocationDiagnostics
from spendboard.services.records import Expense

logger = logging.getLogger(__name__)

UNASSIGNED = "unassigned"


@dataclass
class SpendSummary:
    total: float = 0.0
    by_supplier: Dict[str, float] = field(default_factory=dict)
    by_sector: Dict[str, float] = field(default_factory=dict)
    by_branch: Dict[str, float] = field(default_factory=dict)
    by_month: Dict[str, float] = field(default_factory=dict)
    expense_count: int = 0


def _month_windows(start: date, end: date) -> Iterator[Tuple[date, date]]:
    """Calendar-month slices of [start, end], both inclusive."""
    current = start
    while current <= end:
        next_month = (current.replace(day=1) + timedelta(days=32)).replace(day=1)
        yield current, min(end, next_month - timedelta(days=1))
        current = next_month


def _monthly_shares(
    expense: Expense,
    branch_ids: AbstractSet[str],
    branches_per_sector: Mapping[str, Sequence[str]],
    filter_start: Optional[date],
    filter_end: Optional[date],
    sector_id: str,
    diagnostics: Optional[AllocationDiagnostics],
) -> Iterator[Tuple[str, BranchShares]]:
    amortized = expense.is_amortized and expense.amortization_start and expense.amortization_end
    if not amortized:
        month = expense.date.strftime("%Y-%m") if expense.date else "undated"
        yield month, compute_expense_branch_shares(
            expense, branch_ids, branches_per_sector, filter_start, filter_end, sector_id, diagnostics
        )
        return

    first, last = sorted((expense.amortization_start, expense.amortization_end))
    first = max(first, filter_start) if filter_start else first
    last = min(last, filter_end) if filter_end else last
    # Branch resolution does not depend on the window: report unresolved items once
    for index, (window_start, window_end) in enumerate(_month_windows(first, last)):
        yield window_start.strftime("%Y-%m"), compute_expense_branch_shares(
            expense, branch_ids, branches_per_sector, window_start, window_end, sector_id,
            diagnostics if index == 0 else None,
        )


def summarize_spend(
    expenses: Iterable[Expense],
    branch_ids: AbstractSet[str],
    branches_per_sector: Mapping[str, Sequence[str]],
    filter_start: Optional[date] = None,
    filter_end: Optional[date] = None,
    sector_id: str = ALL_SECTORS,
    branch_id: Optional[str] = None,
    supplier_id: Optional[str] = None,
    diagnostics: Optional[AllocationDiagnostics] = None,
) -> SpendSummary:
    summary = SpendSummary()

    def add(bucket: Dict[str, float], key: Optional[str], amount: float) -> None:
        key = key or UNASSIGNED
        bucket[key] = bucket.get(key, 0.0) + amount

    for expense in expenses:
        if supplier_id and supplier_id != "all" and expense.supplier_id != supplier_id:
            continue

        item_sectors = {item.key: item.sector_id or expense.sector_id for item in expense.line_items}
        counted = False

        for month, shares in _monthly_shares(
            expense, branch_ids, branches_per_sector, filter_start, filter_end, sector_id, diagnostics
        ):
            for item_key, per_branch in shares.item_branch_totals.items():
                item_sector = item_sectors.get(item_key, expense.sector_id)
                for target_branch, amount in per_branch.items():
                    if branch_id and branch_id != "all" and target_branch != branch_id:
                        continue
                    counted = True
                    summary.total += amount
                    add(summary.by_supplier, expense.supplier_id, amount)
                    add(summary.by_sector, item_sector, amount)
                    add(summary.by_branch, target_branch, amount)
                    add(summary.by_month, month, amount)

        if counted:
            summary.expense_count += 1

    logger.debug(f"[SUMMARY] {summary.expense_count} expenses, total={summary.total:.2f}")
    return summary
