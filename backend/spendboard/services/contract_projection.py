"""Temporal proration of contract line items.

WHAT:
    For each contract line item with money left on it, splits the remainder
    into "overdue" (should already have been spent by today under straight-line
    daily pacing) and "future" (legitimately still ahead), both clipped to a
    reporting window.

WHY:
    - Overdue is a compliance signal: committed budget that is not being used
    - Future is a forecasting signal: spend still to come inside the window
    - Clipping to the window keeps partial-year views proportional

REFERENCES:
    - spendboard/services/spend_aggregator.py: spent totals per line item
    - spendboard/routers/allocations.py: GET /allocations/projections
    - spendboard/routers/contracts.py: GET /contracts/overview
    - backend/tests_unit/test_contract_projection.py

Pacing model (per line item):
    daily = total / max(1, inclusive days of the line item)
    expected by today = daily * elapsed days of the overlap window
    overdue = min(remaining, expected - spent inside the window)
    future  = min(remaining - overdue, daily * days left in the window)

All arithmetic is whole-day on `date` objects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from spendboard.services.diagnostics import AllocationDiagnostics, note_skip
from spendboard.services.normalization import days_between
from spendboard.services.records import Contract, ContractLineItem, Expense
from spendboard.services.spend_aggregator import SpendIndex, aggregate_spend

logger = logging.getLogger(__name__)

SKIP_KIND = "contract_line_item"


@dataclass(frozen=True)
class LineItemProjection:
    line_item_id: str
    contract_id: str
    supplier_id: Optional[str]
    sector_id: Optional[str]
    total_amount: float
    spent_total: float
    remaining: float  # Before the overdue/future split
    daily_amount: float
    overdue_days: int
    future_days: int
    overdue_amount: float
    future_amount: float


@dataclass
class ProjectionResult:
    future_by_supplier: Dict[str, float] = field(default_factory=dict)
    future_by_sector: Dict[str, float] = field(default_factory=dict)
    overdue_by_supplier: Dict[str, float] = field(default_factory=dict)
    line_items: List[LineItemProjection] = field(default_factory=list)

    @property
    def total_overdue(self) -> float:
        return sum(self.overdue_by_supplier.values())

    @property
    def total_future(self) -> float:
        return sum(self.future_by_supplier.values())


# ============================================================================
# SINGLE LINE ITEM
# ============================================================================

def project_line_item(
    line_item: ContractLineItem,
    spent_total: float,
    spent_to_date: float,
    filter_start: Optional[date],
    filter_end: Optional[date],
    today: date,
    diagnostics: Optional[AllocationDiagnostics] = None,
) -> Optional[LineItemProjection]:
    """Split one line item's remaining value into overdue and future amounts.

    Returns None (and records why) when the line item contributes nothing:
    no remaining value, missing/invalid dates, or no overlap with the window.
    """
    total = line_item.total_amount

    # 1. Remaining value
    remaining = max(0.0, total - spent_total)
    if remaining <= 0:
        reason = "non-positive value" if total <= 0 else "fully spent"
        note_skip(logger, diagnostics, SKIP_KIND, line_item.id, reason)
        return None

    start, end = line_item.start_date, line_item.end_date
    if start is None or end is None:
        note_skip(logger, diagnostics, SKIP_KIND, line_item.id, "missing start/end date")
        return None

    # 2. Overlap with the reporting window
    overlap_start = max(start, filter_start) if filter_start else start
    overlap_end = min(end, filter_end) if filter_end else end
    if overlap_end < overlap_start:
        note_skip(logger, diagnostics, SKIP_KIND, line_item.id, "outside reporting window")
        return None

    # 3. Straight-line daily pacing over the whole line item
    total_days = max(1, days_between(start, end) + 1)
    daily_amount = total / total_days
    overlap_total_days = days_between(overlap_start, overlap_end) + 1

    # 4. Spend attributable to the window
    adjusted_spent = spent_to_date
    if start < overlap_start:
        days_before_overlap = days_between(start, overlap_start)
        adjusted_spent = max(0.0, adjusted_spent - daily_amount * days_before_overlap)
    adjusted_spent = min(adjusted_spent, daily_amount * overlap_total_days)

    # 5-6. Elapsed vs remaining days of the window
    if today < overlap_start:
        overdue_days = 0
    else:
        overdue_days = min(days_between(overlap_start, min(today, overlap_end)) + 1, overlap_total_days)
    future_days = overlap_total_days - overdue_days

    # 7. Overdue shortfall
    expected_by_now = daily_amount * overdue_days
    shortfall = max(0.0, expected_by_now - min(adjusted_spent, expected_by_now))
    overdue_amount = min(remaining, shortfall)

    # 8. Future
    remaining_after_overdue = remaining - overdue_amount
    future_amount = max(0.0, min(remaining_after_overdue, daily_amount * future_days))

    return LineItemProjection(
        line_item_id=line_item.id,
        contract_id=line_item.contract_id,
        supplier_id=line_item.supplier_id,
        sector_id=line_item.sector_id,
        total_amount=total,
        spent_total=spent_total,
        remaining=remaining,
        daily_amount=daily_amount,
        overdue_days=overdue_days,
        future_days=future_days,
        overdue_amount=overdue_amount,
        future_amount=future_amount,
    )


# ============================================================================
# ALL CONTRACTS
# ============================================================================

def project_contracts(
    contracts: Iterable[Contract],
    spend_index: SpendIndex,
    filter_start: Optional[date],
    filter_end: Optional[date],
    today: Optional[date] = None,
    diagnostics: Optional[AllocationDiagnostics] = None,
) -> ProjectionResult:
    """Project every contract line item and accumulate the per-supplier/sector maps."""
    today = today or date.today()
    result = ProjectionResult()

    def add(bucket: Dict[str, float], key: Optional[str], amount: float) -> None:
        if key:
            bucket[key] = bucket.get(key, 0.0) + amount

    for contract in contracts:
        for line_item in contract.line_items:
            spent_total, spent_to_date = spend_index.spent_for(line_item, contract)
            projection = project_line_item(
                line_item, spent_total, spent_to_date, filter_start, filter_end, today, diagnostics
            )
            if projection is None:
                continue

            # 9. Accumulate
            supplier_id = line_item.supplier_id or contract.supplier_id
            add(result.overdue_by_supplier, supplier_id, projection.overdue_amount)
            add(result.future_by_supplier, supplier_id, projection.future_amount)
            add(result.future_by_sector, line_item.sector_id, projection.future_amount)
            result.line_items.append(projection)

    logger.info(
        f"[PROJECTION] {len(result.line_items)} line items projected "
        f"(overdue={result.total_overdue:.2f}, future={result.total_future:.2f})"
    )
    return result


# ============================================================================
# CONTRACT OVERVIEW (contracts page)
# ============================================================================

STATUS_NOT_STARTED = "not_started"
STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUS_OVERRUN = "overrun"

SORT_ORDERS = (
    "progress_desc", "progress_asc",
    "date_desc", "date_asc",
    "amount_desc", "amount_asc",
    "projection_desc", "projection_asc",
    "name_asc", "name_desc",
)


@dataclass
class ContractSummary:
    contract: Contract
    total_amount: float
    spent_amount: float
    progress: float
    remaining_value: float  # Negative when the contract is overrun
    projection_in_period: float
    effective_sectors: List[str]
    in_period: bool

    @property
    def status(self) -> str:
        if self.progress > 100:
            return STATUS_OVERRUN
        if self.progress >= 100:
            return STATUS_COMPLETED
        if self.progress > 0:
            return STATUS_ACTIVE
        return STATUS_NOT_STARTED

    def matches_status(self, status: str) -> bool:
        # "completed" includes overrun contracts
        if status == STATUS_COMPLETED:
            return self.progress >= 100
        return self.status == status


@dataclass
class ContractStats:
    total: int = 0
    total_value: float = 0.0
    total_spent: float = 0.0
    total_projections: float = 0.0
    total_remaining: float = 0.0
    active: int = 0
    completed: int = 0
    overrun: int = 0
    avg_utilization: float = 0.0


def _effective_sectors(contract: Contract) -> List[str]:
    line_sectors = list(dict.fromkeys(i.sector_id for i in contract.line_items if i.sector_id))
    if line_sectors:
        return line_sectors
    if contract.associated_sectors:
        return list(contract.associated_sectors)
    if contract.sector_id:
        return [contract.sector_id]
    return []


def _overlaps(line_item: ContractLineItem, filter_start: Optional[date], filter_end: Optional[date]) -> bool:
    if line_item.start_date is None or line_item.end_date is None:
        return False
    if filter_end and line_item.start_date > filter_end:
        return False
    if filter_start and line_item.end_date < filter_start:
        return False
    return True


def residual_in_period(
    contract: Contract,
    spent_amount: float,
    filter_start: Optional[date],
    filter_end: Optional[date],
) -> float:
    """Contract value still to be spent that falls inside the window.

    Spend is consumed line item by line item in start date order. Whatever is
    left on a line item is spread evenly over its whole period and only the
    days inside the window are counted. Undated line items neither consume
    spend nor contribute.
    """
    dated = sorted(
        (item for item in contract.line_items if item.start_date and item.end_date),
        key=lambda item: item.start_date,
    )

    to_consume = spent_amount
    projection = 0.0
    for item in dated:
        consumed = min(item.total_amount, to_consume)
        to_consume -= consumed
        residue = item.total_amount - consumed
        if residue <= 0:
            continue

        overlap_start = max(item.start_date, filter_start) if filter_start else item.start_date
        overlap_end = min(item.end_date, filter_end) if filter_end else item.end_date
        if overlap_end < overlap_start:
            continue

        total_days = max(1, days_between(item.start_date, item.end_date) + 1)
        projection += residue / total_days * (days_between(overlap_start, overlap_end) + 1)
    return projection


def build_contract_overview(
    contracts: Sequence[Contract],
    expenses: Iterable[Expense],
    filter_start: Optional[date],
    filter_end: Optional[date],
    today: Optional[date] = None,
    diagnostics: Optional[AllocationDiagnostics] = None,
) -> List[ContractSummary]:
    """Per-contract spend, progress and in-window projection."""
    today = today or date.today()
    spend_index = aggregate_spend(expenses, contracts, today=today, diagnostics=diagnostics)

    summaries = []
    for contract in contracts:
        total_amount = contract.total_value
        spent_amount = spend_index.contract_totals.get(contract.id, 0.0)
        summaries.append(ContractSummary(
            contract=contract,
            total_amount=total_amount,
            spent_amount=spent_amount,
            progress=(spent_amount / total_amount) * 100 if total_amount > 0 else 0.0,
            remaining_value=total_amount - spent_amount,
            projection_in_period=residual_in_period(contract, spent_amount, filter_start, filter_end),
            effective_sectors=_effective_sectors(contract),
            in_period=any(_overlaps(item, filter_start, filter_end) for item in contract.line_items),
        ))
    return summaries


def filter_contracts(
    summaries: Iterable[ContractSummary],
    sector_id: Optional[str] = None,
    supplier_ids: Optional[Sequence[str]] = None,
    branch_ids: Optional[Sequence[str]] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    supplier_names: Optional[Mapping[str, str]] = None,
    only_in_period: bool = True,
) -> List[ContractSummary]:
    supplier_names = supplier_names or {}
    needle = (search or "").strip().lower()

    filtered = []
    for summary in summaries:
        contract = summary.contract
        if sector_id and sector_id != "all" and sector_id not in summary.effective_sectors:
            continue
        if needle:
            supplier_name = supplier_names.get(contract.supplier_id or "", "")
            if needle not in contract.description.lower() and needle not in supplier_name.lower():
                continue
        if supplier_ids and contract.supplier_id not in supplier_ids:
            continue
        if branch_ids:
            contract_branches = {i.branch_id for i in contract.line_items if i.branch_id}
            if not contract_branches.intersection(branch_ids):
                continue
        if only_in_period and not summary.in_period:
            continue
        if status and status != "all" and not summary.matches_status(status):
            continue
        filtered.append(summary)
    return filtered


def sort_contracts(
    summaries: List[ContractSummary],
    order: Optional[str],
    supplier_names: Optional[Mapping[str, str]] = None,
) -> List[ContractSummary]:
    if not order or order not in SORT_ORDERS:
        return list(summaries)

    supplier_names = supplier_names or {}
    key_name, direction = order.rsplit("_", 1)
    keys = {
        "progress": lambda s: s.progress,
        "date": lambda s: s.contract.signing_date or date.min,
        "amount": lambda s: s.total_amount,
        "projection": lambda s: s.projection_in_period,
        "name": lambda s: supplier_names.get(s.contract.supplier_id or "", "").lower(),
    }
    return sorted(summaries, key=keys[key_name], reverse=(direction == "desc"))


def summarize_contracts(summaries: Sequence[ContractSummary]) -> ContractStats:
    total_value = sum(s.total_amount for s in summaries)
    total_spent = sum(s.spent_amount for s in summaries)
    return ContractStats(
        total=len(summaries),
        total_value=total_value,
        total_spent=total_spent,
        total_projections=sum(s.projection_in_period for s in summaries),
        total_remaining=sum(s.remaining_value for s in summaries),
        active=sum(1 for s in summaries if s.status == STATUS_ACTIVE),
        completed=sum(1 for s in summaries if s.progress >= 100),
        overrun=sum(1 for s in summaries if s.progress > 100),
        avg_utilization=(total_spent / total_value) * 100 if total_value > 0 else 0.0,
    )
