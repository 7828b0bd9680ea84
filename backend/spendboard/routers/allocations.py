"""Allocation endpoints.

WHAT:
    Read-only views computed from the full contract and expense log:
      - /allocations/projections: overdue vs future contract spend
      - /allocations/branch-shares: per-branch split of every expense
      - /allocations/summary: dashboard rollup by supplier, sector, branch, month

WHY:
    Nothing here is stored. Each request loads current rows, converts them to
    canonical records and runs the pure services, so edits to expenses or
    contracts are reflected immediately.

REFERENCES:
    - spendboard/services/spend_aggregator.py
    - spendboard/services/contract_projection.py
    - spendboard/services/branch_shares.py
    - spendboard/services/spend_summary.py
"""

import logging
from dataclasses import asdict
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_settings
from ..services.branch_shares import ALL_SECTORS, build_branch_lookup, compute_expense_branch_shares
from ..services.contract_projection import project_contracts
from ..services.cost_domains import COST_DOMAINS
from ..services.diagnostics import AllocationDiagnostics
from ..services.record_loader import load_branches, load_contracts, load_expenses, load_names
from ..services.spend_aggregator import aggregate_spend
from ..services.spend_summary import summarize_spend
from ..utils.dates import resolve_window


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/allocations",
    tags=["Allocations"],
    responses={
        422: {"model": schemas.ErrorResponse, "description": "Invalid window or cost domain"},
    },
)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _resolve_cost_domain(cost_domain: Optional[str]) -> str:
    settings = get_settings()
    domain = cost_domain or settings.DEFAULT_COST_DOMAIN
    if domain not in COST_DOMAINS:
        raise HTTPException(status_code=422, detail=f"Unknown cost domain: {domain}")
    return domain


def _skipped(diagnostics: AllocationDiagnostics) -> List[schemas.SkippedRecordOut]:
    return [
        schemas.SkippedRecordOut(kind=s.kind, record_id=s.record_id, reason=s.reason)
        for s in diagnostics.skipped
    ]


# ============================================================================
# PROJECTIONS
# ============================================================================

@router.get(
    "/projections",
    response_model=schemas.ProjectionResponse,
    summary="Contract spend projections",
    description="""
    Splits the unspent value of every contract line item into an overdue part
    (should already have been spent by today) and a future part (still to be
    spent before the line item ends), both clipped to the reporting window.
    """,
)
def get_projections(
    start_date: Optional[date] = Query(None, description="Window start (default Jan 1 of this year)"),
    end_date: Optional[date] = Query(None, description="Window end (default Dec 31 of this year)"),
    today: Optional[date] = Query(None, description="Reference date (default today)"),
    cost_domain: Optional[str] = Query(None, description="Expense domain counted as spend"),
    db: Session = Depends(get_db),
):
    start_date, end_date = resolve_window(start_date, end_date, today)
    domain = _resolve_cost_domain(cost_domain)
    today = today or date.today()

    contracts = load_contracts(db)
    expenses = load_expenses(db, domain, get_settings().DEFAULT_COST_DOMAIN)

    diagnostics = AllocationDiagnostics()
    spend_index = aggregate_spend(expenses, contracts, today=today, diagnostics=diagnostics)
    result = project_contracts(contracts, spend_index, start_date, end_date, today, diagnostics)

    return schemas.ProjectionResponse(
        start_date=start_date,
        end_date=end_date,
        today=today,
        cost_domain=domain,
        future_by_supplier=result.future_by_supplier,
        future_by_sector=result.future_by_sector,
        overdue_by_supplier=result.overdue_by_supplier,
        total_overdue=result.total_overdue,
        total_future=result.total_future,
        line_items=[schemas.LineItemProjectionOut(**asdict(p)) for p in result.line_items],
        skipped=_skipped(diagnostics),
    )


# ============================================================================
# BRANCH SHARES
# ============================================================================

@router.get(
    "/branch-shares",
    response_model=schemas.BranchSharesResponse,
    summary="Per-branch expense shares",
    description="""
    Splits every expense across its branches for the window. Amortized
    expenses contribute one daily share per day inside the window; plain
    expenses count only when dated inside it.
    """,
)
def get_branch_shares(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    sector_id: str = Query(ALL_SECTORS, description="Restrict to one sector's line items"),
    cost_domain: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    start_date, end_date = resolve_window(start_date, end_date)
    domain = _resolve_cost_domain(cost_domain)

    branch_ids, branches_per_sector = build_branch_lookup(load_branches(db))
    expenses = load_expenses(db, domain, get_settings().DEFAULT_COST_DOMAIN)

    diagnostics = AllocationDiagnostics()
    branch_totals = {}
    per_expense = []
    for expense in expenses:
        shares = compute_expense_branch_shares(
            expense, branch_ids, branches_per_sector, start_date, end_date, sector_id, diagnostics
        )
        if not shares.item_totals:
            continue
        for branch_id, amount in shares.branch_totals.items():
            branch_totals[branch_id] = branch_totals.get(branch_id, 0.0) + amount
        per_expense.append(schemas.ExpenseBranchSharesOut(
            expense_id=expense.id,
            branch_totals=shares.branch_totals,
            item_totals=shares.item_totals,
            item_branch_totals=shares.item_branch_totals,
        ))

    logger.info(
        f"[BRANCH_SHARES] {len(per_expense)}/{len(expenses)} expenses in {start_date}..{end_date} "
        f"(sector={sector_id})"
    )

    return schemas.BranchSharesResponse(
        start_date=start_date,
        end_date=end_date,
        sector_id=sector_id,
        branch_totals=branch_totals,
        total=sum(branch_totals.values()),
        expenses=per_expense,
        skipped=_skipped(diagnostics),
    )


# ============================================================================
# DASHBOARD SUMMARY
# ============================================================================

@router.get(
    "/summary",
    response_model=schemas.SpendSummaryResponse,
    summary="Dashboard spend summary",
)
def get_summary(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    sector_id: str = Query(ALL_SECTORS),
    branch_id: Optional[str] = Query(None),
    supplier_id: Optional[str] = Query(None),
    cost_domain: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    start_date, end_date = resolve_window(start_date, end_date)
    domain = _resolve_cost_domain(cost_domain)

    branch_ids, branches_per_sector = build_branch_lookup(load_branches(db))
    expenses = load_expenses(db, domain, get_settings().DEFAULT_COST_DOMAIN)

    summary = summarize_spend(
        expenses,
        branch_ids,
        branches_per_sector,
        filter_start=start_date,
        filter_end=end_date,
        sector_id=sector_id,
        branch_id=branch_id,
        supplier_id=supplier_id,
    )

    return schemas.SpendSummaryResponse(
        start_date=start_date,
        end_date=end_date,
        total=summary.total,
        expense_count=summary.expense_count,
        by_supplier=summary.by_supplier,
        by_sector=summary.by_sector,
        by_branch=summary.by_branch,
        by_month=summary.by_month,
        names=load_names(db),
    )
