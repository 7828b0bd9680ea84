"""Contract endpoints.

WHAT:
    CRUD for supplier contracts and their line items, plus the contracts
    overview (spent, progress, in-window projection and status per contract).

WHY:
    Contracts are the committed side of marketing spend. The overview answers
    "how far along is each contract and what still has to be paid in this
    period".

REFERENCES:
    - spendboard/services/contract_projection.py (overview maths)
    - spendboard/services/record_loader.py (query shape)
"""

import logging
from dataclasses import asdict
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..database import get_db
from ..services.contract_projection import (
    SORT_ORDERS,
    build_contract_overview,
    filter_contracts,
    sort_contracts,
    summarize_contracts,
)
from ..services.diagnostics import AllocationDiagnostics
from ..services.record_loader import load_contracts, load_expenses, supplier_names
from ..utils.dates import resolve_window


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/contracts",
    tags=["Contracts"],
    responses={
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
    },
)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _get_contract_or_404(db: Session, contract_id: str) -> models.Contract:
    contract = (
        db.query(models.Contract)
        .options(selectinload(models.Contract.line_items))
        .filter(models.Contract.id == contract_id)
        .first()
    )
    if not contract:
        raise HTTPException(status_code=404, detail="Contract not found")
    return contract


def _apply_payload(contract: models.Contract, payload: schemas.ContractCreate) -> None:
    """Copy payload fields onto the row and replace its line items.

    Line items whose id matches an existing one are updated in place; the rest
    are created, and items missing from the payload are deleted.
    """
    contract.description = payload.description.strip()
    contract.supplier_id = payload.supplier_id
    contract.signing_date = payload.signing_date
    contract.sector_id = payload.sector_id
    contract.associated_sectors = list(payload.associated_sectors)
    contract.contract_url = payload.contract_url

    existing = {item.id: item for item in contract.line_items}
    line_items = []
    for position, item_in in enumerate(payload.line_items):
        item = existing.get(item_in.id) if item_in.id else None
        if item is None:
            item = models.ContractLineItem(id=item_in.id) if item_in.id else models.ContractLineItem()
        item.position = position
        item.description = item_in.description
        item.total_amount = item_in.total_amount
        item.start_date = item_in.start_date
        item.end_date = item_in.end_date
        item.supplier_id = item_in.supplier_id or payload.supplier_id
        item.sector_id = item_in.sector_id
        item.branch_id = item_in.branch_id
        line_items.append(item)
    contract.line_items = line_items


# ============================================================================
# OVERVIEW
# ============================================================================

@router.get(
    "/overview",
    response_model=schemas.ContractOverviewResponse,
    summary="Contracts overview",
    description="""
    Spent amount, progress, remaining value and in-window projection for each
    contract, plus aggregate stats over the filtered list.

    Defaults to the current calendar year. `status=completed` also matches
    overrun contracts.
    """,
)
def contracts_overview(
    start_date: Optional[date] = Query(None, description="Window start (default Jan 1 of this year)"),
    end_date: Optional[date] = Query(None, description="Window end (default Dec 31 of this year)"),
    today: Optional[date] = Query(None, description="Reference date for proration (default today)"),
    sector_id: Optional[str] = Query(None),
    supplier_ids: Optional[List[str]] = Query(None),
    branch_ids: Optional[List[str]] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query("progress_desc", description=f"One of {', '.join(SORT_ORDERS)}"),
    only_in_period: bool = Query(True, description="Hide contracts with no line item in the window"),
    db: Session = Depends(get_db),
):
    if sort and sort not in SORT_ORDERS:
        raise HTTPException(status_code=422, detail=f"Unknown sort order: {sort}")

    start_date, end_date = resolve_window(start_date, end_date, today)

    contracts = load_contracts(db)
    expenses = load_expenses(db)
    names = supplier_names(db)

    diagnostics = AllocationDiagnostics()
    summaries = build_contract_overview(contracts, expenses, start_date, end_date, today, diagnostics)
    summaries = filter_contracts(
        summaries,
        sector_id=sector_id,
        supplier_ids=supplier_ids,
        branch_ids=branch_ids,
        status=status_filter,
        search=search,
        supplier_names=names,
        only_in_period=only_in_period,
    )
    summaries = sort_contracts(summaries, sort, names)
    stats = summarize_contracts(summaries)

    logger.info(
        f"[CONTRACTS] Overview {start_date}..{end_date}: {stats.total} contracts, "
        f"{len(diagnostics)} line items skipped"
    )

    return schemas.ContractOverviewResponse(
        start_date=start_date,
        end_date=end_date,
        stats=schemas.ContractStatsOut(**asdict(stats)),
        contracts=[
            schemas.ContractSummaryOut(
                id=s.contract.id,
                description=s.contract.description,
                supplier_id=s.contract.supplier_id,
                signing_date=s.contract.signing_date,
                total_amount=s.total_amount,
                spent_amount=s.spent_amount,
                progress=s.progress,
                remaining_value=s.remaining_value,
                projection_in_period=s.projection_in_period,
                status=s.status,
                effective_sectors=s.effective_sectors,
            )
            for s in summaries
        ],
    )


# ============================================================================
# CRUD
# ============================================================================

@router.get("", response_model=List[schemas.ContractOut], summary="List contracts")
def list_contracts(
    supplier_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    query = db.query(models.Contract).options(selectinload(models.Contract.line_items))
    if supplier_id:
        query = query.filter(models.Contract.supplier_id == supplier_id)
    return query.order_by(models.Contract.signing_date.desc()).all()


@router.get("/{contract_id}", response_model=schemas.ContractOut, summary="Get contract")
def get_contract(contract_id: str, db: Session = Depends(get_db)):
    return _get_contract_or_404(db, contract_id)


@router.post(
    "",
    response_model=schemas.ContractOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create contract",
)
def create_contract(payload: schemas.ContractCreate, db: Session = Depends(get_db)):
    contract = models.Contract()
    _apply_payload(contract, payload)
    db.add(contract)
    db.commit()
    db.refresh(contract)
    logger.info(f"[CONTRACTS] Created {contract.id} with {len(contract.line_items)} line items")
    return contract


@router.put("/{contract_id}", response_model=schemas.ContractOut, summary="Replace contract")
def update_contract(contract_id: str, payload: schemas.ContractCreate, db: Session = Depends(get_db)):
    contract = _get_contract_or_404(db, contract_id)
    _apply_payload(contract, payload)
    db.commit()
    db.refresh(contract)
    logger.info(f"[CONTRACTS] Updated {contract.id}")
    return contract


@router.delete("/{contract_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete contract")
def delete_contract(contract_id: str, db: Session = Depends(get_db)):
    contract = _get_contract_or_404(db, contract_id)
    db.delete(contract)
    db.commit()
    logger.info(f"[CONTRACTS] Deleted {contract_id}")
    return None
