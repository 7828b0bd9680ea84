"""Expense endpoints.

WHAT:
    CRUD for expenses and their line items, plus duplication.

WHY:
    Expenses are the only source of actual spend. Every allocation view
    recomputes from this log, so the write path enforces the invariants the
    engine relies on:
      - amount always equals the sum of line items
      - a single-branch expense pins every line item to its branch
      - a multi-branch expense names an assignment on every line item
      - marketing line items name a channel and operations line items never
        link a contract

REFERENCES:
    - spendboard/services/branch_shares.py (how assignments are resolved)
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..database import get_db
from ..services.cost_domains import get_cost_domain


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/expenses",
    tags=["Expenses"],
    responses={
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
        422: {"model": schemas.ErrorResponse, "description": "Invalid expense"},
    },
)

DUPLICATE_SUFFIX = " (Copia)"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _get_expense_or_404(db: Session, expense_id: str) -> models.Expense:
    expense = (
        db.query(models.Expense)
        .options(selectinload(models.Expense.line_items))
        .filter(models.Expense.id == expense_id)
        .first()
    )
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


def _build_line_items(payload: schemas.ExpenseCreate) -> List[models.ExpenseLineItem]:
    """Validate and convert payload line items.

    Raises:
        HTTPException 422: no usable line item, a multi-branch item without
            an assignment, or an item breaking its cost domain rules (marketing
            items name a channel, operations items never link a contract)
    """
    usable = [item for item in payload.line_items if item.description.strip()]
    if not usable:
        raise HTTPException(status_code=422, detail="An expense needs at least one line item")

    if not payload.is_multi_branch and not payload.branch_id:
        raise HTTPException(status_code=422, detail="branch_id is required for single-branch expenses")

    domain = get_cost_domain(payload.cost_domain.value)

    line_items = []
    for position, item in enumerate(usable):
        if domain.line_item_channel_required and not item.channel_id:
            raise HTTPException(
                status_code=422,
                detail=f"Line item {position + 1} needs a channel_id for {domain.id} expenses",
            )
        if not domain.supports_contracts and (item.contract_id or item.contract_line_item_id):
            raise HTTPException(
                status_code=422,
                detail=f"Line item {position + 1} cannot link a contract: {domain.id} expenses have no contracts",
            )

        if payload.is_multi_branch:
            if not item.assignment_type or not item.assignment_id:
                raise HTTPException(
                    status_code=422,
                    detail=f"Line item {position + 1} needs an assignment for multi-branch expenses",
                )
            assignment_type = item.assignment_type.value
            assignment_id = (
                ",".join(item.assignment_id) if isinstance(item.assignment_id, list) else item.assignment_id
            )
        else:
            assignment_type = models.AssignmentTypeEnum.branch.value
            assignment_id = payload.branch_id

        sector_id = item.sector_id or payload.sector_id
        if assignment_type == models.AssignmentTypeEnum.sector.value:
            # Sector-wide items spread over the branches of the assigned sector
            sector_id = item.sector_id or assignment_id

        line_items.append(models.ExpenseLineItem(
            position=position,
            description=item.description.strip(),
            amount=item.amount,
            contract_id=item.contract_id,
            contract_line_item_id=item.contract_line_item_id,
            sector_id=sector_id,
            branch_id=item.branch_id,
            assignment_type=assignment_type,
            assignment_id=assignment_id,
            channel_id=item.channel_id,
        ))
    return line_items


def _apply_payload(expense: models.Expense, payload: schemas.ExpenseCreate) -> None:
    if payload.is_amortized and not (payload.amortization_start and payload.amortization_end):
        raise HTTPException(status_code=422, detail="Amortized expenses need a start and end date")

    line_items = _build_line_items(payload)

    expense.date = payload.date
    expense.description = payload.description.strip()
    expense.sector_id = payload.sector_id
    expense.supplier_id = payload.supplier_id
    expense.branch_id = None if payload.is_multi_branch else payload.branch_id
    expense.cost_domain = payload.cost_domain.value
    expense.is_multi_branch = payload.is_multi_branch
    expense.is_amortized = payload.is_amortized
    expense.amortization_start = payload.amortization_start if payload.is_amortized else None
    expense.amortization_end = payload.amortization_end if payload.is_amortized else None
    expense.invoice_url = payload.invoice_url
    expense.author_name = payload.author_name
    expense.amount = round(sum(float(item.amount or 0) for item in line_items), 2)
    expense.line_items = line_items


# ============================================================================
# CRUD
# ============================================================================

@router.get("", response_model=List[schemas.ExpenseOut], summary="List expenses")
def list_expenses(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    supplier_id: Optional[str] = Query(None),
    sector_id: Optional[str] = Query(None),
    cost_domain: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    query = db.query(models.Expense).options(selectinload(models.Expense.line_items))
    if start_date:
        query = query.filter(models.Expense.date >= start_date)
    if end_date:
        query = query.filter(models.Expense.date <= end_date)
    if supplier_id:
        query = query.filter(models.Expense.supplier_id == supplier_id)
    if sector_id:
        query = query.filter(models.Expense.sector_id == sector_id)
    if cost_domain:
        query = query.filter(models.Expense.cost_domain == cost_domain)
    return query.order_by(models.Expense.date.desc()).all()


@router.get("/{expense_id}", response_model=schemas.ExpenseOut, summary="Get expense")
def get_expense(expense_id: str, db: Session = Depends(get_db)):
    return _get_expense_or_404(db, expense_id)


@router.post(
    "",
    response_model=schemas.ExpenseOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create expense",
)
def create_expense(payload: schemas.ExpenseCreate, db: Session = Depends(get_db)):
    expense = models.Expense()
    _apply_payload(expense, payload)
    db.add(expense)
    db.commit()
    db.refresh(expense)
    logger.info(f"[EXPENSES] Created {expense.id}: {expense.amount} over {len(expense.line_items)} items")
    return expense


@router.put("/{expense_id}", response_model=schemas.ExpenseOut, summary="Replace expense")
def update_expense(expense_id: str, payload: schemas.ExpenseCreate, db: Session = Depends(get_db)):
    expense = _get_expense_or_404(db, expense_id)
    _apply_payload(expense, payload)
    db.commit()
    db.refresh(expense)
    logger.info(f"[EXPENSES] Updated {expense.id}")
    return expense


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete expense")
def delete_expense(expense_id: str, db: Session = Depends(get_db)):
    expense = _get_expense_or_404(db, expense_id)
    db.delete(expense)
    db.commit()
    logger.info(f"[EXPENSES] Deleted {expense_id}")
    return None


@router.post(
    "/{expense_id}/duplicate",
    response_model=schemas.ExpenseOut,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate expense",
    description="Copy an expense and its line items, dated today, with ' (Copia)' appended to the description.",
)
def duplicate_expense(expense_id: str, db: Session = Depends(get_db)):
    source = _get_expense_or_404(db, expense_id)

    copy = models.Expense(
        date=date.today(),
        description=f"{source.description}{DUPLICATE_SUFFIX}",
        sector_id=source.sector_id,
        branch_id=source.branch_id,
        supplier_id=source.supplier_id,
        cost_domain=source.cost_domain,
        amount=source.amount,
        contract_id=source.contract_id,
        is_multi_branch=source.is_multi_branch,
        is_amortized=source.is_amortized,
        amortization_start=source.amortization_start,
        amortization_end=source.amortization_end,
        author_name=source.author_name,
        line_items=[
            models.ExpenseLineItem(
                position=item.position,
                description=item.description,
                amount=item.amount,
                contract_id=item.contract_id,
                contract_line_item_id=item.contract_line_item_id,
                sector_id=item.sector_id,
                branch_id=item.branch_id,
                assignment_type=item.assignment_type,
                assignment_id=item.assignment_id,
                assigned_branches=item.assigned_branches,
                channel_id=item.channel_id,
            )
            for item in source.line_items
        ],
    )
    db.add(copy)
    db.commit()
    db.refresh(copy)
    logger.info(f"[EXPENSES] Duplicated {expense_id} -> {copy.id}")
    return copy
