"""Budget endpoints (planned and maximum spend per sector, branch and channel)."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/budgets", tags=["Budgets"])


def _find_existing(db: Session, budget_in: schemas.BudgetIn):
    """Match by id first, then by the (year, sector, branch, channel) key."""
    if budget_in.id:
        existing = db.get(models.Budget, budget_in.id)
        if existing:
            return existing
    return (
        db.query(models.Budget)
        .filter(
            models.Budget.year == budget_in.year,
            models.Budget.sector_id == budget_in.sector_id,
            models.Budget.branch_id == budget_in.branch_id,
            models.Budget.channel_id == budget_in.channel_id,
        )
        .first()
    )


@router.get("", response_model=List[schemas.BudgetOut], summary="List budgets for a year")
def list_budgets(year: int = Query(..., ge=2000, le=2100), db: Session = Depends(get_db)):
    return db.query(models.Budget).filter(models.Budget.year == year).all()


@router.put(
    "",
    response_model=schemas.BudgetBulkResponse,
    summary="Bulk upsert budgets",
    description="""
    Saves every row that has a non-zero planned or maximum amount, or that
    already exists. Empty new rows are skipped. Amounts accept Italian
    formatting ("1.234,56").
    """,
)
def upsert_budgets(payload: List[schemas.BudgetIn], db: Session = Depends(get_db)):
    saved = []
    skipped = 0

    for budget_in in payload:
        if not budget_in.id and budget_in.planned_amount <= 0 and budget_in.max_amount <= 0:
            skipped += 1
            continue

        budget = _find_existing(db, budget_in)
        if budget is None:
            budget = models.Budget(id=budget_in.id) if budget_in.id else models.Budget()
            db.add(budget)

        budget.year = budget_in.year
        budget.sector_id = budget_in.sector_id
        budget.branch_id = budget_in.branch_id
        budget.channel_id = budget_in.channel_id
        budget.planned_amount = budget_in.planned_amount
        budget.max_amount = budget_in.max_amount
        db.flush()
        saved.append(budget)

    db.commit()
    for budget in saved:
        db.refresh(budget)

    logger.info(f"[BUDGETS] Saved {len(saved)} budgets, skipped {skipped} empty rows")
    return schemas.BudgetBulkResponse(
        saved=len(saved),
        skipped=skipped,
        budgets=[schemas.BudgetOut.model_validate(b) for b in saved],
    )
