"""Load canonical records from the database.

WHAT: Queries contracts, expenses, branches and employees (children eagerly
      loaded) and converts them to the records the engine expects
WHY: Every allocation endpoint recomputes from the full expense log, so the
     query shape lives in one place
REFERENCES:
  - spendboard/services/normalization.py: contract_from_model / expense_from_model
  - spendboard/routers/allocations.py, spendboard/routers/contracts.py
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from spendboard import models
from spendboard.services.cost_domains import filter_by_cost_domain
from spendboard.services.normalization import (
    contract_from_model,
    employee_from_model,
    expense_from_model,
)
from spendboard.services.records import Contract, Employee, Expense

logger = logging.getLogger(__name__)


def load_contracts(db: Session) -> List[Contract]:
    rows = (
        db.query(models.Contract)
        .options(selectinload(models.Contract.line_items))
        .order_by(models.Contract.created_at)
        .all()
    )
    return [contract_from_model(row) for row in rows]


def load_expenses(
    db: Session,
    cost_domain: Optional[str] = None,
    default_domain: str = models.CostDomainEnum.marketing.value,
) -> List[Expense]:
    """All expenses, optionally restricted to one cost domain.

    Date filtering is left to the engine: amortized expenses dated outside a
    window can still contribute days inside it.
    """
    rows = (
        db.query(models.Expense)
        .options(selectinload(models.Expense.line_items))
        .order_by(models.Expense.date)
        .all()
    )
    expenses = [expense_from_model(row) for row in rows]
    filtered = filter_by_cost_domain(expenses, cost_domain, default_domain)
    logger.debug(f"[LOADER] {len(filtered)}/{len(expenses)} expenses in domain {cost_domain or 'any'}")
    return filtered


def load_employees(db: Session) -> List[Employee]:
    rows = db.query(models.Employee).order_by(models.Employee.name).all()
    return [employee_from_model(row) for row in rows]


def load_branches(db: Session) -> List[models.Branch]:
    return db.query(models.Branch).options(selectinload(models.Branch.sectors)).all()


def load_names(db: Session) -> Dict[str, str]:
    """id -> display name for sectors, branches and suppliers."""
    names: Dict[str, str] = {}
    for model in (models.Sector, models.Branch, models.Supplier):
        for row_id, name in db.query(model.id, model.name).all():
            names[row_id] = name
    return names


def supplier_names(db: Session) -> Dict[str, str]:
    return {row_id: name for row_id, name in db.query(models.Supplier.id, models.Supplier.name).all()}
