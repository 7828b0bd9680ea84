"""Legacy document import.

WHAT:
    Accepts contracts, expenses and employees exported from the legacy document store,
    normalizes them (historical field spellings, Italian amounts, timestamp
    objects, employee cost layouts) and upserts them by id.

WHY:
    Historical records keep their ids so that expense -> contract line item
    links survive the move. Re-running an import replaces the rows it wrote.

REFERENCES:
    - spendboard/services/normalization.py (contract_from_mapping, expense_from_mapping,
      employee_from_mapping)
"""

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..services.normalization import contract_from_mapping, employee_from_mapping, expense_from_mapping
from ..services.records import Contract, Employee, Expense


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/imports", tags=["Imports"])


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _contract_row(record: Contract, raw: dict) -> models.Contract:
    return models.Contract(
        id=record.id,
        description=record.description,
        supplier_id=record.supplier_id,
        signing_date=record.signing_date,
        sector_id=record.sector_id,
        associated_sectors=list(record.associated_sectors),
        contract_url=raw.get("contractPdfUrl") or raw.get("contract_url"),
        line_items=[
            models.ContractLineItem(
                id=item.id,
                position=position,
                description=item.description,
                total_amount=item.total_amount,
                start_date=item.start_date,
                end_date=item.end_date,
                supplier_id=item.supplier_id,
                sector_id=item.sector_id,
                branch_id=item.branch_id,
            )
            for position, item in enumerate(record.line_items)
        ],
    )


def _expense_row(record: Expense, raw: dict) -> models.Expense:
    line_items = []
    for position, item in enumerate(record.line_items):
        assignment = item.assignment_id
        if isinstance(assignment, tuple):
            assignment = ",".join(assignment)
        line_items.append(models.ExpenseLineItem(
            position=position,
            description=item.description,
            amount=item.amount,
            contract_id=item.contract_id,
            contract_line_item_id=item.contract_line_item_id,
            sector_id=item.sector_id,
            branch_id=item.branch_id,
            assignment_type=item.assignment_type,
            assignment_id=assignment,
            assigned_branches=list(item.assigned_branches) or None,
            channel_id=item.channel_id,
        ))

    return models.Expense(
        id=record.id,
        date=record.date,
        description=record.description,
        sector_id=record.sector_id,
        branch_id=record.branch_id,
        supplier_id=record.supplier_id,
        cost_domain=record.cost_domain or models.CostDomainEnum.marketing.value,
        amount=record.amount,
        contract_id=record.contract_id,
        is_multi_branch=record.is_multi_branch,
        is_amortized=record.is_amortized,
        amortization_start=record.amortization_start,
        amortization_end=record.amortization_end,
        invoice_url=record.invoice_url,
        author_name=raw.get("authorName") or raw.get("author_name"),
        line_items=line_items,
    )


def _employee_row(record: Employee) -> models.Employee:
    return models.Employee(
        id=record.id,
        name=record.name,
        job_title=record.job_title,
        branch_id=record.branch_id,
        sector_id=record.sector_id,
        department=record.department,
        employment_type=record.employment_type,
        status=record.status,
        notes=record.notes,
        monthly_costs_by_year=record.monthly_costs_by_year,
        default_year=record.default_year,
    )


def _replace(db: Session, model, row) -> None:
    existing = db.get(model, row.id)
    if existing is not None:
        db.delete(existing)
        db.flush()
    db.add(row)


# ============================================================================
# IMPORT
# ============================================================================

@router.post(
    "/legacy",
    response_model=schemas.LegacyImportResponse,
    summary="Import legacy documents",
    description="""
    Upserts contracts, expenses and employees by id. Documents without an id
    get a new one. Empty documents (no line items and no amount) and employees
    without a name or branch are skipped.
    """,
)
def import_legacy(payload: schemas.LegacyImportRequest, db: Session = Depends(get_db)):
    contracts_imported = 0
    expenses_imported = 0
    employees_imported = 0
    skipped = 0

    for raw in payload.contracts:
        record = contract_from_mapping(raw, fallback_id=str(uuid.uuid4()))
        if not record.line_items:
            logger.warning(f"[IMPORT] Skipping contract {record.id}: no line items")
            skipped += 1
            continue
        _replace(db, models.Contract, _contract_row(record, raw))
        contracts_imported += 1

    for raw in payload.expenses:
        record = expense_from_mapping(raw, fallback_id=str(uuid.uuid4()))
        if not record.line_items and not record.amount:
            logger.warning(f"[IMPORT] Skipping expense {record.id}: empty document")
            skipped += 1
            continue
        _replace(db, models.Expense, _expense_row(record, raw))
        expenses_imported += 1

    for raw in payload.employees:
        record = employee_from_mapping(raw, fallback_id=str(uuid.uuid4()))
        if not record.name or not record.branch_id:
            logger.warning(f"[IMPORT] Skipping employee {record.id}: missing name or branch")
            skipped += 1
            continue
        _replace(db, models.Employee, _employee_row(record))
        employees_imported += 1

    db.commit()
    logger.info(
        f"[IMPORT] Imported {contracts_imported} contracts, {expenses_imported} expenses, "
        f"{employees_imported} employees ({skipped} skipped)"
    )
    return schemas.LegacyImportResponse(
        contracts_imported=contracts_imported,
        expenses_imported=expenses_imported,
        employees_imported=employees_imported,
        skipped=skipped,
    )
