"""Canonical records consumed by the allocation engine.

WHAT: Immutable, typed views of contracts, expenses and employees
WHY: Stored documents carry years of field-name drift (branchId vs branchld,
     supplierId vs channelId, ...). services/normalization.py folds all of it
     into these records so the engine only ever sees one shape.
REFERENCES:
  - spendboard/services/normalization.py: mapping/ORM -> record adapters
  - spendboard/services/spend_aggregator.py
  - spendboard/services/contract_projection.py
  - spendboard/services/branch_shares.py
  - spendboard/services/employee_costs.py
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple, Union


BranchAssignment = Union[str, Tuple[str, ...], None]


@dataclass(frozen=True)
class ContractLineItem:
    id: str
    contract_id: str
    total_amount: float
    start_date: Optional[date]
    end_date: Optional[date]
    supplier_id: Optional[str] = None
    sector_id: Optional[str] = None
    branch_id: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class Contract:
    id: str
    supplier_id: Optional[str] = None
    signing_date: Optional[date] = None
    description: str = ""
    line_items: Tuple[ContractLineItem, ...] = ()
    # Legacy contract-level sector attribution
    sector_id: Optional[str] = None
    associated_sectors: Tuple[str, ...] = ()

    @property
    def total_value(self) -> float:
        return sum(item.total_amount for item in self.line_items)


@dataclass(frozen=True)
class ExpenseLineItem:
    key: str
    description: str = ""
    amount: float = 0.0
    contract_id: Optional[str] = None
    contract_line_item_id: Optional[str] = None
    sector_id: Optional[str] = None
    branch_id: Optional[str] = None
    assignment_type: Optional[str] = None
    assignment_id: BranchAssignment = None
    assigned_branches: Tuple[str, ...] = ()
    channel_id: Optional[str] = None


@dataclass(frozen=True)
class Expense:
    id: str
    date: Optional[date] = None
    description: str = ""
    amount: float = 0.0
    sector_id: Optional[str] = None
    branch_id: Optional[str] = None
    supplier_id: Optional[str] = None
    cost_domain: Optional[str] = None
    contract_id: Optional[str] = None
    is_multi_branch: bool = False
    is_amortized: bool = False
    amortization_start: Optional[date] = None
    amortization_end: Optional[date] = None
    invoice_url: Optional[str] = None
    line_items: Tuple[ExpenseLineItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Employee:
    id: str
    name: str = ""
    job_title: str = ""
    branch_id: Optional[str] = None
    sector_id: Optional[str] = None
    department: str = ""
    employment_type: str = "full_time"
    status: str = "active"
    notes: str = ""
    # {"2025": {"01": 2100.0, ..., "12": 2100.0}}, every year carries all twelve months
    monthly_costs_by_year: Dict[str, Dict[str, float]] = field(default_factory=dict)
    default_year: Optional[str] = None
