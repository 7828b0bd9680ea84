"""Spend aggregation over the expense log.

WHAT: Attributes recorded expense amounts to contracts and contract line items
WHY: The projection engine needs, per line item, what has been spent overall
     and what has been spent up to today
REFERENCES:
  - spendboard/services/contract_projection.py: consumes SpendIndex
  - backend/tests_unit/test_spend_aggregator.py

Attribution rules:
  - Expense line item naming a contract line item -> that line item
  - Expense line item naming only a contract -> contract fallback bucket,
    later prorated over the contract's line items by value share
  - Expense without line items but with a top-level contract -> whole amount
    into the contract fallback bucket
  - "To date" means expense date <= today; undated expenses only count in totals
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Optional, Tuple

from spendboard.services.diagnostics import AllocationDiagnostics, note_skip
from spendboard.services.records import Contract, ContractLineItem, Expense

logger = logging.getLogger(__name__)


@dataclass
class FallbackSpend:
    """Contract-level spend not tied to a specific line item."""
    total: float = 0.0
    to_date: float = 0.0


@dataclass
class SpendIndex:
    contract_totals: Dict[str, float] = field(default_factory=dict)
    line_item_totals: Dict[str, float] = field(default_factory=dict)
    line_item_to_date: Dict[str, float] = field(default_factory=dict)
    contract_fallback: Dict[str, FallbackSpend] = field(default_factory=dict)

    def spent_for(self, line_item: ContractLineItem, contract: Contract) -> Tuple[float, float]:
        """Return (spent_total, spent_to_date) for a contract line item.

        Direct spend plus the contract fallback prorated by the line item's
        share of the contract's total value.
        """
        spent_total = self.line_item_totals.get(line_item.id, 0.0)
        spent_to_date = self.line_item_to_date.get(line_item.id, 0.0)

        fallback = self.contract_fallback.get(contract.id)
        contract_value = contract.total_value
        if fallback is not None and contract_value > 0:
            share = line_item.total_amount / contract_value
            spent_total += fallback.total * share
            spent_to_date += fallback.to_date * share

        return spent_total, spent_to_date


def aggregate_spend(
    expenses: Iterable[Expense],
    contracts: Iterable[Contract],
    today: Optional[date] = None,
    diagnostics: Optional[AllocationDiagnostics] = None,
) -> SpendIndex:
    """Replay the expense log against the contracts.

    Args:
        expenses: Expenses already filtered to the relevant cost domain
        contracts: All contracts (used to resolve line item -> contract)
        today: Day boundary for "to date" buckets (defaults to date.today())
        diagnostics: Optional collector for skipped records

    Returns:
        SpendIndex with the four lookup maps
    """
    today = today or date.today()
    index = SpendIndex()

    line_item_owner: Dict[str, str] = {}
    for contract in contracts:
        for line_item in contract.line_items:
            line_item_owner[line_item.id] = contract.id

    def add(bucket: Dict[str, float], key: str, amount: float) -> None:
        bucket[key] = bucket.get(key, 0.0) + amount

    for expense in expenses:
        counts_to_date = expense.date is not None and expense.date <= today

        if expense.line_items:
            references = [
                (item.contract_id or expense.contract_id, item.contract_line_item_id, item.amount)
                for item in expense.line_items
            ]
        elif expense.contract_id:
            references = [(expense.contract_id, None, expense.amount)]
        else:
            continue

        for contract_id, line_item_id, amount in references:
            if not amount:
                continue

            if line_item_id:
                contract_id = contract_id or line_item_owner.get(line_item_id)
                add(index.line_item_totals, line_item_id, amount)
                if counts_to_date:
                    add(index.line_item_to_date, line_item_id, amount)
                if line_item_id not in line_item_owner:
                    note_skip(logger, diagnostics, "expense_line_item", expense.id,
                              f"references unknown contract line item {line_item_id}")
                if contract_id:
                    add(index.contract_totals, contract_id, amount)
                continue

            if not contract_id:
                continue

            add(index.contract_totals, contract_id, amount)
            fallback = index.contract_fallback.setdefault(contract_id, FallbackSpend())
            fallback.total += amount
            if counts_to_date:
                fallback.to_date += amount

    logger.debug(
        f"[SPEND] Aggregated {len(index.contract_totals)} contracts, "
        f"{len(index.line_item_totals)} line items"
    )
    return index
