"""
Dashboard Spend Summary Tests (Unit)
====================================

WHAT: Supplier/sector/branch/month rollups and cost domain filtering.
WHY: The four dashboard breakdowns must always agree on the same total.

REFERENCES:
- backend/spendboard/services/spend_summary.py
- backend/spendboard/services/cost_domains.py
"""

from datetime import date

import pytest

from spendboard.services.cost_domains import filter_by_cost_domain, get_cost_domain
from spendboard.services.diagnostics import AllocationDiagnostics
from spendboard.services.records import Expense, ExpenseLineItem
from spendboard.services.spend_summary import UNASSIGNED, summarize_spend

BRANCH_IDS = {"B1", "B2"}
BRANCHES_PER_SECTOR = {"SEC1": ["B1", "B2"]}


def _expenses():
    return [
        Expense(id="E1", date=date(2025, 1, 20), supplier_id="S1", sector_id="SEC1", line_items=(
            ExpenseLineItem(key="a", amount=100.0, assignment_id="B1"),
            ExpenseLineItem(key="b", amount=50.0),  # Spread across SEC1
        )),
        Expense(id="E2", supplier_id="S2", sector_id="SEC1", amount=62.0, branch_id="B2",
                is_amortized=True, amortization_start=date(2025, 1, 1), amortization_end=date(2025, 1, 31)),
        Expense(id="E3", date=date(2025, 2, 3), amount=10.0, branch_id="B1"),
    ]


def test_breakdowns_share_the_same_total() -> None:
    summary = summarize_spend(_expenses(), BRANCH_IDS, BRANCHES_PER_SECTOR, date(2025, 1, 1), date(2025, 12, 31))

    assert summary.total == pytest.approx(222.0)
    assert summary.expense_count == 3
    for breakdown in (summary.by_supplier, summary.by_sector, summary.by_branch, summary.by_month):
        assert sum(breakdown.values()) == pytest.approx(summary.total)

    assert summary.by_branch == {"B1": pytest.approx(135.0), "B2": pytest.approx(87.0)}
    assert summary.by_supplier[UNASSIGNED] == pytest.approx(10.0)
    assert summary.by_month == {"2025-01": pytest.approx(212.0), "2025-02": pytest.approx(10.0)}


def test_amortized_expense_is_bucketed_per_month() -> None:
    expense = Expense(id="E1", amount=59.0, branch_id="B1", is_amortized=True,
                      amortization_start=date(2025, 1, 1), amortization_end=date(2025, 2, 28))

    summary = summarize_spend([expense], BRANCH_IDS, BRANCHES_PER_SECTOR, date(2025, 1, 1), date(2025, 12, 31))

    assert summary.by_month == {"2025-01": pytest.approx(31.0), "2025-02": pytest.approx(28.0)}


def test_unresolved_amortized_item_is_reported_once() -> None:
    """Spans three months but the missing branch is one problem, not three."""
    expense = Expense(id="E1", amount=90.0, is_amortized=True,
                      amortization_start=date(2025, 1, 1), amortization_end=date(2025, 3, 31),
                      line_items=(ExpenseLineItem(key="orphan", amount=90.0, assignment_id="NOWHERE"),))
    diagnostics = AllocationDiagnostics()

    summary = summarize_spend([expense], BRANCH_IDS, BRANCHES_PER_SECTOR, date(2025, 1, 1), date(2025, 12, 31),
                              diagnostics=diagnostics)

    assert summary.total == 0.0
    assert diagnostics.reasons_for("orphan") == ["no branch could be resolved"]


def test_branch_and_supplier_filters() -> None:
    by_branch = summarize_spend(_expenses(), BRANCH_IDS, BRANCHES_PER_SECTOR, branch_id="B2")
    by_supplier = summarize_spend(_expenses(), BRANCH_IDS, BRANCHES_PER_SECTOR, supplier_id="S1")

    assert by_branch.total == pytest.approx(87.0)
    assert by_branch.expense_count == 2
    assert by_supplier.total == pytest.approx(150.0)
    assert by_supplier.expense_count == 1


def test_filter_by_cost_domain_defaults_undomained_expenses() -> None:
    expenses = [
        Expense(id="E1", cost_domain="marketing"),
        Expense(id="E2", cost_domain="operations"),
        Expense(id="E3", cost_domain=None),
    ]

    assert [e.id for e in filter_by_cost_domain(expenses, "marketing")] == ["E1", "E3"]
    assert [e.id for e in filter_by_cost_domain(expenses, "operations")] == ["E2"]
    assert [e.id for e in filter_by_cost_domain(expenses, "operations", default_domain="operations")] == ["E2", "E3"]
    assert len(filter_by_cost_domain(expenses, None)) == 3


def test_get_cost_domain_falls_back_to_marketing() -> None:
    assert get_cost_domain("operations").supports_contracts is False
    assert get_cost_domain("unknown").id == "marketing"
    assert get_cost_domain(None).id == "marketing"
