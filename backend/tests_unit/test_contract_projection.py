"""
Contract Projection Tests (Unit)
================================

WHAT: Overdue vs future proration of contract line items and the contracts overview.
WHY: Finance uses these numbers to chase suppliers and plan cash-out; the split
     must add up and never exceed what is left on a contract.

REFERENCES:
- backend/spendboard/services/contract_projection.py
"""

from datetime import date

import pytest

from spendboard.services.contract_projection import (
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_NOT_STARTED,
    STATUS_OVERRUN,
    build_contract_overview,
    filter_contracts,
    project_contracts,
    project_line_item,
    residual_in_period,
    sort_contracts,
    summarize_contracts,
)
from spendboard.services.diagnostics import AllocationDiagnostics
from spendboard.services.records import Contract, ContractLineItem, Expense, ExpenseLineItem
from spendboard.services.spend_aggregator import aggregate_spend

YEAR_START = date(2025, 1, 1)
YEAR_END = date(2025, 12, 31)
TODAY = date(2025, 7, 2)


def _line_item(item_id="L1", total=1200.0, start=YEAR_START, end=YEAR_END, contract_id="C1", **kwargs):
    return ContractLineItem(
        id=item_id, contract_id=contract_id, total_amount=total, start_date=start, end_date=end, **kwargs
    )


def _spend(contract_id, line_item_id, amount, day):
    return Expense(id=f"E-{line_item_id}-{day}", date=day, line_items=(
        ExpenseLineItem(key="0", amount=amount, contract_id=contract_id, contract_line_item_id=line_item_id),
    ))


# ============================================================================
# project_line_item
# ============================================================================

def test_unspent_line_item_mid_year() -> None:
    """Nothing spent by July 2nd: 183 days are overdue, the rest is future."""
    projection = project_line_item(_line_item(), 0.0, 0.0, YEAR_START, YEAR_END, TODAY)

    assert projection.overdue_days == 183
    assert projection.future_days == 182
    assert projection.daily_amount == pytest.approx(1200 / 365)
    assert projection.overdue_amount == pytest.approx(601.64, abs=0.01)
    assert projection.future_amount == pytest.approx(598.36, abs=0.01)
    assert projection.overdue_amount + projection.future_amount == pytest.approx(1200.0)


def test_fully_paced_line_item_has_no_overdue() -> None:
    projection = project_line_item(_line_item(), 601.64, 601.64, YEAR_START, YEAR_END, TODAY)

    assert projection.overdue_amount == pytest.approx(0.0, abs=0.01)
    assert projection.future_amount == pytest.approx(598.36, abs=0.01)


def test_today_before_window_is_all_future() -> None:
    projection = project_line_item(_line_item(), 0.0, 0.0, YEAR_START, YEAR_END, date(2024, 12, 1))

    assert projection.overdue_days == 0
    assert projection.overdue_amount == 0.0
    assert projection.future_amount == pytest.approx(1200.0)


def test_today_after_window_is_all_overdue() -> None:
    projection = project_line_item(_line_item(), 0.0, 0.0, YEAR_START, YEAR_END, date(2026, 3, 1))

    assert projection.future_days == 0
    assert projection.future_amount == 0.0
    assert projection.overdue_amount == pytest.approx(1200.0)


def test_window_clips_line_item() -> None:
    """Only the July-December slice is reported; spend before the window is discounted."""
    daily = 1200 / 365
    spent_before_window = daily * 181  # Jan 1 -> Jun 30, exactly on pace

    projection = project_line_item(
        _line_item(), spent_before_window, spent_before_window, date(2025, 7, 1), YEAR_END, TODAY
    )

    assert projection.overdue_days == 2
    assert projection.overdue_amount == pytest.approx(daily * 2)
    assert projection.future_amount == pytest.approx(daily * 182)


def test_overpaced_spend_reduces_future() -> None:
    projection = project_line_item(_line_item(), 1000.0, 1000.0, YEAR_START, YEAR_END, TODAY)

    assert projection.overdue_amount == 0.0
    assert projection.future_amount == pytest.approx(200.0)


@pytest.mark.parametrize(
    "item, spent, reason",
    [
        (_line_item(total=0.0), 0.0, "non-positive value"),
        (_line_item(), 1500.0, "fully spent"),
        (_line_item(start=None), 0.0, "missing start/end date"),
        (_line_item(start=date(2024, 1, 1), end=date(2024, 12, 31)), 0.0, "outside reporting window"),
    ],
)
def test_skipped_line_items_are_reported(item, spent, reason) -> None:
    diagnostics = AllocationDiagnostics()

    projection = project_line_item(item, spent, spent, YEAR_START, YEAR_END, TODAY, diagnostics)

    assert projection is None
    assert diagnostics.reasons_for(item.id) == [reason]


def test_single_day_line_item() -> None:
    item = _line_item(total=100.0, start=date(2025, 7, 2), end=date(2025, 7, 2))

    projection = project_line_item(item, 0.0, 0.0, YEAR_START, YEAR_END, TODAY)

    assert projection.daily_amount == pytest.approx(100.0)
    assert projection.overdue_amount == pytest.approx(100.0)
    assert projection.future_amount == 0.0


@pytest.mark.parametrize("spent", [0.0, 100.0, 601.64, 900.0, 1199.0])
@pytest.mark.parametrize("today", [date(2024, 6, 1), date(2025, 2, 14), TODAY, date(2025, 12, 31), date(2026, 6, 1)])
def test_projection_never_exceeds_remaining(spent, today) -> None:
    projection = project_line_item(_line_item(), spent, spent, YEAR_START, YEAR_END, today)

    assert projection.overdue_amount >= 0.0
    assert projection.future_amount >= 0.0
    assert projection.overdue_amount + projection.future_amount <= 1200.0 - spent + 1e-9
    assert projection.overdue_days + projection.future_days == 365


# ============================================================================
# project_contracts
# ============================================================================

def test_project_contracts_accumulates_by_supplier_and_sector() -> None:
    contracts = [
        Contract(id="C1", supplier_id="S1", line_items=(
            _line_item("L1", sector_id="SEC1"),
            _line_item("L2", total=365.0, sector_id="SEC2", supplier_id="S2"),
        )),
    ]
    spend_index = aggregate_spend([], contracts, today=TODAY)

    result = project_contracts(contracts, spend_index, YEAR_START, YEAR_END, TODAY)

    assert set(result.future_by_supplier) == {"S1", "S2"}
    assert result.future_by_sector["SEC2"] == pytest.approx(182.0)
    assert result.overdue_by_supplier["S2"] == pytest.approx(183.0)
    assert result.total_overdue + result.total_future == pytest.approx(1565.0)


def test_project_contracts_skips_none_keys() -> None:
    contracts = [Contract(id="C1", supplier_id=None, line_items=(_line_item("L1", sector_id=None),))]

    result = project_contracts(contracts, aggregate_spend([], contracts, today=TODAY), YEAR_START, YEAR_END, TODAY)

    assert result.future_by_supplier == {}
    assert result.future_by_sector == {}
    assert len(result.line_items) == 1


# ============================================================================
# Contract overview
# ============================================================================

def _overview_contracts():
    return [
        Contract(id="C1", supplier_id="S1", description="Radio", signing_date=date(2025, 1, 1),
                 line_items=(_line_item("L1", total=1000.0, sector_id="SEC1", branch_id="B1"),)),
        Contract(id="C2", supplier_id="S2", description="Billboards", signing_date=date(2025, 2, 1),
                 line_items=(_line_item("L2", total=500.0, contract_id="C2", sector_id="SEC2", branch_id="B2"),)),
        Contract(id="C3", supplier_id="S1", description="Social", signing_date=date(2025, 3, 1),
                 line_items=(_line_item("L3", total=200.0, contract_id="C3", sector_id="SEC1"),)),
        Contract(id="C4", supplier_id="S3", description="Old print", signing_date=date(2023, 1, 1),
                 line_items=(_line_item("L4", total=100.0, contract_id="C4",
                                        start=date(2023, 1, 1), end=date(2023, 12, 31)),)),
    ]


def _overview_expenses():
    return [
        _spend("C1", "L1", 400.0, date(2025, 3, 1)),
        _spend("C2", "L2", 500.0, date(2025, 4, 1)),
        _spend("C3", "L3", 250.0, date(2025, 5, 1)),
    ]


def _overview():
    return build_contract_overview(_overview_contracts(), _overview_expenses(), YEAR_START, YEAR_END, TODAY)


def test_overview_status_and_progress() -> None:
    by_id = {s.contract.id: s for s in _overview()}

    assert by_id["C1"].progress == pytest.approx(40.0)
    assert by_id["C1"].status == STATUS_ACTIVE
    assert by_id["C2"].status == STATUS_COMPLETED
    assert by_id["C3"].status == STATUS_OVERRUN
    assert by_id["C3"].remaining_value == pytest.approx(-50.0)
    assert by_id["C4"].status == STATUS_NOT_STARTED
    assert by_id["C4"].in_period is False


def test_filter_completed_includes_overrun() -> None:
    completed = filter_contracts(_overview(), status="completed")

    assert {s.contract.id for s in completed} == {"C2", "C3"}


def test_filter_by_search_sector_supplier_and_branch() -> None:
    summaries = _overview()
    names = {"S1": "Radio Italia", "S2": "Affissioni Srl"}

    assert [s.contract.id for s in filter_contracts(summaries, search="affiss", supplier_names=names)] == ["C2"]
    assert {s.contract.id for s in filter_contracts(summaries, sector_id="SEC1")} == {"C1", "C3"}
    assert {s.contract.id for s in filter_contracts(summaries, supplier_ids=["S1"])} == {"C1", "C3"}
    assert [s.contract.id for s in filter_contracts(summaries, branch_ids=["B2"])] == ["C2"]


def test_filter_period_can_be_disabled() -> None:
    assert len(filter_contracts(_overview())) == 3
    assert len(filter_contracts(_overview(), only_in_period=False)) == 4


def test_sort_contracts() -> None:
    summaries = filter_contracts(_overview())
    names = {"S1": "Radio Italia", "S2": "Affissioni Srl"}

    assert [s.contract.id for s in sort_contracts(summaries, "progress_desc")] == ["C3", "C2", "C1"]
    assert [s.contract.id for s in sort_contracts(summaries, "amount_asc")] == ["C3", "C2", "C1"]
    assert [s.contract.id for s in sort_contracts(summaries, "date_desc")] == ["C3", "C2", "C1"]
    assert [s.contract.id for s in sort_contracts(summaries, "name_asc", names)][0] == "C2"
    assert [s.contract.id for s in sort_contracts(summaries, "unknown")] == [s.contract.id for s in summaries]


def test_summarize_contracts() -> None:
    stats = summarize_contracts(filter_contracts(_overview()))

    assert stats.total == 3
    assert stats.total_value == pytest.approx(1700.0)
    assert stats.total_spent == pytest.approx(1150.0)
    assert stats.active == 1
    assert stats.completed == 2
    assert stats.overrun == 1
    assert stats.avg_utilization == pytest.approx(1150.0 / 1700.0 * 100)


def test_summarize_empty_list() -> None:
    stats = summarize_contracts([])

    assert stats.total == 0
    assert stats.avg_utilization == 0.0


# ============================================================================
# residual_in_period
# ============================================================================

def test_residual_is_spread_over_the_whole_line_item() -> None:
    """1100 left over 365 days, 184 of them between July and December."""
    contract = Contract(id="C1", line_items=(_line_item(),))

    projection = residual_in_period(contract, 100.0, date(2025, 7, 1), YEAR_END)

    assert projection == pytest.approx(1100 / 365 * 184)
    assert projection == pytest.approx(554.52, abs=0.01)


def test_spend_is_consumed_in_start_date_order() -> None:
    contract = Contract(id="C1", line_items=(
        _line_item("H2", total=600.0, start=date(2025, 7, 1), end=YEAR_END),
        _line_item("H1", total=600.0, start=YEAR_START, end=date(2025, 6, 30)),
    ))

    assert residual_in_period(contract, 700.0, YEAR_START, YEAR_END) == pytest.approx(500.0)
    assert residual_in_period(contract, 700.0, YEAR_START, date(2025, 6, 30)) == 0.0


def test_undated_line_items_do_not_consume_spend() -> None:
    contract = Contract(id="C1", line_items=(
        _line_item("L0", total=500.0, start=None, end=None),
        _line_item("L1", total=365.0),
    ))

    assert residual_in_period(contract, 65.0, YEAR_START, YEAR_END) == pytest.approx(300.0)


def test_overview_projection_uses_residual() -> None:
    by_id = {s.contract.id: s for s in _overview()}

    assert by_id["C1"].projection_in_period == pytest.approx(600.0)
    assert by_id["C2"].projection_in_period == 0.0
    assert by_id["C4"].projection_in_period == 0.0
