"""
Record Normalization Tests (Unit)
=================================

WHAT: Amount/date coercion and legacy document -> record conversion.
WHY: Historical documents spell fields several ways and store amounts as
     Italian-formatted strings; the engine must only ever see clean records.

NOTE:
These tests live outside `backend/spendboard/tests/` to avoid loading the
integration-test `conftest.py`, which configures a database not required here.

REFERENCES:
- backend/spendboard/services/normalization.py
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from spendboard.services.normalization import (
    contract_from_mapping,
    days_between,
    expense_from_mapping,
    normalize_date,
    parse_amount,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("12,5", 12.5),
        ("€ 300", 300.0),
        ("1.000.000", 1000000.0),
        (42, 42.0),
        (None, 0.0),
        ("abc", 0.0),
        (float("nan"), 0.0),
        (True, 0.0),
        (Decimal("12.50"), 12.5),
        (Decimal("sNaN"), 0.0),
        (10 ** 400, 0.0),
        (-(10 ** 400), 0.0),
    ],
)
def test_parse_amount(raw, expected) -> None:
    assert parse_amount(raw) == pytest.approx(expected)


def test_normalize_date_accepts_common_shapes() -> None:
    assert normalize_date("2025-03-04") == date(2025, 3, 4)
    assert normalize_date("2025-03-04T23:10:00Z") == date(2025, 3, 4)
    assert normalize_date(datetime(2025, 3, 4, 18, 0)) == date(2025, 3, 4)
    assert normalize_date(date(2025, 3, 4)) == date(2025, 3, 4)

    seconds = datetime(2025, 3, 4, 12, 0, tzinfo=timezone.utc).timestamp()
    assert normalize_date({"seconds": seconds, "nanoseconds": 0}) == date(2025, 3, 4)


def test_normalize_date_rejects_invalid_values() -> None:
    assert normalize_date(None) is None
    assert normalize_date("") is None
    assert normalize_date("04/03/2025") is None
    assert normalize_date("2025-02-30") is None
    assert normalize_date({"foo": 1}) is None


@pytest.mark.parametrize("seconds", [10 ** 15, -(10 ** 15), 10 ** 400, float("inf"), float("nan")])
def test_normalize_date_out_of_range_timestamp_is_none(seconds) -> None:
    assert normalize_date({"seconds": seconds}) is None


def test_days_between_is_signed() -> None:
    assert days_between(date(2025, 1, 1), date(2025, 12, 31)) == 364
    assert days_between(date(2025, 1, 10), date(2025, 1, 1)) == -9


def test_contract_from_mapping_reads_legacy_spellings() -> None:
    contract = contract_from_mapping({
        "id": "C1",
        "supplierld": "S1",
        "description": "Radio campaign",
        "signingDate": "2025-01-05",
        "lineItems": [
            {
                "_key": "L1",
                "totalAmount": "1.200,00",
                "startDate": "2025-01-01",
                "endDate": "2025-12-31",
                "sectorld": "SEC1",
                "branchld": "B1",
            },
            {"totalAmount": 300, "startDate": "2025-01-01", "endDate": "2025-03-31", "supplierId": "S2"},
        ],
    })

    assert contract.id == "C1"
    assert contract.supplier_id == "S1"
    assert contract.signing_date == date(2025, 1, 5)
    first, second = contract.line_items
    assert first.id == "L1"
    assert first.total_amount == pytest.approx(1200.0)
    assert first.sector_id == "SEC1"
    assert first.branch_id == "B1"
    assert first.supplier_id == "S1"  # Inherited from the contract
    assert second.id == "C1-1"
    assert second.supplier_id == "S2"
    assert contract.total_value == pytest.approx(1500.0)


def test_expense_from_mapping_reads_legacy_spellings() -> None:
    expense = expense_from_mapping({
        "id": "E1",
        "date": {"seconds": datetime(2025, 2, 10, tzinfo=timezone.utc).timestamp()},
        "amount": "150,00",
        "channelId": "S1",
        "branchld": "B1",
        "isAmortized": "true",
        "amortizationStartDate": "2025-01-01",
        "amortizationEndDate": "2025-03-31",
        "lineItems": [
            {
                "description": "Spot",
                "amount": "100",
                "relatedContractId": "C1",
                "relatedLineItemId": "L1",
                "assignmentType": "distributed",
                "assignmentId": ["B1", "B2"],
                "marketingChannelId": "CH1",
            },
        ],
    })

    assert expense.date == date(2025, 2, 10)
    assert expense.amount == pytest.approx(150.0)
    assert expense.supplier_id == "S1"
    assert expense.branch_id == "B1"
    assert expense.is_amortized is True
    assert expense.amortization_start == date(2025, 1, 1)
    assert expense.amortization_end == date(2025, 3, 31)

    item = expense.line_items[0]
    assert item.key == "E1-0"
    assert item.contract_id == "C1"
    assert item.contract_line_item_id == "L1"
    assert item.assignment_type == "distributed"
    assert item.assignment_id == ("B1", "B2")
    assert item.channel_id == "CH1"


def test_expense_from_mapping_tolerates_missing_fields() -> None:
    expense = expense_from_mapping({"description": None, "amount": None}, fallback_id="X")

    assert expense.id == "X"
    assert expense.date is None
    assert expense.amount == 0.0
    assert expense.line_items == ()
    assert expense.is_amortized is False
