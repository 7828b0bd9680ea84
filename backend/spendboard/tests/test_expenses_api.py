"""Tests for expense endpoints.

WHAT: Tests /expenses CRUD and duplication
WHY: The write path enforces the invariants every allocation view relies on

REFERENCES:
  - spendboard/routers/expenses.py
"""

from datetime import date


def _expense_payload(**overrides):
    payload = {
        "date": "2025-03-10",
        "description": "Volantini marzo",
        "sector_id": "SEC-CARS",
        "supplier_id": "S-PRINT",
        "branch_id": "B-MI",
        "line_items": [
            {"description": "  Stampa  ", "amount": "1.000,50", "channel_id": "S-PRINT"},
            {"description": "Distribuzione", "amount": 199.5, "channel_id": "S-PRINT"},
            {"description": "   ", "amount": 999},
        ],
    }
    payload.update(overrides)
    return payload


class TestCreateExpense:
    """POST /expenses validation and normalization."""

    def test_amount_is_sum_of_line_items(self, client, organisation):
        """Blank items are dropped and the total is recomputed."""
        response = client.post("/expenses", json=_expense_payload(amount=5))

        assert response.status_code == 201
        body = response.json()
        assert body["amount"] == 1200.0
        assert [item["description"] for item in body["line_items"]] == ["Stampa", "Distribuzione"]
        assert body["cost_domain"] == "marketing"

    def test_single_branch_expense_pins_items_to_branch(self, client, organisation):
        body = client.post("/expenses", json=_expense_payload()).json()

        for item in body["line_items"]:
            assert item["assignment_type"] == "branch"
            assert item["assignment_id"] == "B-MI"

    def test_single_branch_expense_requires_branch(self, client, organisation):
        response = client.post("/expenses", json=_expense_payload(branch_id=None))

        assert response.status_code == 422

    def test_expense_requires_a_line_item(self, client, organisation):
        response = client.post("/expenses", json=_expense_payload(line_items=[{"description": " ", "amount": 10}]))

        assert response.status_code == 422
        assert "line item" in response.json()["detail"]

    def test_multi_branch_items_need_assignment(self, client, organisation):
        payload = _expense_payload(
            is_multi_branch=True,
            branch_id=None,
            line_items=[{"description": "Spot", "amount": 100, "channel_id": "S-RADIO"}],
        )

        response = client.post("/expenses", json=payload)

        assert response.status_code == 422

    def test_multi_branch_assignment_list_is_stored_comma_separated(self, client, organisation):
        payload = _expense_payload(
            is_multi_branch=True,
            branch_id=None,
            line_items=[{
                "description": "Spot",
                "amount": 100,
                "assignment_type": "distributed",
                "assignment_id": ["B-MI", "B-RM"],
                "channel_id": "S-RADIO",
            }],
        )

        body = client.post("/expenses", json=payload).json()

        assert body["branch_id"] is None
        assert body["line_items"][0]["assignment_id"] == "B-MI,B-RM"

    def test_amortized_expense_requires_dates(self, client, organisation):
        response = client.post("/expenses", json=_expense_payload(is_amortized=True))

        assert response.status_code == 422

    def test_marketing_line_items_need_a_channel(self, client, organisation):
        payload = _expense_payload(line_items=[{"description": "Stampa", "amount": 100}])

        response = client.post("/expenses", json=payload)

        assert response.status_code == 422
        assert "channel_id" in response.json()["detail"]

    def test_operations_line_items_need_no_channel(self, client, organisation):
        payload = _expense_payload(cost_domain="operations", line_items=[{"description": "Affitto", "amount": 900}])

        response = client.post("/expenses", json=payload)

        assert response.status_code == 201
        assert response.json()["amount"] == 900.0

    def test_operations_line_items_cannot_link_contracts(self, client, yearly_contract):
        payload = _expense_payload(cost_domain="operations", line_items=[{
            "description": "Quota",
            "amount": 100,
            "contract_id": yearly_contract["id"],
            "contract_line_item_id": yearly_contract["line_items"][0]["id"],
        }])

        response = client.post("/expenses", json=payload)

        assert response.status_code == 422
        assert "contract" in response.json()["detail"]


class TestExpenseLifecycle:
    """Update, duplicate and delete."""

    def test_update_replaces_line_items(self, client, organisation):
        created = client.post("/expenses", json=_expense_payload()).json()

        payload = _expense_payload(
            line_items=[{"description": "Solo stampa", "amount": "300", "channel_id": "S-PRINT"}],
        )
        response = client.put(f"/expenses/{created['id']}", json=payload)

        assert response.status_code == 200
        body = response.json()
        assert body["amount"] == 300.0
        assert len(body["line_items"]) == 1

    def test_duplicate_copies_with_suffix_and_today(self, client, organisation):
        created = client.post("/expenses", json=_expense_payload()).json()

        response = client.post(f"/expenses/{created['id']}/duplicate")

        assert response.status_code == 201
        copy = response.json()
        assert copy["id"] != created["id"]
        assert copy["description"] == "Volantini marzo (Copia)"
        assert copy["date"] == date.today().isoformat()
        assert copy["amount"] == created["amount"]
        assert len(copy["line_items"]) == len(created["line_items"])

    def test_delete_and_missing_expense(self, client, organisation):
        created = client.post("/expenses", json=_expense_payload()).json()

        assert client.delete(f"/expenses/{created['id']}").status_code == 204
        assert client.get(f"/expenses/{created['id']}").status_code == 404
        assert client.post(f"/expenses/{created['id']}/duplicate").status_code == 404

    def test_list_filters_by_cost_domain(self, client, organisation):
        client.post("/expenses", json=_expense_payload())
        client.post("/expenses", json=_expense_payload(cost_domain="operations", description="Affitto"))

        response = client.get("/expenses", params={"cost_domain": "operations"})

        assert [e["description"] for e in response.json()] == ["Affitto"]
