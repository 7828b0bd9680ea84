"""Tests for reference data, budgets, filter presets and health endpoints.

WHAT: Tests /sectors, /branches, /suppliers, /budgets, /presets and /health
WHY: These endpoints back the settings pages and the shared filter bar

REFERENCES:
  - spendboard/routers/reference.py
  - spendboard/routers/budgets.py
  - spendboard/routers/presets.py
"""

from spendboard import models
from spendboard.services.filter_presets import LEGACY_DASHBOARD_PRESETS_KEY


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestReferenceData:
    """Sectors, branches and suppliers."""

    def test_list_branches_with_sectors(self, client, organisation):
        branches = {b["id"]: b for b in client.get("/branches").json()}

        assert set(branches["B-RM"]["sector_ids"]) == {"SEC-CARS", "SEC-BOATS"}

    def test_create_branch_with_unknown_sector(self, client, organisation):
        response = client.post("/branches", json={"name": "Torino", "sector_ids": ["SEC-CARS", "NOPE"]})

        assert response.status_code == 404
        assert "NOPE" in response.json()["detail"]

    def test_create_and_delete_supplier(self, client):
        created = client.post("/suppliers", json={"name": "  Google Ads "}).json()

        assert created["name"] == "Google Ads"
        assert client.delete(f"/suppliers/{created['id']}").status_code == 204
        assert client.delete(f"/suppliers/{created['id']}").status_code == 404

    def test_sector_name_is_required(self, client):
        assert client.post("/sectors", json={"name": ""}).status_code == 422


class TestBudgets:
    """GET/PUT /budgets."""

    def _row(self, **overrides):
        row = {
            "year": 2025,
            "sector_id": "SEC-CARS",
            "branch_id": "B-MI",
            "channel_id": "S-RADIO",
            "planned_amount": "1.500,00",
            "max_amount": "2.000,00",
        }
        row.update(overrides)
        return row

    def test_bulk_upsert_skips_empty_new_rows(self, client):
        response = client.put("/budgets", json=[
            self._row(),
            self._row(channel_id="S-PRINT", planned_amount=0, max_amount=0),
        ])

        assert response.status_code == 200
        body = response.json()
        assert body["saved"] == 1
        assert body["skipped"] == 1
        assert body["budgets"][0]["planned_amount"] == 1500.0
        assert body["budgets"][0]["max_amount"] == 2000.0

    def test_upsert_updates_existing_key(self, client):
        client.put("/budgets", json=[self._row()])
        client.put("/budgets", json=[self._row(planned_amount=900)])

        budgets = client.get("/budgets", params={"year": 2025}).json()

        assert len(budgets) == 1
        assert budgets[0]["planned_amount"] == 900.0

    def test_existing_row_can_be_zeroed(self, client):
        saved = client.put("/budgets", json=[self._row()]).json()["budgets"][0]

        body = client.put("/budgets", json=[self._row(id=saved["id"], planned_amount=0, max_amount=0)]).json()

        assert body["saved"] == 1
        assert body["budgets"][0]["planned_amount"] == 0.0

    def test_list_is_scoped_to_year(self, client):
        client.put("/budgets", json=[self._row(), self._row(year=2024)])

        assert len(client.get("/budgets", params={"year": 2024}).json()) == 1


class TestFilterPresets:
    """GET/POST/DELETE /presets."""

    def test_create_list_delete(self, client):
        created = client.post("/presets", json={"name": "Auto Q1", "filters": {"sector_id": "SEC-CARS"}})

        assert created.status_code == 201
        preset = created.json()
        assert client.get("/presets").json() == [preset]

        assert client.delete(f"/presets/{preset['id']}").status_code == 204
        assert client.get("/presets").json() == []

    def test_blank_name_is_rejected(self, client):
        assert client.post("/presets", json={"name": "  "}).status_code == 422

    def test_delete_missing_preset(self, client):
        assert client.delete("/presets/does-not-exist").status_code == 404

    def test_legacy_presets_are_served(self, client, test_db_session):
        legacy = [{"id": "p1", "name": "Vecchio", "filters": {}}]
        test_db_session.add(models.AppSetting(key=LEGACY_DASHBOARD_PRESETS_KEY, value=legacy))
        test_db_session.commit()

        assert client.get("/presets").json() == legacy
