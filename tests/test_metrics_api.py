from conftest import ENV_ENERGY_FIELDS

from esg_portal import metric_store
from esg_portal.periods import current_period

PERIOD = "2026-Q1"


def test_create_and_fetch_record(client, auth_headers, company, submit):
    resp = submit("environment", company, PERIOD, **ENV_ENERGY_FIELDS)
    assert resp.status_code == 201
    metric = resp.get_json()["metric"]
    assert metric["period"] == PERIOD
    assert metric["electricityKwh"] == 50000

    resp = client.get(f"/api/metrics/environment/{metric['_id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()["metric"]["scope2Emissions"] == 5


def test_duplicate_period_is_conflict(company, submit):
    assert submit("environment", company, PERIOD, electricityKwh=1).status_code == 201
    resp = submit("environment", company, PERIOD, electricityKwh=2)
    assert resp.status_code == 409
    assert "already exist" in resp.get_json()["error"]


def test_racing_create_is_conflict_not_server_error(company, submit, monkeypatch):
    assert submit("environment", company, PERIOD, electricityKwh=1).status_code == 201
    # the second writer misses the existing row and hits the unique constraint
    monkeypatch.setattr(metric_store, "_existing", lambda model, company_id, period: None)
    resp = submit("environment", company, PERIOD, electricityKwh=2)
    assert resp.status_code == 409
    assert "already exist" in resp.get_json()["error"]


def test_boolean_company_id_rejected(company, submit):
    resp = submit("environment", True, PERIOD, electricityKwh=1)
    assert resp.status_code == 400
    assert "companyId" in resp.get_json()["error"]


def test_same_period_different_pillars_allowed(company, submit):
    assert submit("environment", company, PERIOD, electricityKwh=1).status_code == 201
    assert submit("social", company, PERIOD, totalEmployeesPermanent=40).status_code == 201
    assert submit("governance", company, PERIOD, boardMembers=7).status_code == 201


def test_validation_errors_name_the_field(company, submit):
    resp = submit("environment", company, PERIOD, electricityKwh=-5)
    assert resp.status_code == 400
    assert "electricityKwh" in resp.get_json()["error"]

    resp = submit("environment", company, PERIOD, renewableEnergyPercent=140)
    assert resp.status_code == 400
    assert "renewableEnergyPercent" in resp.get_json()["error"]

    resp = submit("social", company, PERIOD, totalEmployeesPermanent="lots")
    assert resp.status_code == 400


def test_invalid_period_rejected(company, submit):
    resp = submit("environment", company, "2026-Q7", electricityKwh=1)
    assert resp.status_code == 400
    assert "period" in resp.get_json()["error"].lower()


def test_unknown_fields_are_ignored(company, submit):
    resp = submit("governance", company, PERIOD, boardMembers=9, favouriteColour="green")
    assert resp.status_code == 201
    assert "favouriteColour" not in resp.get_json()["metric"]


def test_update_clears_null_fields(client, auth_headers, company, submit):
    metric = submit("environment", company, PERIOD, **ENV_ENERGY_FIELDS).get_json()["metric"]
    resp = client.put(
        f"/api/metrics/environment/{metric['_id']}",
        json={"fuelLitres": None, "waterUsageKL": 300},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    updated = resp.get_json()["metric"]
    assert "fuelLitres" not in updated
    assert updated["waterUsageKL"] == 300
    assert updated["electricityKwh"] == 50000


def test_save_and_delete_recompute_scorecard(client, auth_headers, company, submit):
    metric = submit("environment", company, PERIOD, **ENV_ENERGY_FIELDS).get_json()["metric"]
    card = client.get(f"/api/esg/scorecard/{company}", headers=auth_headers).get_json()["scorecard"]
    assert card["period"] == PERIOD
    first = card["environmentalScore"]

    client.put(
        f"/api/metrics/environment/{metric['_id']}",
        json={"renewableEnergyPercent": 60},
        headers=auth_headers,
    )
    card = client.get(f"/api/esg/scorecard/{company}", headers=auth_headers).get_json()["scorecard"]
    assert card["environmentalScore"] > first

    resp = client.delete(f"/api/metrics/environment/{metric['_id']}", headers=auth_headers)
    assert resp.status_code == 200
    body = client.get(f"/api/esg/scorecard/{company}", headers=auth_headers).get_json()
    assert body["scorecard"] is None
    assert body["trends"] == []


def test_company_metrics_grouped_by_pillar(client, auth_headers, company, submit):
    submit("environment", company, "2025-Q4", electricityKwh=1)
    submit("environment", company, PERIOD, electricityKwh=2)
    submit("social", company, PERIOD, totalEmployeesPermanent=10)

    body = client.get(f"/api/metrics/{company}", headers=auth_headers).get_json()
    assert [r["period"] for r in body["environmental"]] == [PERIOD, "2025-Q4"]
    assert len(body["social"]) == 1
    assert body["governance"] == []

    body = client.get(f"/api/metrics/{company}?period=2025-Q4", headers=auth_headers).get_json()
    assert len(body["environmental"]) == 1
    assert body["social"] == []


def test_periods_newest_first_with_current_quarter(client, auth_headers, company, submit):
    submit("environment", company, "2025-Q2", electricityKwh=1)
    submit("social", company, "2025-Q4", totalEmployeesPermanent=1)

    periods = client.get("/api/metrics/periods", headers=auth_headers).get_json()["periods"]
    assert current_period() in periods
    assert periods.index("2025-Q4") < periods.index("2025-Q2")
    assert len(periods) == len(set(periods))


def test_other_tenant_cannot_read_or_write(client, other_headers, company, submit):
    metric = submit("environment", company, PERIOD, electricityKwh=1).get_json()["metric"]

    resp = submit("environment", company, "2026-Q2", headers=other_headers, electricityKwh=1)
    assert resp.status_code == 403
    assert client.get(f"/api/metrics/environment/{metric['_id']}", headers=other_headers).status_code == 403
    assert client.get(f"/api/metrics/{company}", headers=other_headers).status_code == 403


def test_auditor_is_read_only(client, auditor_headers, company, submit):
    submit("environment", company, PERIOD, electricityKwh=1)
    assert client.get(f"/api/metrics/{company}", headers=auditor_headers).status_code == 200
    resp = submit("social", company, PERIOD, headers=auditor_headers, totalEmployeesPermanent=3)
    assert resp.status_code == 403


def test_unknown_pillar_and_record(client, auth_headers, company, submit):
    assert submit("economic", company, PERIOD, revenue=1).status_code == 404
    assert client.get("/api/metrics/social/999", headers=auth_headers).status_code == 404
