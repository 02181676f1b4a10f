from conftest import ENV_ENERGY_FIELDS


def test_dashboard_without_data(client, auth_headers, company):
    body = client.get(f"/api/compliance/dashboard/{company}", headers=auth_headers).get_json()
    assert body["hasData"] is False
    assert body["readiness"] == 0
    assert body["nextSteps"] == []
    assert [b["area"] for b in body["breakdown"]] == ["Environmental", "Social", "Governance"]


def test_dashboard_defaults_to_latest_period(client, auth_headers, company, submit):
    submit("environment", company, "2025-Q4", electricityKwh=10)
    submit("environment", company, "2026-Q1", **ENV_ENERGY_FIELDS)

    body = client.get(f"/api/compliance/dashboard/{company}", headers=auth_headers).get_json()
    assert body["period"] == "2026-Q1"
    env = body["breakdown"][0]
    assert env["covered"] == 4
    assert env["covered"] + env["missing"] == env["total"]
    assert env["status"] == "warning"
    assert body["nextSteps"][0]["priority"] == "high"

    older = client.get(f"/api/compliance/dashboard/{company}?period=2025-Q4", headers=auth_headers).get_json()
    assert older["breakdown"][0]["covered"] == 1
    assert older["breakdown"][0]["status"] == "critical"


def test_dashboard_rejects_bad_period(client, auth_headers, company):
    resp = client.get(f"/api/compliance/dashboard/{company}?period=2026", headers=auth_headers)
    assert resp.status_code == 400
    assert "error" in resp.get_json()
