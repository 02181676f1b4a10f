import io

import pytest


def test_create_and_list(client, auth_headers):
    resp = client.post("/api/company", json={
        "name": "Sunrise Foods", "industry": "FMCG", "employeeCount": 220, "reportingYear": 2026,
    }, headers=auth_headers)
    assert resp.status_code == 201
    company = resp.get_json()["company"]
    assert company["employeeCount"] == 220

    names = [c["name"] for c in client.get("/api/company", headers=auth_headers).get_json()["companies"]]
    assert "Sunrise Foods" in names


def test_create_requires_name(client, auth_headers):
    assert client.post("/api/company", json={"industry": "IT"}, headers=auth_headers).status_code == 400
    resp = client.post("/api/company", json={"name": "X", "employeeCount": "many"}, headers=auth_headers)
    assert resp.status_code == 400


def test_tenancy(client, auth_headers, other_headers, company):
    assert client.get(f"/api/company/{company}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/company/{company}", headers=other_headers).status_code == 403
    others = client.get("/api/company", headers=other_headers).get_json()["companies"]
    assert all(c["_id"] != company for c in others)


def test_update_profile_but_not_plan(client, auth_headers, company):
    resp = client.put(f"/api/company/{company}", json={"location": "Pune", "plan": "enterprise"}, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.get_json()["company"]
    assert body["location"] == "Pune"
    assert body["plan"] == "starter"


def test_admin_sets_plan_and_trial(client, admin_headers, company):
    resp = client.put(f"/api/company/{company}", json={
        "plan": "pro", "isTrial": True, "trialEndDate": "2030-01-31",
    }, headers=admin_headers)
    body = resp.get_json()["company"]
    assert body["plan"] == "pro"
    assert body["isTrial"] is True
    assert body["trialEndDate"] == "2030-01-31"


def test_auditor_cannot_edit(client, auditor_headers, company):
    assert client.get(f"/api/company/{company}", headers=auditor_headers).status_code == 200
    resp = client.put(f"/api/company/{company}", json={"name": "Renamed"}, headers=auditor_headers)
    assert resp.status_code == 403


def test_delete_is_admin_only(client, auth_headers, admin_headers, company, submit):
    submit("environment", company, "2026-Q1", electricityKwh=1)
    assert client.delete(f"/api/company/{company}", headers=auth_headers).status_code == 403
    assert client.delete(f"/api/company/{company}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/company/{company}", headers=admin_headers).status_code == 404


def test_delete_removes_stored_evidence_files(client, admin_headers, auth_headers, company, tmp_path):
    resp = client.post(
        f"/api/evidence/upload/{company}",
        data={"evidenceType": "Electricity bill", "esgArea": "Environmental",
              "file": (io.BytesIO(b"%PDF-1.4 bill"), "bill.pdf")},
        headers=auth_headers, content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    upload_dir = tmp_path / "evidence"
    assert len(list(upload_dir.iterdir())) == 1

    assert client.delete(f"/api/company/{company}", headers=admin_headers).status_code == 200
    assert list(upload_dir.iterdir()) == []


@pytest.mark.parametrize("payload,message", [
    ({"employeeCount": 12.7}, "whole number"),
    ({"annualRevenue": "nan"}, "finite"),
    ({"reportingYear": True}, "must be a number"),
    ({"employeeCount": -3}, "cannot be negative"),
])
def test_profile_numbers_are_validated(client, auth_headers, company, payload, message):
    resp = client.put(f"/api/company/{company}", json=payload, headers=auth_headers)
    assert resp.status_code == 400
    assert message in resp.get_json()["error"]


def test_profile_number_accepts_whole_float_and_clears(client, auth_headers, company):
    body = client.put(f"/api/company/{company}", json={"employeeCount": 40.0, "annualRevenue": "1250.5"},
                      headers=auth_headers).get_json()["company"]
    assert body["employeeCount"] == 40
    assert body["annualRevenue"] == 1250.5
    body = client.put(f"/api/company/{company}", json={"employeeCount": None},
                      headers=auth_headers).get_json()["company"]
    assert body["employeeCount"] is None


@pytest.mark.parametrize("payload", [
    {"featureOverrides": ["advancedAnalytics"]},
    {"featureOverrides": {"advancedAnalytics": "yes"}},
    {"customFeatures": "advancedAnalytics"},
])
def test_feature_fields_must_be_well_typed(client, admin_headers, company, payload):
    resp = client.put(f"/api/company/{company}", json=payload, headers=admin_headers)
    assert resp.status_code == 400
