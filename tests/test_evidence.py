import io
from datetime import date, timedelta


def _upload(client, headers, company_id, filename="bill.pdf", **form):
    data = {
        "evidenceType": "Electricity bill",
        "esgArea": "Environmental",
        **form,
        "file": (io.BytesIO(b"%PDF-1.4 test"), filename),
    }
    return client.post(
        f"/api/evidence/upload/{company_id}", data=data,
        headers=headers, content_type="multipart/form-data",
    )


def test_upload_and_dashboard(client, auth_headers, company):
    soon = (date.today() + timedelta(days=10)).isoformat()
    past = (date.today() - timedelta(days=1)).isoformat()

    resp = _upload(client, auth_headers, company, linkedTo="ENV-01", expiryDate=soon)
    assert resp.status_code == 201
    assert resp.get_json()["evidence"]["status"] == "Linked"
    assert _upload(client, auth_headers, company).get_json()["evidence"]["status"] == "Pending"
    expired = _upload(client, auth_headers, company, linkedTo="ENV-03", expiryDate=past).get_json()["evidence"]
    assert expired["status"] == "Missing"

    body = client.get(f"/api/evidence/dashboard/{company}", headers=auth_headers).get_json()
    assert body["statistics"] == {
        "totalDocuments": 3,
        "linkedDocuments": 1,
        "pendingEvidence": 1,
        "expiringSoon": 1,
    }
    assert len(body["evidenceTable"]) == 3


def test_upload_validation(client, auth_headers, company):
    assert _upload(client, auth_headers, company, filename="script.exe").status_code == 400
    assert _upload(client, auth_headers, company, esgArea="Economic").status_code == 400
    assert _upload(client, auth_headers, company, expiryDate="next week").status_code == 400
    resp = client.post(f"/api/evidence/upload/{company}", data={"evidenceType": "x"},
                       headers=auth_headers, content_type="multipart/form-data")
    assert resp.status_code == 400


def test_link_download_delete(client, auth_headers, other_headers, company):
    evidence = _upload(client, auth_headers, company).get_json()["evidence"]

    assert client.put(f"/api/evidence/{evidence['_id']}/link", json={}, headers=auth_headers).status_code == 400
    resp = client.put(f"/api/evidence/{evidence['_id']}/link", json={"linkedTo": "ENV-02"}, headers=auth_headers)
    assert resp.get_json()["evidence"]["status"] == "Linked"

    resp = client.get(f"/api/evidence/{evidence['_id']}/download", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.data.startswith(b"%PDF")

    assert client.delete(f"/api/evidence/{evidence['_id']}", headers=other_headers).status_code == 403
    assert client.delete(f"/api/evidence/{evidence['_id']}", headers=auth_headers).status_code == 200
    assert client.delete(f"/api/evidence/{evidence['_id']}", headers=auth_headers).status_code == 404


def test_expired_evidence_creates_high_priority_task(client, auth_headers, company):
    past = (date.today() - timedelta(days=3)).isoformat()
    evidence = _upload(client, auth_headers, company, linkedTo="ENV-01", expiryDate=past).get_json()["evidence"]

    board = client.get(f"/api/tasks/dashboard/{company}", headers=auth_headers).get_json()
    task = next(t for t in board["taskTable"] if t["key"] == f"EVD-{evidence['_id']}")
    assert task["priority"] == "High"
    assert task["relatedTo"] == "Evidence"
