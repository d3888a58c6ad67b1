from backoffice.models.campaign import CampaignScript
from backoffice.models.script import Script


def _create_script(client, headers, **overrides) -> dict:
    body = {
        "name": "Welcome SMS",
        "type": "sms",
        "content": "안녕하세요 {{name}}님",
        "variables": ["name"],
        "status": "ACTIVE",
    }
    body.update(overrides)
    res = client.post("/api/v1/scripts", json=body, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()["data"]


def test_create_script_keeps_variables(client, auth_headers):
    data = _create_script(client, auth_headers())
    assert data["variables"] == ["name"]
    assert data["approval_status"] == "PENDING"
    assert data["status"] == "ACTIVE"


def test_script_names_are_unique(client, auth_headers):
    headers = auth_headers()
    _create_script(client, headers)
    res = client.post(
        "/api/v1/scripts",
        json={"name": "Welcome SMS", "type": "email", "content": "dup"},
        headers=headers,
    )
    assert res.status_code == 409
    assert res.json()["code"] == "script_name_exists"


def test_unsupported_script_type_is_rejected(client, auth_headers):
    res = client.post("/api/v1/scripts", json={"name": "Fax", "type": "fax", "content": "x"}, headers=auth_headers())
    assert res.status_code == 400


def test_update_script_and_approval_status(client, auth_headers):
    headers = auth_headers()
    created = _create_script(client, headers)
    res = client.put(
        f"/api/v1/scripts/{created['id']}",
        json={
            "name": "Welcome SMS",
            "type": "sms",
            "content": "반갑습니다 {{name}}님",
            "variables": {"name": "고객명"},
            "approval_status": "APPROVED",
        },
        headers=headers,
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["approval_status"] == "APPROVED"
    assert data["variables"] == {"name": "고객명"}
    assert data["status"] == "DRAFT"


def test_copy_script_creates_pending_draft(client, auth_headers):
    headers = auth_headers()
    created = _create_script(client, headers)
    res = client.post(f"/api/v1/scripts/{created['id']}/copy", json={"new_name": "Welcome SMS v2"}, headers=headers)
    assert res.status_code == 200
    copy = res.json()["data"]
    assert copy["id"] != created["id"]
    assert copy["status"] == "DRAFT"
    assert copy["approval_status"] == "PENDING"
    assert copy["content"] == created["content"]
    assert copy["variables"] == ["name"]

    again = client.post(f"/api/v1/scripts/{created['id']}/copy", json={"new_name": "Welcome SMS v2"}, headers=headers)
    assert again.status_code == 409


def test_list_scripts_filters(client, auth_headers):
    headers = auth_headers()
    _create_script(client, headers)
    _create_script(client, headers, name="Newsletter", type="email", content="monthly news", status="DRAFT")
    data = client.get("/api/v1/scripts", params={"status": "draft"}, headers=headers).json()["data"]
    assert [item["name"] for item in data["items"]] == ["Newsletter"]
    searched = client.get("/api/v1/scripts", params={"search": "monthly"}, headers=headers).json()["data"]
    assert searched["pagination"]["total"] == 1


def test_delete_script_guarded_by_active_campaigns(client, db_session, auth_headers):
    headers = auth_headers()
    script = _create_script(client, headers)
    campaign = client.post(
        "/api/v1/campaigns",
        json={"name": "With script", "script_ids": [script["id"]]},
        headers=headers,
    ).json()["data"]

    blocked = client.delete(f"/api/v1/scripts/{script['id']}", headers=headers)
    assert blocked.status_code == 409
    assert blocked.json()["code"] == "script_in_use"

    client.put(
        f"/api/v1/campaigns/{campaign['id']}",
        json={"name": "With script", "status": "COMPLETED", "script_ids": [script["id"]]},
        headers=headers,
    )
    res = client.delete(f"/api/v1/scripts/{script['id']}", headers=headers)
    assert res.status_code == 200
    assert res.json()["data"] == {"id": script["id"], "name": "Welcome SMS"}
    db_session.expire_all()
    assert db_session.get(Script, script["id"]) is None
    assert db_session.query(CampaignScript).count() == 0
