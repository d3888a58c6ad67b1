from backoffice.models.customer_group import CustomerGroup


def _create_group(client, headers, **overrides) -> dict:
    body = {"group_name": "VIP 고객", "customer_count": 120, "filter_criteria": '{"tier": "gold"}'}
    body.update(overrides)
    res = client.post("/api/v1/customer-groups", json=body, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()["data"]


def _link_campaign(client, headers, group_id: int, status: str = "RUNNING") -> dict:
    res = client.post(
        "/api/v1/campaigns",
        json={"name": "Uses group", "status": status, "customer_group_ids": [group_id]},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    return res.json()["data"]


def test_create_group_parses_criteria_and_defaults(client, auth_headers):
    data = _create_group(client, auth_headers())
    assert data["filter_criteria"] == {"tier": "gold"}
    assert data["use_yn"] == "Y"
    assert data["status"] == "active"
    assert data["status_label"] == "활성"
    assert data["created_dept"] == "마케팅팀"
    assert data["created_emp_no"] == "planner@example.com"


def test_list_groups_with_statistics(client, auth_headers):
    headers = auth_headers()
    _create_group(client, headers, group_name="A", customer_count=10)
    second = _create_group(client, headers, group_name="B", customer_count=5)
    client.patch(f"/api/v1/customer-groups/{second['id']}/status", json={"status": "inactive"}, headers=headers)

    data = client.get("/api/v1/customer-groups", headers=headers).json()["data"]
    assert data["statistics"] == {"totalGroups": 2, "activeGroups": 1, "totalCustomerCount": 15}

    filtered = client.get("/api/v1/customer-groups", params={"status": "inactive"}, headers=headers).json()["data"]
    assert [item["group_name"] for item in filtered["items"]] == ["B"]

    searched = client.get("/api/v1/customer-groups", params={"search": " b "}, headers=headers).json()["data"]
    assert searched["pagination"]["total"] == 1


def test_update_group(client, auth_headers):
    headers = auth_headers()
    group = _create_group(client, headers)
    res = client.put(
        f"/api/v1/customer-groups/{group['id']}",
        json={"group_name": "VVIP", "customer_count": 3, "filter_criteria": {"tier": "platinum"}},
        headers=headers,
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["group_name"] == "VVIP"
    assert data["filter_criteria"] == {"tier": "platinum"}


def test_status_change_is_idempotent(client, auth_headers):
    headers = auth_headers()
    group = _create_group(client, headers)
    same = client.patch(f"/api/v1/customer-groups/{group['id']}/status", json={"status": "ACTIVE"}, headers=headers)
    assert same.status_code == 200
    assert same.json()["message"] == "고객군이 이미 활성 상태입니다."

    changed = client.patch(f"/api/v1/customer-groups/{group['id']}/status", json={"status": "inactive"}, headers=headers)
    assert changed.json()["message"] == "고객군이 비활성 상태로 변경되었습니다."
    assert changed.json()["data"]["status"] == "inactive"


def test_deactivating_group_in_use_is_refused(client, auth_headers):
    headers = auth_headers()
    group = _create_group(client, headers)
    campaign = _link_campaign(client, headers, group["id"])

    res = client.patch(f"/api/v1/customer-groups/{group['id']}/status", json={"status": "inactive"}, headers=headers)
    assert res.status_code == 409
    body = res.json()
    assert body["code"] == "customer_group_in_use"
    assert body["details"]["activeCampaigns"] == [{"id": campaign["id"], "name": "Uses group", "status": "RUNNING"}]


def test_delete_is_soft_and_blocked_while_in_use(client, db_session, auth_headers):
    headers = auth_headers()
    group = _create_group(client, headers)
    campaign = _link_campaign(client, headers, group["id"])

    blocked = client.delete(f"/api/v1/customer-groups/{group['id']}", headers=headers)
    assert blocked.status_code == 409

    finished = client.put(
        f"/api/v1/campaigns/{campaign['id']}",
        json={"name": "Uses group", "status": "COMPLETED", "customer_group_ids": [group["id"]]},
        headers=headers,
    )
    assert finished.status_code == 200

    res = client.delete(f"/api/v1/customer-groups/{group['id']}", headers=headers)
    assert res.status_code == 200
    db_session.expire_all()
    row = db_session.get(CustomerGroup, group["id"])
    assert row.use_yn == "N"
    assert row.status == "inactive"

    assert client.get(f"/api/v1/customer-groups/{group['id']}", headers=headers).status_code == 404
    listing = client.get("/api/v1/customer-groups", headers=headers).json()["data"]
    assert listing["pagination"]["total"] == 0


def test_invalid_criteria_json_is_a_validation_error(client, auth_headers):
    res = client.post(
        "/api/v1/customer-groups",
        json={"group_name": "Broken", "filter_criteria": "{not json"},
        headers=auth_headers(),
    )
    assert res.status_code == 400
    assert res.json()["code"] == "validation_error"
