def _create_notice(client, headers, **overrides):
    body = {"title": "정기 점검 안내", "content": "새벽 2시부터 점검합니다.", "type": "maintenance", "status": "published"}
    body.update(overrides)
    return client.post("/api/v1/notices", json=body, headers=headers)


def test_only_admins_can_write_notices(client, auth_headers):
    res = _create_notice(client, auth_headers("planner@example.com"))
    assert res.status_code == 403
    assert res.json()["code"] == "admin_required"


def test_create_view_update_delete_notice(client, auth_headers):
    admin = auth_headers("approver@example.com")
    reader = auth_headers("planner@example.com")
    created = _create_notice(client, admin)
    assert created.status_code == 200
    notice = created.json()["data"]
    assert notice["type_label"] == "점검"
    assert notice["status_label"] == "게시"
    assert notice["view_count"] == 0
    assert notice["created_by"] == "approver@example.com"

    first = client.get(f"/api/v1/notices/{notice['id']}", headers=reader).json()["data"]
    second = client.get(f"/api/v1/notices/{notice['id']}", headers=reader).json()["data"]
    assert first["view_count"] == 1
    assert second["view_count"] == 2

    updated = client.put(
        f"/api/v1/notices/{notice['id']}",
        json={"title": "점검 연기", "content": "다음 주로 연기합니다.", "status": "archived"},
        headers=admin,
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["status"] == "archived"
    assert updated.json()["data"]["view_count"] == 2

    deleted = client.delete(f"/api/v1/notices/{notice['id']}", headers=admin)
    assert deleted.status_code == 200
    assert client.get(f"/api/v1/notices/{notice['id']}", headers=reader).status_code == 404


def test_list_pins_important_notices_first(client, auth_headers):
    admin = auth_headers("approver@example.com")
    _create_notice(client, admin, title="Pinned", is_important=True)
    _create_notice(client, admin, title="Newer", type="event")

    data = client.get("/api/v1/notices", headers=admin).json()["data"]
    assert [item["title"] for item in data["items"]] == ["Pinned", "Newer"]
    events = client.get("/api/v1/notices", params={"type": "event"}, headers=admin).json()["data"]
    assert events["pagination"]["total"] == 1


def test_notice_period_must_be_ordered(client, auth_headers):
    res = _create_notice(client, auth_headers("approver@example.com"), start_date="2026-10-10", end_date="2026-10-01")
    assert res.status_code == 400
    assert res.json()["code"] == "validation_error"
