from backoffice.core.passwords import verify_password
from backoffice.models.password_reset import PasswordResetRequest
from backoffice.models.user import User
from backoffice.models.user_session import UserSession
from backoffice.services import auth_service


def _admin(auth_headers):
    return auth_headers("approver@example.com")


def test_admin_routes_require_admin_role(client, auth_headers):
    response = client.get("/api/v1/admin/users", headers=auth_headers("planner@example.com"))
    assert response.status_code == 403
    assert response.json()["code"] == "admin_required"


def test_list_and_filter_users(client, auth_headers):
    headers = _admin(auth_headers)
    data = client.get("/api/v1/admin/users", headers=headers).json()["data"]
    assert data["pagination"]["total"] == 3
    assert "password_hash" not in data["items"][0]

    admins = client.get("/api/v1/admin/users", params={"role": "admin"}, headers=headers).json()["data"]
    assert [item["email"] for item in admins["items"]] == ["approver@example.com"]
    searched = client.get("/api/v1/admin/users", params={"search": "Other"}, headers=headers).json()["data"]
    assert searched["pagination"]["total"] == 1


def test_create_user(client, db_session, auth_headers):
    response = client.post(
        "/api/v1/admin/users",
        json={"email": "New.Staff@Example.com", "password": "welcome1", "name": "New", "role": "admin"},
        headers=_admin(auth_headers),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "new.staff@example.com"
    assert data["role"] == "admin"
    user = db_session.query(User).filter(User.email == "new.staff@example.com").one()
    assert verify_password("welcome1", user.password_hash)

    duplicate = client.post(
        "/api/v1/admin/users",
        json={"email": "new.staff@example.com", "password": "welcome1", "name": "Again"},
        headers=_admin(auth_headers),
    )
    assert duplicate.status_code == 409


def test_deactivating_user_revokes_sessions(client, db_session, auth_headers):
    planner_headers = auth_headers("planner@example.com")
    assert db_session.query(UserSession).filter(UserSession.user_id == 1).count() == 1

    response = client.put("/api/v1/admin/users/1", json={"status": "inactive"}, headers=_admin(auth_headers))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "inactive"
    db_session.expire_all()
    assert db_session.query(UserSession).filter(UserSession.user_id == 1).count() == 0
    assert client.get("/api/v1/auth/me", headers=planner_headers).status_code == 401


def test_admin_cannot_demote_self(client, auth_headers):
    response = client.put("/api/v1/admin/users/2", json={"role": "user"}, headers=_admin(auth_headers))
    assert response.status_code == 400
    assert response.json()["code"] == "cannot_modify_self"

    renamed = client.put("/api/v1/admin/users/2", json={"name": "Boss"}, headers=_admin(auth_headers))
    assert renamed.status_code == 200
    assert renamed.json()["data"]["name"] == "Boss"


def test_update_unknown_user(client, auth_headers):
    response = client.put("/api/v1/admin/users/404", json={"name": "Ghost"}, headers=_admin(auth_headers))
    assert response.status_code == 404
    assert response.json()["code"] == "user_not_found"


def test_process_password_request(client, db_session, auth_headers):
    client.post("/api/v1/auth/request-password-reset", json={"email": "other@example.com", "reason": "잊어버림"})
    headers = _admin(auth_headers)

    listing = client.get("/api/v1/admin/password-requests", params={"status": "pending"}, headers=headers).json()["data"]
    assert listing["pagination"]["total"] == 1
    item = listing["items"][0]
    assert item["name"] == "Other"

    response = client.put(
        f"/api/v1/admin/password-requests/{item['id']}",
        json={"status": "rejected", "reason": "본인 확인 불가"},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "rejected"
    assert data["processed_by"] == "approver@example.com"
    assert data["reason"] == "본인 확인 불가"

    again = client.put(f"/api/v1/admin/password-requests/{item['id']}", json={"status": "completed"}, headers=headers)
    assert again.status_code == 409
    assert again.json()["code"] == "password_request_not_pending"


def test_admin_reset_password_completes_requests_and_revokes_sessions(client, db_session, auth_headers):
    client.post("/api/v1/auth/request-password-reset", json={"email": "other@example.com", "reason": "잊어버림"})
    other_headers = auth_headers("other@example.com")
    request_id = db_session.query(PasswordResetRequest).one().id

    response = client.post(
        "/api/v1/admin/reset-password",
        json={"request_id": request_id, "new_password": "fresh-pass"},
        headers=_admin(auth_headers),
    )
    assert response.status_code == 200
    assert response.json()["data"] == {"user_id": 3, "email": "other@example.com", "completed_requests": 1}

    db_session.expire_all()
    assert db_session.get(PasswordResetRequest, request_id).status == "completed"
    assert client.get("/api/v1/auth/me", headers=other_headers).status_code == 401
    login = client.post("/api/v1/auth/login", json={"email": "other@example.com", "password": "fresh-pass"})
    assert login.status_code == 200


def test_admin_reset_password_validation(client, auth_headers):
    headers = _admin(auth_headers)
    missing_target = client.post("/api/v1/admin/reset-password", json={"new_password": "fresh-pass"}, headers=headers)
    assert missing_target.status_code == 400
    assert missing_target.json()["code"] == "reset_target_required"

    too_short = client.post(
        "/api/v1/admin/reset-password",
        json={"email": "other@example.com", "new_password": "abc"},
        headers=headers,
    )
    assert too_short.status_code == 400
    assert too_short.json()["code"] == "password_too_short"

    unknown = client.post(
        "/api/v1/admin/reset-password",
        json={"email": "ghost@example.com", "new_password": "fresh-pass"},
        headers=headers,
    )
    assert unknown.status_code == 404


def test_system_logs_listing(client, auth_headers):
    headers = _admin(auth_headers)
    client.post("/api/v1/auth/login", json={"email": "planner@example.com", "password": "wrong"})
    client.post("/api/v1/campaigns", json={"name": "Logged"}, headers=headers)

    data = client.get("/api/v1/admin/logs", headers=headers).json()["data"]
    assert data["levelCounts"]["warn"] == 1
    assert data["levelCounts"]["info"] >= 1
    assert set(data["levelCounts"]) == {"debug", "info", "warn", "error"}

    warnings = client.get("/api/v1/admin/logs", params={"level": "warn"}, headers=headers).json()["data"]
    assert warnings["pagination"]["total"] == 1
    campaign_logs = client.get("/api/v1/admin/logs", params={"category": "campaign"}, headers=headers).json()["data"]
    assert [item["message"] for item in campaign_logs["items"]] == ["캠페인 생성"]


def test_seed_local_admin_is_idempotent(db_session):
    auth_service.seed_local_admin(db_session)
    auth_service.seed_local_admin(db_session)
    admins = db_session.query(User).filter(User.email == auth_service.LOCAL_ADMIN_EMAIL).all()
    assert len(admins) == 1
    assert admins[0].role == "admin"
    assert verify_password(auth_service.LOCAL_ADMIN_PASSWORD, admins[0].password_hash)
