from backoffice.core.crypto import decrypt
from backoffice.core.config import get_settings
from backoffice.models.channel import Channel
from backoffice.services import channel_service


def _create_channel(client, headers, **overrides) -> dict:
    body = {
        "name": "Main SMS",
        "type": "sms",
        "api_endpoint": "https://sms.example.com/send",
        "api_key": "key-1234567890",
        "api_secret": "sec-abcdefgh",
        "config": {"sender": "1588-0000"},
        "monthly_quota": 1000,
        "cost_per_message": 8.5,
    }
    body.update(overrides)
    res = client.post("/api/v1/channels", json=body, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()["data"]


def test_mask_secret() -> None:
    assert channel_service.mask_secret(None) is None
    assert channel_service.mask_secret("abc") == "***"
    assert channel_service.mask_secret("abcdefgh") == "********efgh"


def test_credentials_are_encrypted_at_rest_and_masked(client, db_session, auth_headers):
    data = _create_channel(client, auth_headers())
    assert data["api_key"] == "********7890"
    assert data["api_secret"] == "********efgh"
    assert data["has_api_key"] is True
    assert data["type_label"] == "SMS"
    assert data["config"] == {"sender": "1588-0000"}
    assert data["rate_limit"] == 1000

    row = db_session.get(Channel, data["id"])
    assert row.api_key_encrypted != "key-1234567890"
    assert decrypt(row.api_key_encrypted, master_secret=get_settings().master_secret) == "key-1234567890"


def test_update_keeps_credentials_when_omitted(client, db_session, auth_headers):
    headers = auth_headers()
    created = _create_channel(client, headers)
    res = client.put(
        f"/api/v1/channels/{created['id']}",
        json={"name": "Main SMS", "type": "sms", "status": "maintenance"},
        headers=headers,
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["status_label"] == "점검중"
    assert data["api_key"] == "********7890"

    rotated = client.put(
        f"/api/v1/channels/{created['id']}",
        json={"name": "Main SMS", "type": "sms", "api_key": "new-key-9999"},
        headers=headers,
    ).json()["data"]
    assert rotated["api_key"] == "********9999"


def test_unreadable_credentials_serialize_as_missing(db_session):
    channel = Channel(name="Legacy", type="email", api_key_encrypted="00:zz", config_json="{}", created_by="seed")
    db_session.add(channel)
    db_session.commit()
    data = channel_service.serialize_channel(channel)
    assert data["api_key"] is None
    assert data["has_api_key"] is True


def test_usage_rates(db_session):
    channel = Channel(
        name="Push",
        type="push",
        config_json="{}",
        monthly_quota=200,
        current_usage=50,
        total_sent=10,
        total_success=9,
        created_by="seed",
    )
    db_session.add(channel)
    db_session.commit()
    data = channel_service.serialize_channel(channel)
    assert data["success_rate"] == 90.0
    assert data["quota_usage_percent"] == 25.0


def test_list_orders_active_first(client, auth_headers):
    headers = auth_headers()
    _create_channel(client, headers, name="Down", type="email", status="inactive")
    _create_channel(client, headers, name="Up", type="sms")
    _create_channel(client, headers, name="Fixing", type="kakao", status="maintenance")

    data = client.get("/api/v1/channels", headers=headers).json()["data"]
    assert [item["name"] for item in data["items"]] == ["Up", "Fixing", "Down"]
    filtered = client.get("/api/v1/channels", params={"type": "kakao"}, headers=headers).json()["data"]
    assert filtered["pagination"]["total"] == 1


def test_delete_channel_in_use_is_refused(client, db_session, auth_headers):
    headers = auth_headers()
    channel = _create_channel(client, headers)
    client.post("/api/v1/campaigns", json={"name": "Texting", "channels": "email,sms", "status": "RUNNING"}, headers=headers)

    blocked = client.delete(f"/api/v1/channels/{channel['id']}", headers=headers)
    assert blocked.status_code == 409
    assert blocked.json()["code"] == "channel_in_use"
    assert blocked.json()["details"]["activeCampaigns"][0]["name"] == "Texting"


def test_channel_match_uses_whole_entries(client, db_session, auth_headers):
    headers = auth_headers()
    channel = _create_channel(client, headers)
    client.post("/api/v1/campaigns", json={"name": "Long texts", "channels": ["lms_sms"], "status": "RUNNING"}, headers=headers)

    res = client.delete(f"/api/v1/channels/{channel['id']}", headers=headers)
    assert res.status_code == 200
    assert db_session.get(Channel, channel["id"]) is None


def test_missing_channel(client, auth_headers):
    res = client.get("/api/v1/channels/31337", headers=auth_headers())
    assert res.status_code == 404
    assert res.json()["code"] == "channel_not_found"
