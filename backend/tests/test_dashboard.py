from datetime import UTC, date, datetime, timedelta

from sqlalchemy.exc import OperationalError

from backoffice.models.campaign import Campaign
from backoffice.models.channel import Channel
from backoffice.models.notice import Notice
from backoffice.services import dashboard_service


def _seed_campaigns(client, headers) -> None:
    for name, status, budget in (("A", "RUNNING", 1000), ("B", "RUNNING", 500), ("C", "COMPLETED", 500), ("D", None, 0)):
        body = {"name": name, "budget": budget}
        if status:
            body["status"] = status
        assert client.post("/api/v1/campaigns", json=body, headers=headers).status_code == 200


def test_dashboard_sections(client, db_session, auth_headers):
    headers = auth_headers()
    _seed_campaigns(client, headers)
    today = datetime.now(UTC).date()
    db_session.add_all(
        [
            Notice(title="Live", content="c", status="published", created_by="seed"),
            Notice(title="Draft", content="c", status="draft", created_by="seed"),
            Notice(title="Over", content="c", status="published", end_date=today - timedelta(days=1), created_by="seed"),
        ]
    )
    db_session.commit()

    response = client.get("/api/v1/dashboard", headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]

    summary = data["campaignSummary"]
    assert summary["degraded"] is False
    assert summary["total"] == 4
    assert summary["running"] == 2
    assert summary["completed"] == 1
    assert summary["byStatus"]["PLANNING"] == 1
    assert summary["statusLabels"]["RUNNING"] == "실행 중"
    assert summary["budgetTotal"] == 2000.0

    assert [item["name"] for item in data["recentCampaigns"]["items"]] == ["D", "C", "B", "A"]
    assert data["recentHistory"]["statistics"]["totalHistory"] == 4
    assert data["pendingApprovals"] == {"items": [], "total": 0, "degraded": False}
    assert [item["title"] for item in data["notices"]["items"]] == ["Live"]


def test_dashboard_degrades_single_section(client, auth_headers, monkeypatch):
    def unavailable(db):
        raise OperationalError("SELECT status FROM campaigns", {}, Exception("connection lost"))

    monkeypatch.setattr(dashboard_service, "campaign_summary", unavailable)
    response = client.get("/api/v1/dashboard", headers=auth_headers())
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["campaignSummary"]["degraded"] is True
    assert data["campaignSummary"]["total"] == 0
    assert data["recentCampaigns"]["degraded"] is False


def test_dashboard_requires_session(client):
    assert client.get("/api/v1/dashboard").status_code == 401


def test_channel_analytics(client, db_session, auth_headers):
    headers = auth_headers()
    db_session.add_all(
        [
            Channel(name="SMS", type="sms", config_json="{}", total_sent=200, total_success=180, cost_per_message=10, created_by="seed"),
            Channel(name="Mail", type="email", config_json="{}", total_sent=0, total_success=0, created_by="seed"),
        ]
    )
    db_session.commit()
    client.post("/api/v1/campaigns", json={"name": "Texting", "channels": ["sms"], "status": "RUNNING"}, headers=headers)

    data = client.get("/api/v1/analytics/channels", headers=headers).json()["data"]
    by_type = {item["type"]: item for item in data["items"]}
    assert by_type["sms"]["success_rate"] == 90.0
    assert by_type["sms"]["cost"] == 2000.0
    assert by_type["sms"]["active_campaigns"] == 1
    assert by_type["email"]["success_rate"] == 0.0
    assert data["summary"] == {
        "channels": 2,
        "totalSent": 200,
        "totalSuccess": 180,
        "successRate": 90.0,
        "totalCost": 2000.0,
    }

    only_sms = dashboard_service.channel_analytics(db_session, channel_type="sms")
    assert [item["name"] for item in only_sms["items"]] == ["SMS"]


def test_period_analytics_buckets(db_session):
    monthly = dashboard_service.period_analytics(db_session, period="monthly", today=date(2026, 3, 15))
    assert len(monthly["items"]) == 12
    assert monthly["items"][0]["label"] == "2025-04"
    assert monthly["items"][-1]["label"] == "2026-03"

    weekly = dashboard_service.period_analytics(db_session, period="weekly", today=date(2026, 10, 21))
    assert len(weekly["items"]) == 12
    assert weekly["items"][-1]["period_start"] == "2026-10-19"

    daily = dashboard_service.period_analytics(db_session, period="daily", today=date(2026, 10, 19))
    assert len(daily["items"]) == 14
    assert daily["items"][0]["period_start"] == "2026-10-06"


def test_period_analytics_counts_recent_campaigns(client, auth_headers):
    headers = auth_headers()
    _seed_campaigns(client, headers)
    data = client.get("/api/v1/analytics/periods", params={"period": "monthly"}, headers=headers).json()["data"]
    assert data["period"] == "monthly"
    assert data["items"][-1]["campaigns"] == 4
    assert data["items"][-1]["budget"] == 2000.0
    assert data["items"][-1]["ctr"] == 0.0


def test_offer_analytics_sums_linked_campaigns(client, db_session, auth_headers):
    headers = auth_headers()
    discount = client.post("/api/v1/offers", json={"name": "10% off", "type": "discount", "value": 10}, headers=headers).json()["data"]
    unused = client.post("/api/v1/offers", json={"name": "Gift", "type": "gift", "value": 0}, headers=headers).json()["data"]
    recent = client.post(
        "/api/v1/campaigns",
        json={"name": "Recent", "status": "RUNNING", "budget": 1000, "offer_ids": [discount["id"]]},
        headers=headers,
    ).json()["data"]
    old = client.post(
        "/api/v1/campaigns",
        json={"name": "Old", "status": "COMPLETED", "budget": 500, "offer_ids": [discount["id"]]},
        headers=headers,
    ).json()["data"]

    recent_row = db_session.get(Campaign, recent["id"])
    recent_row.spent, recent_row.clicks, recent_row.conversions = 300, 200, 10
    old_row = db_session.get(Campaign, old["id"])
    old_row.spent, old_row.clicks, old_row.conversions = 200, 50, 10
    old_row.created_at = datetime.now(UTC) - timedelta(days=120)
    db_session.commit()

    response = client.get("/api/v1/analytics/offers", headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["period"] == "all"
    assert data["degraded"] is False
    by_id = {item["offer_id"]: item for item in data["items"]}
    assert by_id[discount["id"]]["campaigns"] == 2
    assert by_id[discount["id"]]["active_campaigns"] == 1
    assert by_id[discount["id"]]["budget"] == 1500.0
    assert by_id[discount["id"]]["conversion_rate"] == 8.0
    assert by_id[discount["id"]]["cost_per_conversion"] == 25.0
    assert by_id[unused["id"]]["campaigns"] == 0
    assert data["summary"]["offers"] == 2
    assert data["summary"]["usedOffers"] == 1
    assert data["summary"]["totalConversions"] == 20

    last30 = client.get("/api/v1/analytics/offers", params={"period": "last30days"}, headers=headers).json()["data"]
    windowed = {item["offer_id"]: item for item in last30["items"]}[discount["id"]]
    assert windowed["campaigns"] == 1
    assert windowed["spent"] == 300.0
    assert windowed["conversion_rate"] == 5.0

    six_months = dashboard_service.offer_analytics(db_session, period="last6months")
    assert {item["offer_id"]: item for item in six_months["items"]}[discount["id"]]["campaigns"] == 2


def test_offer_analytics_windows():
    today = date(2026, 5, 31)
    assert dashboard_service.offer_window_start("all", today) is None
    assert dashboard_service.offer_window_start("last30days", today) == date(2026, 5, 1)
    assert dashboard_service.offer_window_start("last3months", today) == date(2026, 2, 28)
    assert dashboard_service.offer_window_start("last6months", today) == date(2025, 11, 30)


def test_offer_analytics_rejects_unknown_period(client, auth_headers):
    response = client.get("/api/v1/analytics/offers", params={"period": "forever"}, headers=auth_headers())
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_offer_analytics_degrades_on_database_error(db_session, monkeypatch):
    def broken_rows(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("offers table locked"))

    monkeypatch.setattr(dashboard_service, "_offer_rows", broken_rows)
    data = dashboard_service.offer_analytics(db_session, period="last3months")
    assert data["degraded"] is True
    assert data["items"] == []
    assert data["period"] == "last3months"
