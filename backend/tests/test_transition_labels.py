import pytest
from fastapi import HTTPException

from backoffice.models.campaign_history import CampaignHistory
from backoffice.schemas.campaigns import CampaignUpdateRequest
from backoffice.services import campaign_service
from backoffice.services.campaign_status import label_by_destination, normalize_status


@pytest.mark.parametrize(
    ("previous", "new", "expected"),
    [
        ("PENDING_APPROVAL", "APPROVED", "approved"),
        ("PENDING_APPROVAL", "REJECTED", "rejected"),
        ("READY", "RUNNING", "started"),
        ("PAUSED", "RUNNING", "started"),
        ("RUNNING", "PAUSED", "paused"),
        ("RUNNING", "COMPLETED", "completed"),
        ("DRAFT", "CANCELLED", "cancelled"),
        ("DRAFT", "PLANNING", "updated"),
        (None, "EDITING", "updated"),
    ],
)
def test_label_depends_on_destination_only(previous, new, expected):
    assert label_by_destination(previous, new) == expected


def test_normalize_status_accepts_alias_and_case():
    assert normalize_status(" approval_pending ") == "PENDING_APPROVAL"
    assert normalize_status("running") == "RUNNING"


def test_normalize_status_rejects_unknown_values():
    with pytest.raises(HTTPException) as exc_info:
        normalize_status("ARCHIVED")
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail["reason_code"] == "invalid_campaign_status"
    assert "PENDING_APPROVAL" in exc_info.value.detail["allowed"]


def test_update_campaign_accepts_custom_labeler(client, db_session, auth_headers):
    created = client.post("/api/v1/campaigns", json={"name": "Labeled"}, headers=auth_headers()).json()["data"]
    seen = []

    def labeler(previous, new):
        seen.append((previous, new))
        return "paused" if previous == "PLANNING" else "updated"

    campaign_service.update_campaign(
        db_session,
        created["id"],
        CampaignUpdateRequest(name="Labeled", status="READY"),
        actor="planner@example.com",
        labeler=labeler,
    )
    assert seen == [("PLANNING", "READY")]
    latest = (
        db_session.query(CampaignHistory)
        .filter(CampaignHistory.campaign_id == created["id"])
        .order_by(CampaignHistory.id.desc())
        .first()
    )
    assert latest.action_type == "paused"
    assert latest.previous_status == "PLANNING"
    assert latest.new_status == "READY"
