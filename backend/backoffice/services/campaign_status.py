from collections.abc import Callable

from fastapi import HTTPException, status

from backoffice.models.campaign import CAMPAIGN_STATUS_VALUES, CampaignStatus


# Older screens send APPROVAL_PENDING; it is stored as PENDING_APPROVAL.
STATUS_ALIASES = {"APPROVAL_PENDING": CampaignStatus.PENDING_APPROVAL.value}

STATUS_LABELS: dict[str, str] = {
    "DRAFT": "임시저장",
    "PLANNING": "계획 단계",
    "DESIGN_COMPLETE": "설계 완료",
    "APPROVAL_PENDING": "승인 대기",
    "PENDING_APPROVAL": "승인 대기",
    "APPROVED": "승인 완료",
    "REJECTED": "반려",
    "EDITING": "수정 중",
    "READY": "실행 준비",
    "RUNNING": "실행 중",
    "PAUSED": "일시 정지",
    "COMPLETED": "완료",
    "CANCELLED": "취소",
}

ACTION_TYPES = ("created", "updated", "approved", "rejected", "started", "paused", "completed", "cancelled", "deleted")

ACTION_LABELS: dict[str, str] = {
    "created": "생성됨",
    "updated": "수정됨",
    "approved": "승인됨",
    "rejected": "거부됨",
    "started": "시작됨",
    "paused": "일시정지됨",
    "completed": "완료됨",
    "cancelled": "취소됨",
    "deleted": "삭제됨",
}

TYPE_LABELS: dict[str, str] = {
    "email": "이메일",
    "sms": "SMS",
    "push": "푸시",
    "kakao": "카카오톡",
    "mixed": "통합",
}

DELETABLE_STATUSES = frozenset({CampaignStatus.DRAFT, CampaignStatus.PLANNING, CampaignStatus.REJECTED})
SUBMITTABLE_STATUSES = frozenset(
    {
        CampaignStatus.DRAFT,
        CampaignStatus.PLANNING,
        CampaignStatus.DESIGN_COMPLETE,
        CampaignStatus.EDITING,
        CampaignStatus.REJECTED,
    }
)
# Campaigns in these states no longer hold on to groups, offers, scripts or channels.
TERMINAL_STATUSES = frozenset({CampaignStatus.COMPLETED, CampaignStatus.CANCELLED})

TransitionLabeler = Callable[[str | None, str], str]

_DESTINATION_ACTIONS = {
    CampaignStatus.APPROVED.value: "approved",
    CampaignStatus.REJECTED.value: "rejected",
    CampaignStatus.RUNNING.value: "started",
    CampaignStatus.PAUSED.value: "paused",
    CampaignStatus.COMPLETED.value: "completed",
    CampaignStatus.CANCELLED.value: "cancelled",
}


def label_by_destination(previous_status: str | None, new_status: str) -> str:
    """Derive the history action from the destination status alone."""
    return _DESTINATION_ACTIONS.get(new_status, "updated")


def normalize_status(value: str) -> str:
    candidate = value.strip().upper()
    candidate = STATUS_ALIASES.get(candidate, candidate)
    if candidate not in CAMPAIGN_STATUS_VALUES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": f"유효하지 않은 캠페인 상태입니다: {value}",
                "reason_code": "invalid_campaign_status",
                "allowed": list(CAMPAIGN_STATUS_VALUES),
            },
        )
    return candidate


def status_label(value: str | None) -> str | None:
    if value is None:
        return None
    return STATUS_LABELS.get(value, value)


def action_label(value: str) -> str:
    return ACTION_LABELS.get(value, value)


def type_label(value: str | None) -> str | None:
    if value is None:
        return None
    return TYPE_LABELS.get(value, value)
