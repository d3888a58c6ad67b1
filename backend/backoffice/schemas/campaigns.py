from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator


class CampaignCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: str = ""
    description: str | None = None
    status: str | None = None
    is_draft: bool = False
    start_date: date | None = None
    end_date: date | None = None
    budget: float = Field(default=0, ge=0)
    target_audience: str | None = None
    channels: list[str] = []
    customer_group_ids: list[int] = []
    offer_ids: list[int] = []
    script_ids: list[int] = []

    @field_validator("channels", mode="before")
    @classmethod
    def split_channel_string(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @model_validator(mode="after")
    def check_schedule(self) -> "CampaignCreateRequest":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be earlier than start_date")
        return self


class CampaignUpdateRequest(CampaignCreateRequest):
    status: str = Field(min_length=1)


class CampaignOut(BaseModel):
    id: int
    name: str
    type: str
    description: str | None
    status: str
    start_date: date | None
    end_date: date | None
    budget: float
    spent: float
    impressions: int
    clicks: int
    conversions: int
    target_audience: str | None
    channels: list[str] = Field(validation_alias="channel_list")
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}


class ApprovalSubmitRequest(BaseModel):
    campaign_id: int
    requester_id: int
    approver_id: int
    request_message: str | None = None


class ApprovalResolveRequest(BaseModel):
    status: str
    response_message: str | None = None
    approval_comment: str | None = None
    approver_id: int | None = None
    approver_email: str | None = None

    @field_validator("status")
    @classmethod
    def normalize_decision(cls, value: str) -> str:
        decision = value.strip().lower()
        if decision not in {"approved", "rejected"}:
            raise ValueError("status must be 'approved' or 'rejected'")
        return decision

    @property
    def message(self) -> str | None:
        return self.response_message if self.response_message is not None else self.approval_comment


class PendingResolveRequest(ApprovalResolveRequest):
    id: int
