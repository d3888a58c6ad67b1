from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class NoticeCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    type: Literal["general", "system", "maintenance", "event", "urgent"] = "general"
    priority: Literal["low", "normal", "high", "urgent"] = "normal"
    status: Literal["draft", "published", "archived"] = "draft"
    target_audience: str = Field(default="all", max_length=50)
    start_date: date | None = None
    end_date: date | None = None
    is_popup: bool = False
    is_important: bool = False

    @model_validator(mode="after")
    def check_period(self) -> "NoticeCreateRequest":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be earlier than start_date")
        return self


class NoticeUpdateRequest(NoticeCreateRequest):
    pass


class NoticeOut(BaseModel):
    id: int
    title: str
    content: str
    type: str
    priority: str
    status: str
    target_audience: str
    start_date: date | None
    end_date: date | None
    is_popup: bool
    is_important: bool
    view_count: int
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
