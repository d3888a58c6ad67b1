from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class ScriptCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: Literal["sms", "email", "push", "kakao"]
    content: str = Field(min_length=1)
    variables: list[Any] | dict[str, Any] = []
    subject: str | None = Field(default=None, max_length=255)
    status: Literal["DRAFT", "ACTIVE", "INACTIVE"] = "DRAFT"
    description: str | None = None


class ScriptUpdateRequest(ScriptCreateRequest):
    approval_status: Literal["PENDING", "APPROVED", "REJECTED"] | None = None


class ScriptCopyRequest(BaseModel):
    new_name: str = Field(min_length=1, max_length=255)


class ScriptOut(BaseModel):
    id: int
    name: str
    type: str
    content: str
    subject: str | None
    status: str
    approval_status: str
    description: str | None
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
