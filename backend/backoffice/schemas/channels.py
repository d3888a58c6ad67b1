from typing import Any, Literal

from pydantic import BaseModel, Field


class ChannelCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=20)
    description: str | None = None
    status: Literal["active", "inactive", "maintenance"] = "active"
    api_endpoint: str | None = Field(default=None, max_length=500)
    api_key: str | None = None
    api_secret: str | None = None
    config: dict[str, Any] = {}
    rate_limit: int = Field(default=1000, ge=0)
    cost_per_message: float = Field(default=0, ge=0)
    monthly_quota: int = Field(default=0, ge=0)


class ChannelUpdateRequest(ChannelCreateRequest):
    pass
