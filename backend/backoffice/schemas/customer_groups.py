import json
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class CustomerGroupCreateRequest(BaseModel):
    group_name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    customer_count: int = Field(default=0, ge=0)
    filter_criteria: dict[str, Any] = {}
    created_dept: str | None = Field(default="마케팅팀", max_length=100)
    created_emp_no: str | None = Field(default=None, max_length=50)

    @field_validator("filter_criteria", mode="before")
    @classmethod
    def parse_criteria(cls, value: object) -> object:
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value if value is not None else {}


class CustomerGroupUpdateRequest(CustomerGroupCreateRequest):
    pass


class CustomerGroupStatusRequest(BaseModel):
    status: Literal["active", "inactive"]

    @field_validator("status", mode="before")
    @classmethod
    def lower_status(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


class CustomerGroupOut(BaseModel):
    id: int
    group_name: str
    description: str | None
    customer_count: int
    use_yn: str
    status: str
    created_dept: str | None
    created_emp_no: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
