from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class OfferCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=30)
    description: str | None = None
    value: float = Field(default=0, ge=0)
    value_type: Literal["percentage", "fixed", "point"] = "percentage"
    start_date: date | None = None
    end_date: date | None = None
    status: Literal["active", "inactive", "expired"] = "active"

    @model_validator(mode="after")
    def check_offer(self) -> "OfferCreateRequest":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be earlier than start_date")
        if self.value_type == "percentage" and self.value > 100:
            raise ValueError("percentage offers cannot exceed 100")
        return self


class OfferUpdateRequest(OfferCreateRequest):
    pass


class OfferOut(BaseModel):
    id: int
    name: str
    type: str
    description: str | None
    value: float
    value_type: str
    start_date: date | None
    end_date: date | None
    status: str
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
