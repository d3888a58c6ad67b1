from datetime import UTC, date, datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.base import Base


class CampaignStatus(StrEnum):
    DRAFT = "DRAFT"
    PLANNING = "PLANNING"
    DESIGN_COMPLETE = "DESIGN_COMPLETE"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EDITING = "EDITING"
    READY = "READY"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


CAMPAIGN_STATUS_VALUES = tuple(item.value for item in CampaignStatus)
_STATUS_CHECK_SQL = "status IN ({})".format(", ".join(f"'{value}'" for value in CAMPAIGN_STATUS_VALUES))


class Campaign(Base):
    __tablename__ = "campaigns"
    __table_args__ = (CheckConstraint(_STATUS_CHECK_SQL, name="ck_campaigns_status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default=CampaignStatus.PLANNING.value, index=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    budget: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    spent: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    conversions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target_audience: Mapped[str | None] = mapped_column(Text, nullable=True)
    channels: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(320), nullable=False, default="unknown")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC), index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    @property
    def channel_list(self) -> list[str]:
        if not self.channels:
            return []
        return [item.strip() for item in self.channels.split(",") if item.strip()]


class CampaignCustomerGroup(Base):
    __tablename__ = "campaign_customer_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_group_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("customer_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class CampaignOffer(Base):
    __tablename__ = "campaign_offers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    offer_id: Mapped[int] = mapped_column(Integer, ForeignKey("offers.id", ondelete="CASCADE"), nullable=False, index=True)


class CampaignScript(Base):
    __tablename__ = "campaign_scripts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    script_id: Mapped[int] = mapped_column(Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False, index=True)
