from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.base import Base


class Channel(Base):
    __tablename__ = "channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    api_endpoint: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # Stored as "ivhex:cipherhex" produced by backoffice.core.crypto.
    api_key_encrypted: Mapped[str | None] = mapped_column("api_key", Text, nullable=True)
    api_secret_encrypted: Mapped[str | None] = mapped_column("api_secret", Text, nullable=True)
    config_json: Mapped[str] = mapped_column("config", Text, nullable=False, default="{}")
    rate_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost_per_message: Mapped[float] = mapped_column(Numeric(10, 4, asdecimal=False), nullable=False, default=0)
    monthly_quota: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_usage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_success: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[str] = mapped_column(String(320), nullable=False, default="unknown")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )
