from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.base import Base


class CustomerGroup(Base):
    __tablename__ = "customer_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    filter_criteria: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    use_yn: Mapped[str] = mapped_column(String(1), nullable=False, default="Y", index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    created_dept: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_emp_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )
