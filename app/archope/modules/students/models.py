from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.archope.models import Base

if TYPE_CHECKING:
    from app.archope.modules.progress.models import StudentProgress


class Student(Base):
    __tablename__ = "students"
    __table_args__ = (
        Index("idx_students_email", "email"),
        Index("idx_students_status", "status"),
        Index("idx_students_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str] = mapped_column(String(16), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    goal: Mapped[str] = mapped_column(Text, nullable=False)
    income: Mapped[str] = mapped_column(String(16), nullable=False)  # under_10m, 10_20m, over_20m
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")  # pending, approved, rejected

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    progress: Mapped[list["StudentProgress"]] = relationship(
        "StudentProgress",
        back_populates="student",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="StudentProgress.module_name",
    )
