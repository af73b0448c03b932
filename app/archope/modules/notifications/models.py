from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.archope.models import Base

if TYPE_CHECKING:
    from app.archope.modules.students.models import Student


class EmailNotification(Base):
    __tablename__ = "email_notifications"
    __table_args__ = (
        Index("idx_email_notifications_student", "student_id"),
        Index("idx_email_notifications_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int | None] = mapped_column(ForeignKey("students.id", ondelete="SET NULL"), nullable=True)

    email_type: Mapped[str] = mapped_column(String(32), nullable=False)  # welcome, approved, rejected
    recipient_email: Mapped[str] = mapped_column(String(320), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")  # pending, sent, failed
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider_message_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    student: Mapped["Student | None"] = relationship("Student", lazy="selectin")
