from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.archope.models import Base

if TYPE_CHECKING:
    from app.archope.modules.students.models import Student


class StudentProgress(Base):
    __tablename__ = "student_progress"
    __table_args__ = (
        Index("idx_student_progress_student", "student_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), nullable=False)

    module_name: Mapped[str] = mapped_column(String(128), nullable=False)
    progress_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0-100
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    student: Mapped["Student"] = relationship("Student", back_populates="progress", lazy="selectin")
