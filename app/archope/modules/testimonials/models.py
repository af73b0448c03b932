from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.archope.models import Base


class Testimonial(Base):
    __tablename__ = "testimonials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    student_name: Mapped[str] = mapped_column(String(128), nullable=False)
    student_story: Mapped[str] = mapped_column(Text, nullable=False)
    old_job: Mapped[str | None] = mapped_column(String(255), nullable=True)
    new_job: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Free text, e.g. "5 million VND"
    old_salary: Mapped[str | None] = mapped_column(String(64), nullable=True)
    new_salary: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    year_graduated: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
