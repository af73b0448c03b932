from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.archope.constants import DEFAULT_BLOG_AUTHOR
from app.archope.models import Base


class BlogPost(Base):
    __tablename__ = "blog_posts"
    __table_args__ = (
        Index("idx_blog_posts_published", "published_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    featured_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    author_name: Mapped[str] = mapped_column(String(128), nullable=False, default=DEFAULT_BLOG_AUTHOR)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)  # null = draft

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    @property
    def is_published(self) -> bool:
        return self.published_at is not None
