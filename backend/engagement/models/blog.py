"""Blog 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from engagement.database import Base
from engagement.utils.helpers import utcnow
from engagement.utils.ids import new_id


class BlogPost(Base):
    __tablename__ = "blog_posts"

    post_id = Column(String(36), primary_key=True, default=new_id)
    author_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    summary = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False)
    category = Column(String(50))
    status = Column(String(20), nullable=False, default="draft")  # draft/published/archived
    view_count = Column(Integer, nullable=False, default=0)
    like_count = Column(Integer, nullable=False, default=0)
    comment_count = Column(Integer, nullable=False, default=0)
    published_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    author = relationship("User", back_populates="blog_posts")
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_blog_post_status", "status", "published_at"),
        Index("idx_blog_post_author", "author_id"),
    )
