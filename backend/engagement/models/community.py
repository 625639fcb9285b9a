"""Community 포럼 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from engagement.database import Base
from engagement.utils.helpers import utcnow
from engagement.utils.ids import new_id


class CommunityCategory(Base):
    __tablename__ = "community_categories"

    category_id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(Text)
    post_count = Column(Integer, nullable=False, default=0)  # active 게시글 수
    status = Column(String(20), nullable=False, default="active")  # active/inactive
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    posts = relationship("CommunityPost", back_populates="category")


class CommunityPost(Base):
    __tablename__ = "community_posts"

    post_id = Column(String(36), primary_key=True, default=new_id)
    category_id = Column(
        String(36), ForeignKey("community_categories.category_id", ondelete="RESTRICT"), nullable=False
    )
    author_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    author_name = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    view_count = Column(Integer, nullable=False, default=0)
    like_count = Column(Integer, nullable=False, default=0)
    reply_count = Column(Integer, nullable=False, default=0)  # active 답글 수
    is_pinned = Column(Boolean, nullable=False, default=False)
    is_locked = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="active")  # active/hidden/deleted
    last_reply_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    category = relationship("CommunityCategory", back_populates="posts")
    replies = relationship("CommunityReply", back_populates="post", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_community_post_category", "category_id", "status"),
        Index("idx_community_post_author", "author_id"),
    )


class CommunityReply(Base):
    __tablename__ = "community_replies"

    reply_id = Column(String(36), primary_key=True, default=new_id)
    post_id = Column(String(36), ForeignKey("community_posts.post_id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(String(36), ForeignKey("community_replies.reply_id", ondelete="CASCADE"))
    author_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    author_name = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)
    like_count = Column(Integer, nullable=False, default=0)
    is_author = Column(Boolean, nullable=False, default=False)  # 게시글 작성자의 답글
    status = Column(String(20), nullable=False, default="active")  # active/hidden/deleted
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    post = relationship("CommunityPost", back_populates="replies")

    __table_args__ = (
        Index("idx_community_reply_post", "post_id", "parent_id", "status"),
    )
