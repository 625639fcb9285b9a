"""Comment/Reply 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from engagement.database import Base
from engagement.utils.helpers import utcnow
from engagement.utils.ids import new_id


class Comment(Base):
    __tablename__ = "comments"

    comment_id = Column(String(36), primary_key=True, default=new_id)
    post_id = Column(String(36), ForeignKey("blog_posts.post_id", ondelete="CASCADE"), nullable=False)
    author_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    author_name = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)
    like_count = Column(Integer, nullable=False, default=0)
    reply_count = Column(Integer, nullable=False, default=0)
    is_top = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="active")  # active/hidden/deleted
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    post = relationship("BlogPost", back_populates="comments")
    replies = relationship(
        "CommentReply",
        back_populates="comment",
        cascade="all, delete-orphan",
        order_by="CommentReply.created_at",
    )

    __table_args__ = (
        Index("idx_comment_post", "post_id", "status"),
        Index("idx_comment_author", "author_id"),
    )


class CommentReply(Base):
    __tablename__ = "comment_replies"

    reply_id = Column(String(36), primary_key=True, default=new_id)
    comment_id = Column(String(36), ForeignKey("comments.comment_id", ondelete="CASCADE"), nullable=False)
    author_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    author_name = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)
    like_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")  # active/hidden/deleted
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    comment = relationship("Comment", back_populates="replies")

    __table_args__ = (
        Index("idx_reply_comment", "comment_id", "status"),
    )
