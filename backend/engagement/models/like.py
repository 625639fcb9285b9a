"""좋아요 사실(LikeFact) 모델입니다. 행의 존재 자체가 '좋아요' 상태입니다."""

from sqlalchemy import Column, String, DateTime, Index, UniqueConstraint
from sqlalchemy.sql import func
from engagement.database import Base
from engagement.utils.ids import new_id


class LikeFact(Base):
    __tablename__ = "like_facts"

    like_id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False)
    target_id = Column(String(36), nullable=False)
    target_kind = Column(String(20), nullable=False)  # post/comment/reply/community_post/community_reply
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "target_id", "target_kind", name="uq_like_fact_user_target"),
        Index("idx_like_fact_target", "target_kind", "target_id"),
    )
