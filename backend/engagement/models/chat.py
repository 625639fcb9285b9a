"""Chat 세션/메시지 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from engagement.database import Base
from engagement.utils.helpers import load_json, utcnow
from engagement.utils.ids import new_id


class ChatSession(Base):
    __tablename__ = "chat_sessions"

    session_id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200))  # NULL 또는 기본 제목이면 자동 제목 생성 대상
    model = Column(String(100), nullable=False)
    context = Column(Text)
    message_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")  # active/archived
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    user = relationship("User", back_populates="chat_sessions")
    messages = relationship(
        "ChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ChatMessage.seq",
    )

    __table_args__ = (
        Index("idx_chat_session_user", "user_id", "status", "updated_at"),
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    message_id = Column(String(36), primary_key=True, default=new_id)
    session_id = Column(String(36), ForeignKey("chat_sessions.session_id", ondelete="CASCADE"), nullable=False)
    seq = Column(Integer, nullable=False)  # 세션 내 append 순서 (1부터)
    role = Column(String(20), nullable=False)  # user/assistant/system
    content = Column(Text, nullable=False)
    message_metadata = Column("metadata", Text)  # JSON
    created_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())

    session = relationship("ChatSession", back_populates="messages")

    __table_args__ = (
        UniqueConstraint("session_id", "seq", name="uq_chat_message_session_seq"),
    )

    @property
    def meta(self):
        return load_json(self.message_metadata)
