"""User 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from engagement.database import Base
from engagement.utils.ids import new_id


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=new_id)
    login_id = Column(String(50), unique=True, nullable=False)
    name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default="user")  # admin/user
    email = Column(String(100))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    blog_posts = relationship("BlogPost", back_populates="author")
    chat_sessions = relationship("ChatSession", back_populates="user", cascade="all, delete-orphan")
