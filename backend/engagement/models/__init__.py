"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from engagement.models.user import User
from engagement.models.blog import BlogPost
from engagement.models.comment import Comment, CommentReply
from engagement.models.community import CommunityCategory, CommunityPost, CommunityReply
from engagement.models.like import LikeFact
from engagement.models.chat import ChatSession, ChatMessage

__all__ = [
    "User",
    "BlogPost",
    "Comment", "CommentReply",
    "CommunityCategory", "CommunityPost", "CommunityReply",
    "LikeFact",
    "ChatSession", "ChatMessage",
]
