"""Comment/Reply 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime

ThreadStatus = Literal["active", "hidden", "deleted"]


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class ReplyCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class CommentTopUpdate(BaseModel):
    is_top: bool


class ThreadStatusUpdate(BaseModel):
    status: ThreadStatus


class ReplyOut(BaseModel):
    reply_id: str
    comment_id: str
    author_id: str
    author_name: str
    content: str
    like_count: int
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CommentOut(BaseModel):
    comment_id: str
    post_id: str
    author_id: str
    author_name: str
    content: str
    like_count: int
    reply_count: int
    is_top: bool
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CommentWithRepliesOut(CommentOut):
    active_replies: List[ReplyOut] = []


class CommentPage(BaseModel):
    comments: List[CommentWithRepliesOut]
    total: int
    page: int
    limit: int
    total_pages: int


class UserCommentPage(BaseModel):
    comments: List[CommentOut]
    total: int
    page: int
    limit: int
    total_pages: int


class CommentStatsOut(BaseModel):
    total_comments: int
    active_comments: int
    hidden_comments: int
    deleted_comments: int
    total_replies: int
