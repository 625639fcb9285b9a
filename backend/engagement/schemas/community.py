"""Community 포럼 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime

ThreadStatus = Literal["active", "hidden", "deleted"]
PostSort = Literal["latest", "popular", "most_replies", "most_views"]
ReplySort = Literal["latest", "oldest", "popular"]


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = None


class CategoryOut(BaseModel):
    category_id: str
    name: str
    description: Optional[str] = None
    post_count: int
    status: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CommunityPostCreate(BaseModel):
    category_id: str
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)


class CommunityPostUpdate(BaseModel):
    category_id: Optional[str] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1)


class CommunityPostFlagsUpdate(BaseModel):
    is_pinned: Optional[bool] = None
    is_locked: Optional[bool] = None


class CommunityStatusUpdate(BaseModel):
    status: ThreadStatus


class CommunityPostOut(BaseModel):
    post_id: str
    category_id: str
    author_id: str
    author_name: str
    title: str
    content: str
    view_count: int
    like_count: int
    reply_count: int
    is_pinned: bool
    is_locked: bool
    status: str
    last_reply_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    liked: Optional[bool] = None

    model_config = {"from_attributes": True}


class CommunityPostPage(BaseModel):
    posts: List[CommunityPostOut]
    total: int
    page: int
    limit: int
    total_pages: int


class CommunityReplyCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    parent_id: Optional[str] = None


class CommunityReplyOut(BaseModel):
    reply_id: str
    post_id: str
    parent_id: Optional[str] = None
    author_id: str
    author_name: str
    content: str
    like_count: int
    is_author: bool
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    liked: Optional[bool] = None

    model_config = {"from_attributes": True}


class CommunityReplyPage(BaseModel):
    replies: List[CommunityReplyOut]
    total: int
    page: int
    limit: int
    total_pages: int


class CommunityStatsOut(BaseModel):
    total_posts: int
    total_replies: int
    total_authors: int
    active_authors: int
    top_categories: List[CategoryOut]
