"""Blog 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime

PostStatus = Literal["draft", "published", "archived"]


class BlogPostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    summary: str = ""
    content: str = Field(min_length=1)
    category: Optional[str] = None
    status: PostStatus = "draft"


class BlogPostStatusUpdate(BaseModel):
    status: PostStatus


class BlogPostOut(BaseModel):
    post_id: str
    author_id: str
    title: str
    summary: str
    content: str
    category: Optional[str] = None
    status: str
    view_count: int
    like_count: int
    comment_count: int
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    liked: Optional[bool] = None

    model_config = {"from_attributes": True}


class BlogPostPage(BaseModel):
    posts: List[BlogPostOut]
    total: int
    page: int
    limit: int
    total_pages: int
