"""Blog 기능 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from engagement.database import get_db
from engagement.schemas.blog import BlogPostCreate, BlogPostOut, BlogPostPage, BlogPostStatusUpdate
from engagement.services import blog_service
from engagement.middleware.auth_middleware import get_current_user, get_optional_user
from engagement.models.user import User

router = APIRouter(prefix="/api/blog", tags=["blog"])


@router.get("/posts", response_model=BlogPostPage)
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    category: Optional[str] = Query(None, max_length=50),
    sort: str = Query("latest"),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return blog_service.list_posts(
        db, current_user, page=page, limit=limit, status=status, category=category, sort=sort
    )


@router.post("/posts", response_model=BlogPostOut)
def create_post(
    data: BlogPostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return blog_service.create_post(db, data, current_user)


@router.get("/posts/trending", response_model=List[BlogPostOut])
def trending_posts(
    limit: int = Query(10, ge=1, le=50),
    days: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_db),
):
    return blog_service.get_trending_posts(db, limit=limit, days=days)


@router.get("/posts/{post_id}", response_model=BlogPostOut)
def get_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    blog_service.get_post(db, post_id, current_user)
    blog_service.increment_view(db, post_id)
    return blog_service.get_post(db, post_id, current_user)


@router.patch("/posts/{post_id}/status", response_model=BlogPostOut)
def update_post_status(
    post_id: str,
    data: BlogPostStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return blog_service.update_post_status(db, post_id, data.status, current_user)


@router.delete("/posts/{post_id}")
def delete_post(post_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    blog_service.delete_post(db, post_id, current_user)
    return {"message": "삭제되었습니다."}
