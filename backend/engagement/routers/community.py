"""Community 포럼 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from engagement.database import get_db
from engagement.schemas.community import (
    CategoryCreate,
    CategoryOut,
    CommunityPostCreate,
    CommunityPostFlagsUpdate,
    CommunityPostOut,
    CommunityPostPage,
    CommunityPostUpdate,
    CommunityReplyCreate,
    CommunityReplyOut,
    CommunityReplyPage,
    CommunityStatsOut,
    CommunityStatusUpdate,
    PostSort,
    ReplySort,
)
from engagement.schemas.like import LikeToggleOut
from engagement.services import community_service
from engagement.middleware.auth_middleware import get_current_user, get_optional_user, require_roles
from engagement.models.user import User
from engagement.utils.permissions import ADMIN

router = APIRouter(prefix="/api/community", tags=["community"])


@router.get("/categories", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return community_service.get_categories(db)


@router.post("/categories", response_model=CategoryOut)
def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_roles(ADMIN)),
):
    return community_service.create_category(db, data.name, data.description)


@router.get("/stats", response_model=CommunityStatsOut)
def community_stats(db: Session = Depends(get_db)):
    return community_service.get_stats(db)


@router.get("/posts", response_model=CommunityPostPage)
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    author_id: Optional[str] = Query(None),
    sort: PostSort = Query("latest"),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return community_service.list_posts(
        db, current_user, page=page, limit=limit, category_id=category_id,
        search=search, author_id=author_id, sort=sort,
    )


@router.post("/posts", response_model=CommunityPostOut)
def create_post(
    data: CommunityPostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return community_service.create_post(db, data, current_user)


@router.get("/posts/{post_id}", response_model=CommunityPostOut)
def get_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return community_service.get_post(db, post_id, current_user)


@router.put("/posts/{post_id}", response_model=CommunityPostOut)
def update_post(
    post_id: str,
    data: CommunityPostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return community_service.update_post(db, post_id, data, current_user)


@router.delete("/posts/{post_id}")
def delete_post(post_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    community_service.delete_post(db, post_id, current_user)
    return {"message": "삭제되었습니다."}


@router.patch("/posts/{post_id}/status", response_model=CommunityPostOut)
def update_post_status(
    post_id: str,
    data: CommunityStatusUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_roles(ADMIN)),
):
    return community_service.update_post_status(db, post_id, data.status)


@router.patch("/posts/{post_id}/flags", response_model=CommunityPostOut)
def update_post_flags(
    post_id: str,
    data: CommunityPostFlagsUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_roles(ADMIN)),
):
    return community_service.update_post_flags(db, post_id, is_pinned=data.is_pinned, is_locked=data.is_locked)


@router.get("/posts/{post_id}/replies", response_model=CommunityReplyPage)
def list_replies(
    post_id: str,
    parent_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort: ReplySort = Query("latest"),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return community_service.list_replies(
        db, post_id, current_user, parent_id=parent_id, page=page, limit=limit, sort=sort
    )


@router.post("/posts/{post_id}/replies", response_model=CommunityReplyOut)
def create_reply(
    post_id: str,
    data: CommunityReplyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return community_service.create_reply(db, post_id, current_user, data.content, parent_id=data.parent_id)


@router.delete("/replies/{reply_id}")
def delete_reply(reply_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    community_service.delete_reply(db, reply_id, current_user)
    return {"message": "삭제되었습니다."}


@router.patch("/replies/{reply_id}/status", response_model=CommunityReplyOut)
def update_reply_status(
    reply_id: str,
    data: CommunityStatusUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_roles(ADMIN)),
):
    return community_service.update_reply_status(db, reply_id, data.status)


@router.post("/posts/{post_id}/like", response_model=LikeToggleOut)
def like_post(post_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    result = community_service.toggle_like(db, current_user.user_id, community_service.POST_KIND, post_id)
    return LikeToggleOut(liked=result.liked, like_count=result.like_count)


@router.post("/replies/{reply_id}/like", response_model=LikeToggleOut)
def like_reply(reply_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    result = community_service.toggle_like(db, current_user.user_id, community_service.REPLY_KIND, reply_id)
    return LikeToggleOut(liked=result.liked, like_count=result.like_count)
