"""Comments 기능 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from engagement.database import get_db
from engagement.schemas.comment import (
    CommentCreate,
    CommentOut,
    CommentPage,
    CommentStatsOut,
    CommentTopUpdate,
    ReplyCreate,
    ReplyOut,
    ThreadStatusUpdate,
    UserCommentPage,
)
from engagement.services import comment_service
from engagement.middleware.auth_middleware import get_current_user, require_roles
from engagement.models.user import User
from engagement.utils.permissions import ADMIN

router = APIRouter(prefix="/api/comments", tags=["comments"])


@router.get("/stats/{post_id}", response_model=CommentStatsOut)
def comment_stats(post_id: str, db: Session = Depends(get_db)):
    return comment_service.get_comment_stats(db, post_id)


@router.get("/search/{post_id}", response_model=CommentPage)
def search_comments(
    post_id: str,
    keyword: str = Query(..., min_length=1, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return comment_service.search_comments(db, post_id, keyword, page=page, limit=limit)


@router.get("/user/{user_id}", response_model=UserCommentPage)
def user_comments(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
):
    return comment_service.get_user_comments(db, user_id, page=page, limit=limit)


@router.delete("/replies/{reply_id}")
def delete_reply(reply_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    comment_service.delete_reply(db, reply_id, current_user)
    return {"message": "삭제되었습니다."}


@router.patch("/replies/{reply_id}/status", response_model=ReplyOut)
def update_reply_status(
    reply_id: str,
    data: ThreadStatusUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_roles(ADMIN)),
):
    return comment_service.update_reply_status(db, reply_id, data.status)


@router.get("/{post_id}", response_model=CommentPage)
def list_comments(
    post_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort: str = Query("newest"),
    db: Session = Depends(get_db),
):
    return comment_service.get_comments(db, post_id, page=page, limit=limit, sort=sort)


@router.post("/{post_id}", response_model=CommentOut)
def create_comment(
    post_id: str,
    data: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return comment_service.create_comment(db, post_id, current_user, data.content)


@router.post("/{post_id}/{comment_id}", response_model=ReplyOut)
def create_reply(
    post_id: str,
    comment_id: str,
    data: ReplyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return comment_service.create_reply(db, comment_id, current_user, data.content, post_id=post_id)


@router.delete("/{comment_id}")
def delete_comment(comment_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    comment_service.delete_comment(db, comment_id, current_user)
    return {"message": "삭제되었습니다."}


@router.patch("/{comment_id}/top", response_model=CommentOut)
def update_top(
    comment_id: str,
    data: CommentTopUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_roles(ADMIN)),
):
    return comment_service.update_top(db, comment_id, data.is_top)


@router.patch("/{comment_id}/status", response_model=CommentOut)
def update_comment_status(
    comment_id: str,
    data: ThreadStatusUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_roles(ADMIN)),
):
    return comment_service.update_comment_status(db, comment_id, data.status)
