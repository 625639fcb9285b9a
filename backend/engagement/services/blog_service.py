"""Blog Service 도메인 서비스 레이어입니다. 게시글 생명주기와 조회수 카운터, 루트 하드 삭제를 담당합니다."""

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import false
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from engagement.database import atomic
from engagement.models.blog import BlogPost
from engagement.models.comment import Comment, CommentReply
from engagement.models.user import User
from engagement.schemas.blog import BlogPostCreate
from engagement.services import like_service
from engagement.utils.exceptions import NotFoundError, OperationFailedError
from engagement.utils.helpers import utcnow
from engagement.utils.pagination import clamp_page, page_meta, page_offset
from engagement.utils.permissions import ensure_author_or_admin, is_admin

logger = logging.getLogger(__name__)

PUBLISHED = "published"

POST_SORTS = {
    "latest": (BlogPost.published_at.desc(), BlogPost.created_at.desc()),
    "views": (BlogPost.view_count.desc(), BlogPost.created_at.desc()),
    "likes": (BlogPost.like_count.desc(), BlogPost.created_at.desc()),
}


def _can_view(post: BlogPost, viewer: Optional[User]) -> bool:
    if post.status == PUBLISHED:
        return True
    if viewer is None:
        return False
    return post.author_id == viewer.user_id or is_admin(viewer)


def _mark_liked(db: Session, posts: List[BlogPost], viewer: Optional[User]) -> List[BlogPost]:
    liked = like_service.liked_target_ids(
        db, viewer.user_id if viewer else None, "post", [p.post_id for p in posts]
    )
    for post in posts:
        setattr(post, "liked", post.post_id in liked if viewer else None)
    return posts


def _get_post_row(db: Session, post_id: str) -> BlogPost:
    post = db.query(BlogPost).filter(BlogPost.post_id == post_id).first()
    if not post:
        raise NotFoundError("게시글을 찾을 수 없습니다.")
    return post


def create_post(db: Session, data: BlogPostCreate, author: User) -> BlogPost:
    now = utcnow()
    post = BlogPost(
        author_id=author.user_id,
        title=data.title,
        summary=data.summary or "",
        content=data.content,
        category=data.category,
        status=data.status,
        view_count=0,
        like_count=0,
        comment_count=0,
        published_at=now if data.status == PUBLISHED else None,
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    logger.info("[blog] created post_id=%s user_id=%s status=%s", post.post_id, author.user_id, post.status)
    return post


def get_post(db: Session, post_id: str, viewer: Optional[User] = None) -> BlogPost:
    post = _get_post_row(db, post_id)
    # 비공개 글은 존재 여부도 노출하지 않는다.
    if not _can_view(post, viewer):
        raise NotFoundError("게시글을 찾을 수 없습니다.")
    return _mark_liked(db, [post], viewer)[0]


def list_posts(
    db: Session,
    viewer: Optional[User] = None,
    page: int = 1,
    limit: int = 20,
    status: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "latest",
) -> dict:
    page, limit = clamp_page(page, limit)
    query = db.query(BlogPost)
    if status and status != PUBLISHED:
        if viewer is None:
            query = query.filter(false())
        elif not is_admin(viewer):
            query = query.filter(BlogPost.author_id == viewer.user_id)
        query = query.filter(BlogPost.status == status)
    else:
        query = query.filter(BlogPost.status == PUBLISHED)
    if category:
        query = query.filter(BlogPost.category == category)
    total = query.count()
    rows = (
        query.order_by(*POST_SORTS.get(sort, POST_SORTS["latest"]))
        .offset(page_offset(page, limit))
        .limit(limit)
        .all()
    )
    return {"posts": _mark_liked(db, rows, viewer), **page_meta(total, page, limit)}


def update_post_status(db: Session, post_id: str, status: str, actor: User) -> BlogPost:
    post = _get_post_row(db, post_id)
    ensure_author_or_admin(post.author_id, actor.user_id, actor.role, "본인 게시글 또는 관리자만 변경 가능합니다.")
    post.status = status
    if status == PUBLISHED and post.published_at is None:
        post.published_at = utcnow()
    db.commit()
    db.refresh(post)
    logger.info("[blog] status updated post_id=%s status=%s user_id=%s", post_id, status, actor.user_id)
    return post


def increment_view(db: Session, post_id: str) -> None:
    """조회수 +1. 실패해도 조회 자체는 막지 않는다."""
    try:
        with atomic(db):
            db.query(BlogPost).filter(BlogPost.post_id == post_id).update(
                {BlogPost.view_count: BlogPost.view_count + 1},
                synchronize_session=False,
            )
    except SQLAlchemyError as exc:
        logger.warning("[blog] view increment failed post_id=%s: %s", post_id, exc)


def delete_post(db: Session, post_id: str, actor: User) -> None:
    post = _get_post_row(db, post_id)
    ensure_author_or_admin(post.author_id, actor.user_id, actor.role, "본인 게시글 또는 관리자만 삭제 가능합니다.")
    try:
        with atomic(db):
            comment_ids = [
                row[0] for row in db.query(Comment.comment_id).filter(Comment.post_id == post_id).all()
            ]
            reply_ids = []
            if comment_ids:
                reply_ids = [
                    row[0]
                    for row in db.query(CommentReply.reply_id)
                    .filter(CommentReply.comment_id.in_(comment_ids))
                    .all()
                ]
            like_service.delete_facts_for_targets(db, "post", [post_id])
            like_service.delete_facts_for_targets(db, "comment", comment_ids)
            like_service.delete_facts_for_targets(db, "reply", reply_ids)
            if comment_ids:
                db.query(CommentReply).filter(CommentReply.comment_id.in_(comment_ids)).delete(
                    synchronize_session=False
                )
                db.query(Comment).filter(Comment.post_id == post_id).delete(synchronize_session=False)
            db.query(BlogPost).filter(BlogPost.post_id == post_id).delete(synchronize_session=False)
    except SQLAlchemyError as exc:
        logger.exception("[blog] delete failed post_id=%s user_id=%s", post_id, actor.user_id)
        raise OperationFailedError("게시글 삭제에 실패했습니다.") from exc
    logger.info(
        "[blog] deleted post_id=%s comments=%d replies=%d user_id=%s",
        post_id, len(comment_ids), len(reply_ids), actor.user_id,
    )


def get_trending_posts(db: Session, limit: int = 10, days: int = 7) -> List[BlogPost]:
    since = utcnow() - timedelta(days=max(1, int(days)))
    return (
        db.query(BlogPost)
        .filter(BlogPost.status == PUBLISHED, BlogPost.published_at >= since)
        .order_by(BlogPost.view_count.desc(), BlogPost.like_count.desc())
        .limit(max(1, min(int(limit), 50)))
        .all()
    )
