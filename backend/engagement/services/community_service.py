"""Community Service 도메인 서비스 레이어입니다.

카테고리 > 게시글 > 답글(중첩 가능) 구조의 포럼이다. 카테고리의 post_count는
active 게시글 수, 게시글의 reply_count는 active 답글 수와 같게 유지된다.
상태 전이는 댓글과 같은 규칙(counter_delta)과 compare-and-set을 쓴다.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from engagement.database import atomic
from engagement.models.community import CommunityCategory, CommunityPost, CommunityReply
from engagement.models.user import User
from engagement.schemas.community import CommunityPostCreate, CommunityPostUpdate
from engagement.services import like_service
from engagement.services.counter_service import shift_counter, transition_status
from engagement.utils.exceptions import ConflictError, InvalidStateError, NotFoundError, OperationFailedError
from engagement.utils.helpers import utcnow
from engagement.utils.pagination import clamp_page, page_meta, page_offset
from engagement.utils.permissions import ensure_author_or_admin
from engagement.utils.status_rules import ACTIVE, DELETED, counter_delta

logger = logging.getLogger(__name__)

CATEGORY_ACTIVE = "active"
POST_KIND = "community_post"
REPLY_KIND = "community_reply"
ACTIVE_AUTHOR_DAYS = 30

POST_SORTS = {
    "latest": (CommunityPost.is_pinned.desc(), CommunityPost.created_at.desc()),
    "popular": (CommunityPost.like_count.desc(), CommunityPost.reply_count.desc(), CommunityPost.created_at.desc()),
    "most_replies": (CommunityPost.reply_count.desc(), CommunityPost.created_at.desc()),
    "most_views": (CommunityPost.view_count.desc(), CommunityPost.created_at.desc()),
}

REPLY_SORTS = {
    "latest": (CommunityReply.created_at.desc(),),
    "oldest": (CommunityReply.created_at.asc(),),
    "popular": (CommunityReply.like_count.desc(), CommunityReply.created_at.desc()),
}


def _get_category(db: Session, category_id: str) -> CommunityCategory:
    category = (
        db.query(CommunityCategory)
        .filter(CommunityCategory.category_id == category_id, CommunityCategory.status == CATEGORY_ACTIVE)
        .first()
    )
    if not category:
        raise NotFoundError("카테고리를 찾을 수 없습니다.")
    return category


def _get_post_row(db: Session, post_id: str) -> CommunityPost:
    post = db.query(CommunityPost).filter(CommunityPost.post_id == post_id).first()
    if not post:
        raise NotFoundError("게시글을 찾을 수 없습니다.")
    return post


def _get_active_post(db: Session, post_id: str) -> CommunityPost:
    post = _get_post_row(db, post_id)
    if post.status != ACTIVE:
        raise NotFoundError("게시글을 찾을 수 없습니다.")
    return post


def _get_reply_row(db: Session, reply_id: str) -> CommunityReply:
    reply = db.query(CommunityReply).filter(CommunityReply.reply_id == reply_id).first()
    if not reply:
        raise NotFoundError("답글을 찾을 수 없습니다.")
    return reply


def _mark_liked(db: Session, rows: list, viewer: Optional[User], kind: str, id_attr: str) -> list:
    liked = like_service.liked_target_ids(
        db, viewer.user_id if viewer else None, kind, [getattr(r, id_attr) for r in rows]
    )
    for row in rows:
        setattr(row, "liked", getattr(row, id_attr) in liked if viewer else None)
    return rows


def _clear_likes(db: Session, model, id_column, kind: str, target_id: str) -> None:
    # 삭제된 대상에는 좋아요가 남지 않는다.
    like_service.delete_facts_for_targets(db, kind, [target_id])
    db.query(model).filter(id_column == target_id).update({model.like_count: 0}, synchronize_session=False)


# ==================== 카테고리 ====================


def get_categories(db: Session) -> List[CommunityCategory]:
    return (
        db.query(CommunityCategory)
        .filter(CommunityCategory.status == CATEGORY_ACTIVE)
        .order_by(CommunityCategory.post_count.desc(), CommunityCategory.name.asc())
        .all()
    )


def create_category(db: Session, name: str, description: Optional[str] = None) -> CommunityCategory:
    category = CommunityCategory(
        name=name.strip(),
        description=description,
        post_count=0,
        status=CATEGORY_ACTIVE,
    )
    try:
        with atomic(db):
            db.add(category)
    except IntegrityError as exc:
        logger.info("[community] duplicate category name=%s", name)
        raise ConflictError("이미 존재하는 카테고리 이름입니다.") from exc
    except SQLAlchemyError as exc:
        logger.exception("[community] category create failed name=%s", name)
        raise OperationFailedError("카테고리 생성에 실패했습니다.") from exc
    db.refresh(category)
    logger.info("[community] category created category_id=%s name=%s", category.category_id, category.name)
    return category


# ==================== 게시글 ====================


def list_posts(
    db: Session,
    viewer: Optional[User] = None,
    page: int = 1,
    limit: int = 20,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    author_id: Optional[str] = None,
    sort: str = "latest",
) -> dict:
    page, limit = clamp_page(page, limit)
    query = db.query(CommunityPost).filter(CommunityPost.status == ACTIVE)
    if category_id:
        query = query.filter(CommunityPost.category_id == category_id)
    if search and search.strip():
        like = f"%{search.strip()}%"
        query = query.filter(or_(CommunityPost.title.ilike(like), CommunityPost.content.ilike(like)))
    if author_id:
        query = query.filter(CommunityPost.author_id == author_id)
    total = query.count()
    rows = (
        query.order_by(*POST_SORTS.get(sort, POST_SORTS["latest"]))
        .offset(page_offset(page, limit))
        .limit(limit)
        .all()
    )
    return {"posts": _mark_liked(db, rows, viewer, POST_KIND, "post_id"), **page_meta(total, page, limit)}


def increment_view(db: Session, post_id: str) -> None:
    """조회수 +1. 실패해도 조회 자체는 막지 않는다."""
    try:
        with atomic(db):
            db.query(CommunityPost).filter(CommunityPost.post_id == post_id).update(
                {CommunityPost.view_count: CommunityPost.view_count + 1},
                synchronize_session=False,
            )
    except SQLAlchemyError as exc:
        logger.warning("[community] view increment failed post_id=%s: %s", post_id, exc)


def get_post(db: Session, post_id: str, viewer: Optional[User] = None) -> CommunityPost:
    post = _get_active_post(db, post_id)
    # 로그인한 사용자의 조회만 조회수에 반영한다.
    if viewer is not None:
        increment_view(db, post_id)
        db.refresh(post)
    return _mark_liked(db, [post], viewer, POST_KIND, "post_id")[0]


def create_post(db: Session, data: CommunityPostCreate, author: User) -> CommunityPost:
    try:
        with atomic(db):
            _get_category(db, data.category_id)
            post = CommunityPost(
                category_id=data.category_id,
                author_id=author.user_id,
                author_name=author.name,
                title=data.title,
                content=data.content,
                view_count=0,
                like_count=0,
                reply_count=0,
                is_pinned=False,
                is_locked=False,
                status=ACTIVE,
            )
            db.add(post)
            db.flush()
            shift_counter(
                db, CommunityCategory, CommunityCategory.category_id, data.category_id,
                CommunityCategory.post_count, 1,
            )
    except SQLAlchemyError as exc:
        logger.exception("[community] post create failed category_id=%s user_id=%s", data.category_id, author.user_id)
        raise OperationFailedError("게시글 작성에 실패했습니다.") from exc
    db.refresh(post)
    logger.info(
        "[community] post created post_id=%s category_id=%s user_id=%s",
        post.post_id, post.category_id, author.user_id,
    )
    return post


def update_post(db: Session, post_id: str, data: CommunityPostUpdate, actor: User) -> CommunityPost:
    post = _get_post_row(db, post_id)
    ensure_author_or_admin(post.author_id, actor.user_id, actor.role, "본인 게시글 또는 관리자만 수정 가능합니다.")
    if post.status == DELETED:
        raise InvalidStateError("삭제된 게시글은 수정할 수 없습니다.")
    old_category_id = post.category_id
    values = {CommunityPost.updated_at: utcnow()}
    if data.title is not None:
        values[CommunityPost.title] = data.title
    if data.content is not None:
        values[CommunityPost.content] = data.content
    moving = data.category_id is not None and data.category_id != old_category_id
    try:
        with atomic(db):
            if moving:
                _get_category(db, data.category_id)
                values[CommunityPost.category_id] = data.category_id
            # 다른 요청이 먼저 옮겼으면 rowcount가 0이다.
            updated = (
                db.query(CommunityPost)
                .filter(CommunityPost.post_id == post_id, CommunityPost.category_id == old_category_id)
                .update(values, synchronize_session=False)
            )
            if not updated:
                raise InvalidStateError("다른 요청에서 게시글이 변경되었습니다. 다시 시도해주세요.")
            if moving:
                # 쓰기 잠금을 잡은 뒤 다시 읽은 상태 기준으로 보정한다.
                status = db.query(CommunityPost.status).filter(CommunityPost.post_id == post_id).scalar()
                if status == ACTIVE:
                    shift_counter(
                        db, CommunityCategory, CommunityCategory.category_id, old_category_id,
                        CommunityCategory.post_count, -1,
                    )
                    shift_counter(
                        db, CommunityCategory, CommunityCategory.category_id, data.category_id,
                        CommunityCategory.post_count, 1,
                    )
    except SQLAlchemyError as exc:
        logger.exception("[community] post update failed post_id=%s user_id=%s", post_id, actor.user_id)
        raise OperationFailedError("게시글 수정에 실패했습니다.") from exc
    db.refresh(post)
    logger.info(
        "[community] post updated post_id=%s user_id=%s moved=%s", post_id, actor.user_id, moving,
    )
    return post


def _apply_post_status(db: Session, post_id: str, new_status: str, actor: User | None = None) -> CommunityPost:
    post = _get_post_row(db, post_id)
    if actor is not None:
        ensure_author_or_admin(post.author_id, actor.user_id, actor.role, "본인 게시글 또는 관리자만 삭제 가능합니다.")
    old_status = post.status
    delta = counter_delta(old_status, new_status)
    if transition_status(db, CommunityPost, CommunityPost.post_id, post_id, old_status, new_status):
        category_id = db.query(CommunityPost.category_id).filter(CommunityPost.post_id == post_id).scalar()
        shift_counter(
            db, CommunityCategory, CommunityCategory.category_id, category_id,
            CommunityCategory.post_count, delta,
        )
        if new_status == DELETED:
            _clear_likes(db, CommunityPost, CommunityPost.post_id, POST_KIND, post_id)
    return post


def delete_post(db: Session, post_id: str, actor: User) -> None:
    try:
        with atomic(db):
            _apply_post_status(db, post_id, DELETED, actor=actor)
    except SQLAlchemyError as exc:
        logger.exception("[community] post delete failed post_id=%s user_id=%s", post_id, actor.user_id)
        raise OperationFailedError("게시글 삭제에 실패했습니다.") from exc
    logger.info("[community] post deleted post_id=%s user_id=%s", post_id, actor.user_id)


def update_post_status(db: Session, post_id: str, status: str) -> CommunityPost:
    try:
        with atomic(db):
            _apply_post_status(db, post_id, status)
    except SQLAlchemyError as exc:
        logger.exception("[community] post status update failed post_id=%s status=%s", post_id, status)
        raise OperationFailedError("게시글 상태 변경에 실패했습니다.") from exc
    logger.info("[community] post status updated post_id=%s status=%s", post_id, status)
    return _get_post_row(db, post_id)


def update_post_flags(
    db: Session, post_id: str, is_pinned: Optional[bool] = None, is_locked: Optional[bool] = None
) -> CommunityPost:
    try:
        with atomic(db):
            post = _get_post_row(db, post_id)
            if is_pinned is not None:
                post.is_pinned = bool(is_pinned)
            if is_locked is not None:
                post.is_locked = bool(is_locked)
    except SQLAlchemyError as exc:
        logger.exception("[community] post flags update failed post_id=%s", post_id)
        raise OperationFailedError("게시글 설정 변경에 실패했습니다.") from exc
    db.refresh(post)
    logger.info(
        "[community] post flags updated post_id=%s is_pinned=%s is_locked=%s",
        post_id, post.is_pinned, post.is_locked,
    )
    return post


# ==================== 답글 ====================


def list_replies(
    db: Session,
    post_id: str,
    viewer: Optional[User] = None,
    parent_id: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    sort: str = "latest",
) -> dict:
    _get_active_post(db, post_id)
    page, limit = clamp_page(page, limit)
    query = db.query(CommunityReply).filter(CommunityReply.post_id == post_id, CommunityReply.status == ACTIVE)
    # parent_id가 없으면 최상위 답글만
    if parent_id:
        query = query.filter(CommunityReply.parent_id == parent_id)
    else:
        query = query.filter(CommunityReply.parent_id.is_(None))
    total = query.count()
    rows = (
        query.order_by(*REPLY_SORTS.get(sort, REPLY_SORTS["latest"]))
        .offset(page_offset(page, limit))
        .limit(limit)
        .all()
    )
    return {"replies": _mark_liked(db, rows, viewer, REPLY_KIND, "reply_id"), **page_meta(total, page, limit)}


def create_reply(
    db: Session, post_id: str, author: User, content: str, parent_id: Optional[str] = None
) -> CommunityReply:
    try:
        with atomic(db):
            now = utcnow()
            post = _get_active_post(db, post_id)
            if post.is_locked:
                raise InvalidStateError("답글이 잠긴 게시글입니다.")
            if parent_id:
                parent = (
                    db.query(CommunityReply)
                    .filter(
                        CommunityReply.reply_id == parent_id,
                        CommunityReply.post_id == post_id,
                        CommunityReply.status == ACTIVE,
                    )
                    .first()
                )
                if not parent:
                    raise NotFoundError("상위 답글을 찾을 수 없습니다.")
            reply = CommunityReply(
                post_id=post_id,
                parent_id=parent_id or None,
                author_id=author.user_id,
                author_name=author.name,
                content=content,
                like_count=0,
                is_author=post.author_id == author.user_id,
                status=ACTIVE,
                created_at=now,
            )
            db.add(reply)
            db.flush()
            shift_counter(db, CommunityPost, CommunityPost.post_id, post_id, CommunityPost.reply_count, 1)
            db.query(CommunityPost).filter(CommunityPost.post_id == post_id).update(
                {CommunityPost.last_reply_at: now},
                synchronize_session=False,
            )
    except SQLAlchemyError as exc:
        logger.exception("[community] reply create failed post_id=%s user_id=%s", post_id, author.user_id)
        raise OperationFailedError("답글 작성에 실패했습니다.") from exc
    db.refresh(reply)
    logger.info(
        "[community] reply created post_id=%s reply_id=%s parent_id=%s user_id=%s",
        post_id, reply.reply_id, parent_id, author.user_id,
    )
    return reply


def _apply_reply_status(db: Session, reply_id: str, new_status: str, actor: User | None = None) -> CommunityReply:
    reply = _get_reply_row(db, reply_id)
    if actor is not None:
        ensure_author_or_admin(reply.author_id, actor.user_id, actor.role, "본인 답글 또는 관리자만 삭제 가능합니다.")
    old_status = reply.status
    delta = counter_delta(old_status, new_status)
    if transition_status(db, CommunityReply, CommunityReply.reply_id, reply_id, old_status, new_status):
        shift_counter(db, CommunityPost, CommunityPost.post_id, reply.post_id, CommunityPost.reply_count, delta)
        if new_status == DELETED:
            _clear_likes(db, CommunityReply, CommunityReply.reply_id, REPLY_KIND, reply_id)
    return reply


def delete_reply(db: Session, reply_id: str, actor: User) -> None:
    try:
        with atomic(db):
            _apply_reply_status(db, reply_id, DELETED, actor=actor)
    except SQLAlchemyError as exc:
        logger.exception("[community] reply delete failed reply_id=%s user_id=%s", reply_id, actor.user_id)
        raise OperationFailedError("답글 삭제에 실패했습니다.") from exc
    logger.info("[community] reply deleted reply_id=%s user_id=%s", reply_id, actor.user_id)


def update_reply_status(db: Session, reply_id: str, status: str) -> CommunityReply:
    try:
        with atomic(db):
            _apply_reply_status(db, reply_id, status)
    except SQLAlchemyError as exc:
        logger.exception("[community] reply status update failed reply_id=%s status=%s", reply_id, status)
        raise OperationFailedError("답글 상태 변경에 실패했습니다.") from exc
    logger.info("[community] reply status updated reply_id=%s status=%s", reply_id, status)
    return _get_reply_row(db, reply_id)


# ==================== 좋아요 / 통계 ====================


def toggle_like(db: Session, user_id: str, target_kind: str, target_id: str) -> like_service.LikeToggleResult:
    """active 게시글/답글에만 좋아요를 허용하고 토글은 공용 엔진에 맡긴다."""
    if target_kind == POST_KIND:
        _get_active_post(db, target_id)
    elif target_kind == REPLY_KIND:
        reply = _get_reply_row(db, target_id)
        if reply.status != ACTIVE:
            raise NotFoundError("답글을 찾을 수 없습니다.")
    else:
        raise InvalidStateError(f"좋아요를 지원하지 않는 대상입니다: {target_kind}")
    return like_service.toggle_like(db, user_id, target_id, target_kind)


def get_stats(db: Session) -> dict:
    since = utcnow() - timedelta(days=ACTIVE_AUTHOR_DAYS)
    total_posts = db.query(func.count(CommunityPost.post_id)).filter(CommunityPost.status == ACTIVE).scalar()
    total_replies = db.query(func.count(CommunityReply.reply_id)).filter(CommunityReply.status == ACTIVE).scalar()
    total_authors = db.query(func.count(func.distinct(CommunityPost.author_id))).scalar()
    active_authors = (
        db.query(func.count(func.distinct(CommunityPost.author_id)))
        .filter(CommunityPost.created_at >= since)
        .scalar()
    )
    top_categories = (
        db.query(CommunityCategory)
        .filter(CommunityCategory.status == CATEGORY_ACTIVE)
        .order_by(CommunityCategory.post_count.desc(), CommunityCategory.name.asc())
        .limit(5)
        .all()
    )
    return {
        "total_posts": int(total_posts or 0),
        "total_replies": int(total_replies or 0),
        "total_authors": int(total_authors or 0),
        "active_authors": int(active_authors or 0),
        "top_categories": top_categories,
    }
