"""Comment Service 도메인 서비스 레이어입니다. 댓글/답글 생성과 소프트 삭제, 부모 카운터 보정을 담당합니다."""

import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from engagement.database import atomic
from engagement.models.blog import BlogPost
from engagement.models.comment import Comment, CommentReply
from engagement.models.user import User
from engagement.services.counter_service import shift_counter, transition_status
from engagement.utils.exceptions import InvalidStateError, NotFoundError, OperationFailedError
from engagement.utils.pagination import clamp_page, page_meta, page_offset
from engagement.utils.permissions import ensure_author_or_admin
from engagement.utils.status_rules import ACTIVE, DELETED, counter_delta

logger = logging.getLogger(__name__)

COMMENT_SORTS = {
    "newest": (Comment.created_at.desc(),),
    "oldest": (Comment.created_at.asc(),),
    "popular": (Comment.like_count.desc(), Comment.created_at.desc()),
}


def _get_comment(db: Session, comment_id: str) -> Comment:
    comment = db.query(Comment).filter(Comment.comment_id == comment_id).first()
    if not comment:
        raise NotFoundError("댓글을 찾을 수 없습니다.")
    return comment


def _get_reply(db: Session, reply_id: str) -> CommentReply:
    reply = db.query(CommentReply).filter(CommentReply.reply_id == reply_id).first()
    if not reply:
        raise NotFoundError("답글을 찾을 수 없습니다.")
    return reply


def _apply_comment_status(db: Session, comment_id: str, new_status: str, actor: User | None = None) -> Comment:
    comment = _get_comment(db, comment_id)
    if actor is not None:
        ensure_author_or_admin(comment.author_id, actor.user_id, actor.role, "본인 댓글 또는 관리자만 삭제 가능합니다.")
    old_status = comment.status
    delta = counter_delta(old_status, new_status)
    if transition_status(db, Comment, Comment.comment_id, comment_id, old_status, new_status):
        shift_counter(db, BlogPost, BlogPost.post_id, comment.post_id, BlogPost.comment_count, delta)
    return comment


def _apply_reply_status(db: Session, reply_id: str, new_status: str, actor: User | None = None) -> CommentReply:
    reply = _get_reply(db, reply_id)
    if actor is not None:
        ensure_author_or_admin(reply.author_id, actor.user_id, actor.role, "본인 답글 또는 관리자만 삭제 가능합니다.")
    old_status = reply.status
    delta = counter_delta(old_status, new_status)
    if transition_status(db, CommentReply, CommentReply.reply_id, reply_id, old_status, new_status):
        shift_counter(db, Comment, Comment.comment_id, reply.comment_id, Comment.reply_count, delta)
    return reply


def create_comment(db: Session, post_id: str, author: User, content: str) -> Comment:
    try:
        with atomic(db):
            post = db.query(BlogPost).filter(BlogPost.post_id == post_id).first()
            if not post:
                raise NotFoundError("게시글을 찾을 수 없습니다.")
            if post.status == "archived":
                raise InvalidStateError("보관된 게시글에는 댓글을 작성할 수 없습니다.")
            comment = Comment(
                post_id=post_id,
                author_id=author.user_id,
                author_name=author.name,
                content=content,
                like_count=0,
                reply_count=0,
                is_top=False,
                status=ACTIVE,
            )
            db.add(comment)
            db.flush()
            shift_counter(db, BlogPost, BlogPost.post_id, post_id, BlogPost.comment_count, 1)
    except SQLAlchemyError as exc:
        logger.exception("[comment] create failed post_id=%s user_id=%s", post_id, author.user_id)
        raise OperationFailedError("댓글 작성에 실패했습니다.") from exc
    db.refresh(comment)
    logger.info("[comment] created post_id=%s comment_id=%s user_id=%s", post_id, comment.comment_id, author.user_id)
    return comment


def create_reply(
    db: Session, comment_id: str, author: User, content: str, post_id: str | None = None
) -> CommentReply:
    try:
        with atomic(db):
            comment = _get_comment(db, comment_id)
            if post_id is not None and comment.post_id != post_id:
                raise NotFoundError("댓글을 찾을 수 없습니다.")
            if comment.status != ACTIVE:
                raise InvalidStateError("삭제되었거나 숨김 처리된 댓글에는 답글을 달 수 없습니다.")
            reply = CommentReply(
                comment_id=comment_id,
                author_id=author.user_id,
                author_name=author.name,
                content=content,
                like_count=0,
                status=ACTIVE,
            )
            db.add(reply)
            db.flush()
            shift_counter(db, Comment, Comment.comment_id, comment_id, Comment.reply_count, 1)
    except SQLAlchemyError as exc:
        logger.exception("[reply] create failed comment_id=%s user_id=%s", comment_id, author.user_id)
        raise OperationFailedError("답글 작성에 실패했습니다.") from exc
    db.refresh(reply)
    logger.info("[reply] created comment_id=%s reply_id=%s user_id=%s", comment_id, reply.reply_id, author.user_id)
    return reply


def delete_comment(db: Session, comment_id: str, actor: User) -> None:
    try:
        with atomic(db):
            _apply_comment_status(db, comment_id, DELETED, actor=actor)
    except SQLAlchemyError as exc:
        logger.exception("[comment] delete failed comment_id=%s user_id=%s", comment_id, actor.user_id)
        raise OperationFailedError("댓글 삭제에 실패했습니다.") from exc
    logger.info("[comment] deleted comment_id=%s user_id=%s", comment_id, actor.user_id)


def delete_reply(db: Session, reply_id: str, actor: User) -> None:
    try:
        with atomic(db):
            _apply_reply_status(db, reply_id, DELETED, actor=actor)
    except SQLAlchemyError as exc:
        logger.exception("[reply] delete failed reply_id=%s user_id=%s", reply_id, actor.user_id)
        raise OperationFailedError("답글 삭제에 실패했습니다.") from exc
    logger.info("[reply] deleted reply_id=%s user_id=%s", reply_id, actor.user_id)


def update_comment_status(db: Session, comment_id: str, status: str) -> Comment:
    try:
        with atomic(db):
            _apply_comment_status(db, comment_id, status)
    except SQLAlchemyError as exc:
        logger.exception("[comment] status update failed comment_id=%s status=%s", comment_id, status)
        raise OperationFailedError("댓글 상태 변경에 실패했습니다.") from exc
    logger.info("[comment] status updated comment_id=%s status=%s", comment_id, status)
    return _get_comment(db, comment_id)


def update_reply_status(db: Session, reply_id: str, status: str) -> CommentReply:
    try:
        with atomic(db):
            _apply_reply_status(db, reply_id, status)
    except SQLAlchemyError as exc:
        logger.exception("[reply] status update failed reply_id=%s status=%s", reply_id, status)
        raise OperationFailedError("답글 상태 변경에 실패했습니다.") from exc
    logger.info("[reply] status updated reply_id=%s status=%s", reply_id, status)
    return _get_reply(db, reply_id)


def update_top(db: Session, comment_id: str, is_top: bool) -> Comment:
    try:
        with atomic(db):
            comment = _get_comment(db, comment_id)
            comment.is_top = bool(is_top)
    except SQLAlchemyError as exc:
        logger.exception("[comment] top update failed comment_id=%s is_top=%s", comment_id, is_top)
        raise OperationFailedError("댓글 고정 변경에 실패했습니다.") from exc
    db.refresh(comment)
    logger.info("[comment] top updated comment_id=%s is_top=%s", comment_id, is_top)
    return comment


def _attach_active_replies(db: Session, comments: List[Comment]) -> List[Comment]:
    ids = [c.comment_id for c in comments]
    by_comment: dict[str, list[CommentReply]] = {cid: [] for cid in ids}
    if ids:
        rows = (
            db.query(CommentReply)
            .filter(CommentReply.comment_id.in_(ids), CommentReply.status == ACTIVE)
            .order_by(CommentReply.created_at.asc())
            .all()
        )
        for reply in rows:
            by_comment[reply.comment_id].append(reply)
    for comment in comments:
        setattr(comment, "active_replies", by_comment.get(comment.comment_id, []))
    return comments


def get_comments(db: Session, post_id: str, page: int = 1, limit: int = 20, sort: str = "newest") -> dict:
    page, limit = clamp_page(page, limit)
    order = COMMENT_SORTS.get(sort, COMMENT_SORTS["newest"])
    query = db.query(Comment).filter(Comment.post_id == post_id, Comment.status == ACTIVE)
    total = query.count()
    rows = (
        query.order_by(Comment.is_top.desc(), *order)
        .offset(page_offset(page, limit))
        .limit(limit)
        .all()
    )
    return {"comments": _attach_active_replies(db, rows), **page_meta(total, page, limit)}


def search_comments(db: Session, post_id: str, keyword: str, page: int = 1, limit: int = 20) -> dict:
    page, limit = clamp_page(page, limit)
    like = f"%{(keyword or '').strip()}%"
    query = db.query(Comment).filter(
        Comment.post_id == post_id,
        Comment.status == ACTIVE,
        Comment.content.ilike(like),
    )
    total = query.count()
    rows = query.order_by(Comment.created_at.desc()).offset(page_offset(page, limit)).limit(limit).all()
    return {"comments": _attach_active_replies(db, rows), **page_meta(total, page, limit)}


def get_user_comments(db: Session, user_id: str, page: int = 1, limit: int = 20) -> dict:
    page, limit = clamp_page(page, limit)
    query = db.query(Comment).filter(Comment.author_id == user_id)
    total = query.count()
    rows = query.order_by(Comment.created_at.desc()).offset(page_offset(page, limit)).limit(limit).all()
    return {"comments": rows, **page_meta(total, page, limit)}


def get_comment_stats(db: Session, post_id: str) -> dict:
    stats = {
        "total_comments": 0,
        "active_comments": 0,
        "hidden_comments": 0,
        "deleted_comments": 0,
        "total_replies": 0,
    }
    rows = (
        db.query(Comment.status, func.count(Comment.comment_id))
        .filter(Comment.post_id == post_id)
        .group_by(Comment.status)
        .all()
    )
    for status, count in rows:
        stats["total_comments"] += int(count)
        key = f"{status}_comments"
        if key in stats:
            stats[key] = int(count)
    stats["total_replies"] = int(
        db.query(func.count(CommentReply.reply_id))
        .join(Comment, Comment.comment_id == CommentReply.comment_id)
        .filter(Comment.post_id == post_id)
        .scalar()
        or 0
    )
    return stats
