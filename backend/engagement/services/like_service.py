"""Like Service 도메인 서비스 레이어입니다. 좋아요 사실 행과 대상의 like_count를 함께 갱신합니다."""

import logging
from dataclasses import dataclass
from typing import Iterable, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from engagement.database import atomic
from engagement.models.blog import BlogPost
from engagement.models.comment import Comment, CommentReply
from engagement.models.community import CommunityPost, CommunityReply
from engagement.models.like import LikeFact
from engagement.utils.exceptions import InvalidStateError, NotFoundError, OperationFailedError

logger = logging.getLogger(__name__)

# target_kind -> (모델, PK 컬럼)
LIKE_TARGETS = {
    "post": (BlogPost, BlogPost.post_id),
    "comment": (Comment, Comment.comment_id),
    "reply": (CommentReply, CommentReply.reply_id),
    "community_post": (CommunityPost, CommunityPost.post_id),
    "community_reply": (CommunityReply, CommunityReply.reply_id),
}

TARGET_LABELS = {
    "post": "게시글",
    "comment": "댓글",
    "reply": "답글",
    "community_post": "커뮤니티 게시글",
    "community_reply": "커뮤니티 답글",
}


@dataclass(frozen=True)
class LikeToggleResult:
    liked: bool
    like_count: int


def _resolve_target(target_kind: str):
    try:
        return LIKE_TARGETS[target_kind]
    except KeyError:
        raise InvalidStateError(f"좋아요를 지원하지 않는 대상입니다: {target_kind}")


def _read_like_count(db: Session, target_kind: str, target_id: str) -> int | None:
    model, id_column = _resolve_target(target_kind)
    row = db.query(model.like_count).filter(id_column == target_id).first()
    return int(row[0] or 0) if row else None


def _fact_query(db: Session, user_id: str, target_id: str, target_kind: str):
    return db.query(LikeFact).filter(
        LikeFact.user_id == user_id,
        LikeFact.target_id == target_id,
        LikeFact.target_kind == target_kind,
    )


def _read_committed_state(db: Session, user_id: str, target_id: str, target_kind: str):
    """(liked, like_count)를 한 문장으로 읽는다. 대상이 없으면 None."""
    model, id_column = _resolve_target(target_kind)
    liked = _fact_query(db, user_id, target_id, target_kind).exists()
    row = db.query(liked, model.like_count).filter(id_column == target_id).first()
    if row is None:
        return None
    return bool(row[0]), int(row[1] or 0)


def _add_like(db: Session, user_id: str, target_id: str, target_kind: str) -> bool:
    model, id_column = _resolve_target(target_kind)
    db.add(LikeFact(user_id=user_id, target_id=target_id, target_kind=target_kind))
    # 동시에 같은 키를 넣은 트랜잭션이 먼저 커밋했으면 여기서 IntegrityError
    db.flush()
    db.query(model).filter(id_column == target_id).update(
        {model.like_count: model.like_count + 1},
        synchronize_session=False,
    )
    return True


def _remove_like(db: Session, user_id: str, target_id: str, target_kind: str) -> bool:
    model, id_column = _resolve_target(target_kind)
    removed = _fact_query(db, user_id, target_id, target_kind).delete(synchronize_session=False)
    # 이 트랜잭션이 실제로 행을 지웠을 때만 감소시킨다.
    if removed:
        db.query(model).filter(id_column == target_id, model.like_count > 0).update(
            {model.like_count: model.like_count - 1},
            synchronize_session=False,
        )
    return False


def _toggle_once(db: Session, user_id: str, target_id: str, target_kind: str) -> LikeToggleResult:
    if _read_like_count(db, target_kind, target_id) is None:
        raise NotFoundError(f"{TARGET_LABELS[target_kind]}을(를) 찾을 수 없습니다.")
    fact = _fact_query(db, user_id, target_id, target_kind).first()
    if fact is None:
        liked = _add_like(db, user_id, target_id, target_kind)
    else:
        liked = _remove_like(db, user_id, target_id, target_kind)
    return LikeToggleResult(liked=liked, like_count=_read_like_count(db, target_kind, target_id) or 0)


def toggle_like(db: Session, user_id: str, target_id: str, target_kind: str) -> LikeToggleResult:
    """좋아요를 뒤집는다.

    같은 키로 동시에 insert한 경합에서 지면 유니크 제약 IntegrityError가 난다.
    이때는 이미 커밋된 '좋아요' 상태를 그대로 결과로 돌려준다. 그 사이 다른
    토글이 다시 지웠다면 처음부터 다시 토글한다. 경합은 호출자에게 노출되지 않는다.
    """
    _resolve_target(target_kind)
    attempt = 0
    while True:
        attempt += 1
        try:
            with atomic(db):
                result = _toggle_once(db, user_id, target_id, target_kind)
        except IntegrityError:
            state = _read_committed_state(db, user_id, target_id, target_kind)
            logger.info(
                "[like] unique conflict kind=%s target_id=%s user_id=%s attempt=%d committed=%s",
                target_kind, target_id, user_id, attempt, state,
            )
            if state is None:
                raise NotFoundError(f"{TARGET_LABELS[target_kind]}을(를) 찾을 수 없습니다.")
            liked, like_count = state
            if not liked:
                continue
            result = LikeToggleResult(liked=True, like_count=like_count)
        except SQLAlchemyError as exc:
            logger.exception(
                "[like] toggle failed kind=%s target_id=%s user_id=%s", target_kind, target_id, user_id
            )
            raise OperationFailedError("좋아요 처리에 실패했습니다.") from exc
        logger.info(
            "[like] toggled kind=%s target_id=%s user_id=%s liked=%s like_count=%d",
            target_kind, target_id, user_id, result.liked, result.like_count,
        )
        return result


def get_like_state(db: Session, user_id: str, target_id: str, target_kind: str) -> bool:
    _resolve_target(target_kind)
    return _fact_query(db, user_id, target_id, target_kind).first() is not None


def liked_target_ids(db: Session, user_id: str | None, target_kind: str, target_ids: Iterable[str]) -> set[str]:
    ids = [str(t) for t in target_ids]
    if not user_id or not ids:
        return set()
    rows = (
        db.query(LikeFact.target_id)
        .filter(
            LikeFact.user_id == user_id,
            LikeFact.target_kind == target_kind,
            LikeFact.target_id.in_(ids),
        )
        .all()
    )
    return {str(row[0]) for row in rows}


def delete_facts_for_targets(db: Session, target_kind: str, target_ids: List[str]) -> int:
    """루트 엔티티 하드 삭제 시 호출. 커밋은 호출자의 트랜잭션에 맡긴다."""
    if not target_ids:
        return 0
    return (
        db.query(LikeFact)
        .filter(LikeFact.target_kind == target_kind, LikeFact.target_id.in_(target_ids))
        .delete(synchronize_session=False)
    )
