"""부모 카운터 보정과 상태 compare-and-set 헬퍼입니다.

댓글/답글과 커뮤니티 게시글/답글이 함께 쓴다. 커밋은 호출자의 트랜잭션에 맡긴다.
"""

from sqlalchemy.orm import Session

from engagement.utils.helpers import utcnow


def shift_counter(db: Session, model, id_column, parent_id: str, column, delta: int) -> None:
    if delta > 0:
        db.query(model).filter(id_column == parent_id).update(
            {column: column + delta},
            synchronize_session=False,
        )
    elif delta < 0:
        # 0 아래로 내려가지 않는다.
        db.query(model).filter(id_column == parent_id, column >= -delta).update(
            {column: column + delta},
            synchronize_session=False,
        )


def transition_status(db: Session, model, id_column, row_id: str, old_status: str, new_status: str) -> bool:
    """이전에 읽은 상태일 때만 상태를 바꾼다. 실제로 바뀌었으면 True."""
    if old_status == new_status:
        return False
    changed = (
        db.query(model)
        .filter(id_column == row_id, model.status == old_status)
        .update({model.status: new_status, model.updated_at: utcnow()}, synchronize_session=False)
    )
    return bool(changed)
