"""댓글/답글 상태 전이와 부모 카운터 증감 규칙입니다.

부모의 reply_count/comment_count는 active 상태 자식 수와 같아야 하므로,
active에서 벗어나는 전이만 -1, active로 돌아오는 전이만 +1이 된다.
"""

from engagement.utils.exceptions import InvalidStateError

ACTIVE = "active"
HIDDEN = "hidden"
DELETED = "deleted"

THREAD_STATUSES = (ACTIVE, HIDDEN, DELETED)

# (이전 상태, 다음 상태) -> 부모 카운터 증감
TRANSITIONS = {
    (ACTIVE, HIDDEN): -1,
    (ACTIVE, DELETED): -1,
    (HIDDEN, DELETED): 0,
    (HIDDEN, ACTIVE): 1,  # 관리자 숨김 해제
}


def counter_delta(old_status: str, new_status: str) -> int:
    if new_status not in THREAD_STATUSES:
        raise InvalidStateError(f"알 수 없는 상태입니다: {new_status}")
    if old_status == new_status:
        return 0
    try:
        return TRANSITIONS[(old_status, new_status)]
    except KeyError:
        raise InvalidStateError(f"'{old_status}' 상태에서 '{new_status}' 상태로 변경할 수 없습니다.")
