"""Permissions 관련 공용 유틸리티 헬퍼입니다."""

from engagement.models.user import User
from engagement.utils.exceptions import ForbiddenError


ADMIN = "admin"


def is_admin(user: User) -> bool:
    return user.role == ADMIN


def is_admin_role(role: str | None) -> bool:
    return role == ADMIN


def ensure_author_or_admin(author_id: str, actor_id: str, actor_role: str | None, message: str) -> None:
    # 작성자 본인 또는 관리자만 통과. 실패 시 어떤 변경도 일어나기 전에 던진다.
    if str(author_id) != str(actor_id) and not is_admin_role(actor_role):
        raise ForbiddenError(message)
