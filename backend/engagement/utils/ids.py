"""신규 행에 쓰는 전역 고유 식별자 생성기입니다."""

import uuid


def new_id() -> str:
    return str(uuid.uuid4())
