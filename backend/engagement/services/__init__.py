"""서비스 레이어 패키지 초기화 모듈입니다."""

from engagement.services import (
    auth_service,
    like_service,
    comment_service,
    counter_service,
    blog_service,
    chat_service,
    community_service,
)
