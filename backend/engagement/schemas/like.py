"""좋아요 토글 응답 스키마입니다."""

from pydantic import BaseModel


class LikeToggleOut(BaseModel):
    liked: bool
    like_count: int


class LikeStateOut(BaseModel):
    liked: bool
