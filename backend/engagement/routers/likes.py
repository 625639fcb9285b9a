"""좋아요 토글 API 라우터입니다."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from engagement.database import get_db
from engagement.schemas.like import LikeStateOut, LikeToggleOut
from engagement.services import like_service
from engagement.middleware.auth_middleware import get_current_user
from engagement.models.user import User

router = APIRouter(prefix="/api/likes", tags=["likes"])


@router.post("/{target_kind}/{target_id}", response_model=LikeToggleOut)
def toggle_like(
    target_kind: str,
    target_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = like_service.toggle_like(db, current_user.user_id, target_id, target_kind)
    return LikeToggleOut(liked=result.liked, like_count=result.like_count)


@router.get("/{target_kind}/{target_id}", response_model=LikeStateOut)
def get_like_state(
    target_kind: str,
    target_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return LikeStateOut(liked=like_service.get_like_state(db, current_user.user_id, target_id, target_kind))
