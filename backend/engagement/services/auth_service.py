"""Auth Service 도메인 서비스 레이어입니다. 로그인 ID 기반 모의 로그인과 토큰 발급을 담당합니다."""

from datetime import timedelta

from jose import jwt
from sqlalchemy.orm import Session

from engagement.config import settings
from engagement.models.user import User
from engagement.utils.exceptions import UnauthorizedError
from engagement.utils.helpers import utcnow

ALGORITHM = "HS256"


def create_access_token(user_id: str) -> str:
    expire = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def mock_login(db: Session, login_id: str) -> User:
    user = db.query(User).filter(User.login_id == login_id, User.is_active == True).first()
    if not user:
        raise UnauthorizedError(f"로그인 ID '{login_id}'에 해당하는 활성 사용자를 찾을 수 없습니다.")
    return user
