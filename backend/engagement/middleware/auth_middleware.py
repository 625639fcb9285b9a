from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from engagement.database import get_db
from engagement.models.user import User
from engagement.config import settings
from engagement.services.auth_service import ALGORITHM
from engagement.utils.exceptions import ForbiddenError, UnauthorizedError

security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")


def _load_user(db: Session, user_id) -> User | None:
    return db.query(User).filter(User.user_id == str(user_id), User.is_active == True).first()


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise UnauthorizedError()
    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if user_id is None:
        raise UnauthorizedError("Invalid token payload")
    user = _load_user(db, user_id)
    if not user:
        raise UnauthorizedError("User not found or inactive")
    return user


def require_roles(*roles: str):
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise ForbiddenError(f"Requires role: {', '.join(roles)}")
        return current_user
    return checker


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User | None:
    if credentials is None:
        return None
    try:
        payload = decode_token(credentials.credentials)
    except UnauthorizedError:
        return None
    user_id = payload.get("sub")
    if user_id is None:
        return None
    return _load_user(db, user_id)
