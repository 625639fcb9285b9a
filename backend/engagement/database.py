"""DB 엔진/세션 팩토리와 트랜잭션 범위 헬퍼입니다."""

from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from engagement.config import settings


class Base(DeclarativeBase):
    """SQLAlchemy 모델 공통 Base."""


def create_db_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # 요청 스레드마다 다른 커넥션을 쓰고, 쓰기 잠금은 busy timeout 동안 대기한다.
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.DB_BUSY_TIMEOUT_SECONDS,
        }
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = create_db_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """블록 안의 read-check-write를 하나의 트랜잭션으로 커밋한다.

    예외가 나면 롤백 후 그대로 다시 던진다. 부분 반영 상태는 남지 않는다.
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
