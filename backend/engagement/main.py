"""FastAPI 애플리케이션 진입점. 미들웨어, API 라우터, 공통 예외 핸들러를 등록합니다."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from engagement.config import settings
from engagement.database import Base, engine
import engagement.models  # noqa: F401 - 모델 import로 metadata 등록
from engagement.routers import auth, blog, likes, comments, chat, community
from engagement.utils.exceptions import ApiError

logging.basicConfig(
    level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Engagement 서비스",
    description="좋아요/댓글/AI 채팅의 카운터 일관성을 보장하는 참여 기능 백엔드",
    version="1.0.0",
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("[api] %s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


# Register all routers
app.include_router(auth.router)
app.include_router(blog.router)
app.include_router(likes.router)
app.include_router(comments.router)
app.include_router(chat.router)
app.include_router(community.router)


@app.on_event("startup")
def ensure_schema():
    # 누락된 테이블을 자동 생성합니다.
    Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "service": "Engagement 서비스"}
