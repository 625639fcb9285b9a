"""환경 변수 기반 애플리케이션 설정을 중앙에서 관리합니다."""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./engagement.db"
    # SQLite 쓰기 잠금 대기 시간(초). 동시 토글 요청이 바로 실패하지 않도록 넉넉히 둔다.
    DB_BUSY_TIMEOUT_SECONDS: float = 30.0
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # AI Model Settings (OpenAI 호환 API)
    OPENAI_API_KEY: str = "your_openai_api_key"
    AI_BASE_URL: str = "https://api.openai.com/v1"
    AI_CHAT_MODEL: str = "gpt-4o-mini"
    AI_TITLE_MODEL: str = ""
    AI_TIMEOUT_SECONDS: float = 30.0
    AI_MAX_TOKENS: int = 2048
    AI_TEMPERATURE: float = 0.7
    AI_FEATURES_ENABLED: bool = True

    # 채팅 세션
    CHAT_DEFAULT_TITLE: str = "새 대화"
    CHAT_TITLE_MAX_LENGTH: int = 20
    CHAT_MAX_MESSAGE_LENGTH: int = 4000
    CHAT_ROLE_PREAMBLE: str = (
        "당신은 콘텐츠 플랫폼의 AI 어시스턴트입니다.\n"
        "사용자의 질문에 전문적이고 정확하며 친절하게 답변하세요."
    )
    CHAT_UNSAFE_PATTERNS: List[str] = [
        r"폭력|살인|무기|\bkill\b|murder|weapon",
        r"혐오|차별|racist|sexist",
        r"불법|마약|\bdrugs?\b|illegal",
    ]

    def title_model(self) -> str:
        return str(self.AI_TITLE_MODEL or "").strip() or self.AI_CHAT_MODEL

    class Config:
        # 실행 cwd와 무관하게 backend/.env를 로드한다.
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()
