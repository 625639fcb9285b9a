"""AI Client 도메인 서비스 레이어입니다. OpenAI 호환 API로 텍스트 완성을 요청합니다."""

import logging
import uuid
from typing import Optional, List, Dict, Any

import httpx

from engagement.config import settings

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """완성 서비스 호출 실패. kind: timeout/quota/safety/unavailable"""

    def __init__(self, kind: str, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind}: {detail}" if detail else kind)


class AIClient:
    """생성형 AI 모델 클라이언트 (OpenAI 호환 API 직접 호출)"""

    def __init__(self, model_name: Optional[str] = None, user_id: Optional[str] = None):
        self.model_name = model_name or settings.AI_CHAT_MODEL
        self.user_id = user_id or "system"
        self._client = None

    def _build_headers(self) -> Dict[str, str]:
        return {
            "User-ID": self.user_id,
            "Prompt-Msg-Id": str(uuid.uuid4()),
        }

    def _get_client(self):
        if self._client is None:
            try:
                from openai import OpenAI
            except ImportError:
                raise RuntimeError("openai is not installed.")
            self._client = OpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.AI_BASE_URL,
                timeout=settings.AI_TIMEOUT_SECONDS,
                max_retries=0,
            )
        return self._client

    def _normalize_content(self, content: Any) -> str:
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            chunks: List[str] = []
            for part in content:
                if isinstance(part, dict) and part.get("type") == "text":
                    chunks.append(str(part.get("text", "")))
            return "".join(chunks)
        return str(content or "")

    def _classify_error(self, exc: Exception) -> str:
        if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
            return "timeout"
        text = f"{type(exc).__name__} {exc}".lower()
        if "timeout" in text or "timed out" in text:
            return "timeout"
        if "ratelimit" in text or "quota" in text or "429" in text:
            return "quota"
        if "content_filter" in text or "safety" in text or "content policy" in text:
            return "safety"
        return "unavailable"

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        if not settings.AI_FEATURES_ENABLED:
            raise CompletionError("unavailable", "AI features are disabled")
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        try:
            response = self._get_client().chat.completions.create(
                model=self.model_name,
                messages=messages,
                temperature=settings.AI_TEMPERATURE,
                max_tokens=settings.AI_MAX_TOKENS,
                extra_headers=self._build_headers(),
            )
        except Exception as exc:
            kind = self._classify_error(exc)
            logger.warning("[ai] completion failed model=%s kind=%s: %s", self.model_name, kind, exc)
            raise CompletionError(kind, str(exc)) from exc
        if not response.choices:
            return ""
        choice = response.choices[0]
        if getattr(choice, "finish_reason", None) == "content_filter":
            raise CompletionError("safety", "response blocked by content filter")
        message = choice.message
        return self._normalize_content(message.content if message else "").strip()

    def generate_title(self, first_message: str) -> str:
        limit = settings.CHAT_TITLE_MAX_LENGTH
        prompt = (
            f"다음 대화 내용을 바탕으로 {limit}자 이내의 짧은 제목을 만들어주세요. "
            "제목만 출력하세요.\n\n"
            f"{first_message}"
        )
        raw = self.complete(prompt)
        lines = raw.strip().strip("\"'").splitlines()
        title = lines[0].strip() if lines else ""
        return title[:limit] or settings.CHAT_DEFAULT_TITLE

    @classmethod
    def get_client(cls, purpose: str, user_id: Optional[str] = None) -> "AIClient":
        mapping = {
            "chat": settings.AI_CHAT_MODEL,
            "title": settings.title_model(),
        }
        return cls(model_name=mapping.get(purpose, settings.AI_CHAT_MODEL), user_id=user_id)
