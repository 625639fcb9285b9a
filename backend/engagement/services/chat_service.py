"""Chat Service 도메인 서비스 레이어입니다.

세션/메시지 로그는 append-only이며, 한 턴은 항상 user 메시지와 assistant
메시지 한 쌍으로 저장된다. 외부 AI 호출은 DB 트랜잭션 밖에서 먼저 수행하고,
성공한 경우에만 세션 생성 + message_count 증가 + 두 메시지 insert를 하나의
트랜잭션으로 커밋한다. 따라서 호출 실패 시에는 아무것도 남지 않는다.
"""

import logging
import time
from typing import Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from engagement.config import settings
from engagement.database import atomic
from engagement.models.chat import ChatMessage, ChatSession
from engagement.services.ai_client import AIClient, CompletionError
from engagement.services.safety_service import SafetyChecker
from engagement.utils.exceptions import (
    BadRequestError,
    InvalidStateError,
    NotFoundError,
    OperationFailedError,
    UnsafeContentError,
    UpstreamUnavailableError,
)
from engagement.utils.helpers import dump_json, utcnow
from engagement.utils.pagination import clamp_page, page_meta, page_offset

logger = logging.getLogger(__name__)

SESSION_ACTIVE = "active"
SESSION_ARCHIVED = "archived"
SESSION_STATUSES = (SESSION_ACTIVE, SESSION_ARCHIVED)

ANALYSIS_PROMPTS = {
    "explain": "다음 내용을 이해하기 쉽게 설명해주세요:\n\n{text}",
    "summarize": "다음 내용의 핵심을 간결하게 요약해주세요:\n\n{text}",
    "translate": "다음 내용을 한국어는 영어로, 그 밖의 언어는 한국어로 번역해주세요:\n\n{text}",
}


class ChatService:
    """채팅 세션과 메시지 로그를 관리합니다."""

    def __init__(self, db: Session, provider=None, safety: Optional[SafetyChecker] = None):
        self.db = db
        # provider: complete(prompt, system_prompt) / generate_title(text)를 가진 객체
        self.provider = provider
        self.safety = safety or SafetyChecker()

    def _client(self, purpose: str, user_id: str):
        if self.provider is not None:
            return self.provider
        return AIClient.get_client(purpose, user_id=user_id)

    def _ensure_safe(self, text: str) -> None:
        result = self.safety.check(text)
        if not result.safe:
            raise UnsafeContentError(result.reason)

    def _get_owned_session(self, user_id: str, session_id: str) -> ChatSession:
        chat_session = (
            self.db.query(ChatSession)
            .filter(ChatSession.session_id == session_id, ChatSession.user_id == user_id)
            .first()
        )
        if not chat_session:
            raise NotFoundError("대화 세션을 찾을 수 없습니다.")
        return chat_session

    def _end_read_transaction(self) -> None:
        """조회만 한 트랜잭션을 닫아 커넥션을 풀에 돌려준다."""
        if self.db.in_transaction():
            self.db.rollback()

    @staticmethod
    def _is_untitled(title: Optional[str]) -> bool:
        return not (title or "").strip() or title == settings.CHAT_DEFAULT_TITLE

    @staticmethod
    def _build_system_prompt(session_context: Optional[str], turn_context: Optional[str]) -> str:
        parts = []
        if session_context:
            parts.append(f"대화 배경:\n{session_context}")
        if turn_context:
            parts.append(f"이번 질문의 추가 맥락:\n{turn_context}")
        parts.append(settings.CHAT_ROLE_PREAMBLE)
        return "\n\n".join(parts)

    def send_message(
        self,
        user_id: str,
        text: str,
        session_id: Optional[str] = None,
        context: Optional[str] = None,
    ) -> Tuple[ChatSession, ChatMessage, ChatMessage]:
        text = (text or "").strip()
        if not text:
            raise BadRequestError("메시지 내용을 입력해주세요.")
        if len(text) > settings.CHAT_MAX_MESSAGE_LENGTH:
            raise BadRequestError(f"메시지는 {settings.CHAT_MAX_MESSAGE_LENGTH}자 이하로 입력해주세요.")
        self._ensure_safe(text)
        received_at = utcnow()

        session_context = None
        if session_id:
            chat_session = self._get_owned_session(user_id, session_id)
            if chat_session.status != SESSION_ACTIVE:
                raise InvalidStateError("보관된 대화에는 메시지를 보낼 수 없습니다.")
            model_name = chat_session.model
            session_context = chat_session.context

        client = self._client("chat", user_id)
        if not session_id:
            model_name = str(getattr(client, "model_name", None) or settings.AI_CHAT_MODEL)
        system_prompt = self._build_system_prompt(session_context, context)
        # 외부 호출 동안 읽기 트랜잭션과 커넥션을 잡고 있지 않는다.
        self._end_read_transaction()
        started = time.monotonic()
        try:
            reply = client.complete(text, system_prompt)
        except CompletionError as exc:
            logger.warning(
                "[chat] completion failed user_id=%s session_id=%s kind=%s", user_id, session_id, exc.kind
            )
            raise UpstreamUnavailableError(exc.kind) from exc
        response_ms = int((time.monotonic() - started) * 1000)

        try:
            with atomic(self.db):
                if not session_id:
                    new_session = ChatSession(
                        user_id=user_id,
                        title=None,
                        model=model_name,
                        context=context,
                        message_count=0,
                        status=SESSION_ACTIVE,
                    )
                    self.db.add(new_session)
                    self.db.flush()
                    session_id = new_session.session_id
                # 호출 사이에 보관/삭제된 세션이면 rowcount가 0이다.
                updated = (
                    self.db.query(ChatSession)
                    .filter(
                        ChatSession.session_id == session_id,
                        ChatSession.user_id == user_id,
                        ChatSession.status == SESSION_ACTIVE,
                    )
                    .update(
                        {
                            ChatSession.message_count: ChatSession.message_count + 2,
                            ChatSession.updated_at: utcnow(),
                        },
                        synchronize_session=False,
                    )
                )
                if not updated:
                    raise InvalidStateError("보관된 대화에는 메시지를 보낼 수 없습니다.")
                count = (
                    self.db.query(ChatSession.message_count)
                    .filter(ChatSession.session_id == session_id)
                    .scalar()
                )
                user_message = ChatMessage(
                    session_id=session_id,
                    seq=count - 1,
                    role="user",
                    content=text,
                    created_at=received_at,
                )
                assistant_message = ChatMessage(
                    session_id=session_id,
                    seq=count,
                    role="assistant",
                    content=reply,
                    message_metadata=dump_json({"model": model_name, "response_ms": response_ms}),
                    created_at=utcnow(),
                )
                self.db.add_all([user_message, assistant_message])
        except SQLAlchemyError as exc:
            logger.exception("[chat] send failed user_id=%s session_id=%s", user_id, session_id)
            raise OperationFailedError("메시지 저장에 실패했습니다.") from exc

        chat_session = self.db.get(ChatSession, session_id, populate_existing=True)
        logger.info(
            "[chat] message sent user_id=%s session_id=%s message_count=%d response_ms=%d",
            user_id, session_id, chat_session.message_count, response_ms,
        )
        if self._is_untitled(chat_session.title):
            self._auto_title(chat_session, text, user_id)
        return chat_session, user_message, assistant_message

    def _auto_title(self, chat_session: ChatSession, first_message: str, user_id: str) -> None:
        """제목 생성은 부가 기능이다. 실패는 로그만 남기고 전송 결과에 영향을 주지 않는다.

        생성 결과가 비었거나 기본 제목이면 첫 메시지를 잘라 제목으로 저장한다.
        그래야 다음 전송에서 제목 모델을 다시 부르지 않는다.
        """
        session_id = chat_session.session_id
        self._end_read_transaction()
        try:
            title = self._client("title", user_id).generate_title(first_message)
        except Exception as exc:
            logger.warning("[chat] title generation failed session_id=%s: %s", session_id, exc)
            return
        title = (title or "").strip()[: settings.CHAT_TITLE_MAX_LENGTH]
        if self._is_untitled(title):
            title = first_message.strip()[: settings.CHAT_TITLE_MAX_LENGTH]
            logger.info("[chat] title fallback to first message session_id=%s", session_id)
        try:
            with atomic(self.db):
                self.db.query(ChatSession).filter(
                    ChatSession.session_id == session_id,
                    or_(ChatSession.title.is_(None), ChatSession.title == settings.CHAT_DEFAULT_TITLE),
                ).update({ChatSession.title: title}, synchronize_session=False)
        except SQLAlchemyError as exc:
            logger.warning("[chat] title update failed session_id=%s: %s", session_id, exc)
            return
        self.db.refresh(chat_session)

    def create_session(
        self,
        user_id: str,
        title: Optional[str] = None,
        model: Optional[str] = None,
        context: Optional[str] = None,
    ) -> ChatSession:
        chat_session = ChatSession(
            user_id=user_id,
            title=(title or "").strip() or settings.CHAT_DEFAULT_TITLE,
            model=model or settings.AI_CHAT_MODEL,
            context=context,
            message_count=0,
            status=SESSION_ACTIVE,
        )
        self.db.add(chat_session)
        self.db.commit()
        self.db.refresh(chat_session)
        logger.info("[chat] session created user_id=%s session_id=%s", user_id, chat_session.session_id)
        return chat_session

    def get_history(self, user_id: str, session_id: str, page: int = 1, limit: int = 50) -> dict:
        chat_session = self._get_owned_session(user_id, session_id)
        page, limit = clamp_page(page, limit, max_limit=200)
        query = self.db.query(ChatMessage).filter(ChatMessage.session_id == session_id)
        total = query.count()
        messages = query.order_by(ChatMessage.seq.asc()).offset(page_offset(page, limit)).limit(limit).all()
        return {"session": chat_session, "messages": messages, **page_meta(total, page, limit)}

    def list_sessions(self, user_id: str, status: Optional[str] = None, page: int = 1, limit: int = 20) -> dict:
        page, limit = clamp_page(page, limit)
        query = self.db.query(ChatSession).filter(ChatSession.user_id == user_id)
        if status:
            query = query.filter(ChatSession.status == status)
        total = query.count()
        sessions = (
            query.order_by(ChatSession.updated_at.desc(), ChatSession.created_at.desc())
            .offset(page_offset(page, limit))
            .limit(limit)
            .all()
        )
        return {"sessions": sessions, **page_meta(total, page, limit)}

    def update_session_status(self, user_id: str, session_id: str, status: str) -> ChatSession:
        if status not in SESSION_STATUSES:
            raise InvalidStateError(f"지원하지 않는 세션 상태입니다: {status}")
        chat_session = self._get_owned_session(user_id, session_id)
        chat_session.status = status
        chat_session.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(chat_session)
        logger.info("[chat] session status updated session_id=%s status=%s", session_id, status)
        return chat_session

    def delete_session(self, user_id: str, session_id: str) -> None:
        self._get_owned_session(user_id, session_id)
        try:
            with atomic(self.db):
                self.db.query(ChatMessage).filter(ChatMessage.session_id == session_id).delete(
                    synchronize_session=False
                )
                self.db.query(ChatSession).filter(ChatSession.session_id == session_id).delete(
                    synchronize_session=False
                )
        except SQLAlchemyError as exc:
            logger.exception("[chat] delete failed user_id=%s session_id=%s", user_id, session_id)
            raise OperationFailedError("대화 삭제에 실패했습니다.") from exc
        logger.info("[chat] session deleted user_id=%s session_id=%s", user_id, session_id)

    def get_chat_stats(self, user_id: str) -> dict:
        rows = (
            self.db.query(ChatSession.status, func.count(ChatSession.session_id))
            .filter(ChatSession.user_id == user_id)
            .group_by(ChatSession.status)
            .all()
        )
        by_status = {status: int(count) for status, count in rows}
        total_messages = (
            self.db.query(func.count(ChatMessage.message_id))
            .join(ChatSession, ChatSession.session_id == ChatMessage.session_id)
            .filter(ChatSession.user_id == user_id)
            .scalar()
        )
        return {
            "total_sessions": sum(by_status.values()),
            "active_sessions": by_status.get(SESSION_ACTIVE, 0),
            "archived_sessions": by_status.get(SESSION_ARCHIVED, 0),
            "total_messages": int(total_messages or 0),
        }

    def analyze_text(self, user_id: str, text: str, analysis_type: str = "explain") -> str:
        template = ANALYSIS_PROMPTS.get(analysis_type)
        if template is None:
            raise BadRequestError(f"지원하지 않는 분석 유형입니다: {analysis_type}")
        text = (text or "").strip()
        if not text:
            raise BadRequestError("분석할 내용을 입력해주세요.")
        self._ensure_safe(text)
        self._end_read_transaction()
        try:
            return self._client("chat", user_id).complete(
                template.format(text=text), settings.CHAT_ROLE_PREAMBLE
            )
        except CompletionError as exc:
            logger.warning("[chat] analyze failed user_id=%s type=%s kind=%s", user_id, analysis_type, exc.kind)
            raise UpstreamUnavailableError(exc.kind) from exc
